from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .common import new_id, money


ORDER_STATUSES = ("RECEIVED", "IN_PROGRESS", "COMPLETED", "REFUSED", "CANCELLED")
STATUS_RECEIVED = "RECEIVED"
STATUS_COMPLETED = "COMPLETED"


class OrderInquiry(db.Model):
    """
    Customer quote request.

    customer_name/email/phone are a snapshot taken at creation and do not
    follow later Customer edits. subtotal/total are computed once.

    version_id is an optimistic lock: two transactions that both read the
    same version cannot both persist a status change.
    """
    __tablename__ = "order_inquiries"
    __table_args__ = (
        db.Index("ix_order_inquiries_status_created", "status", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    customer_id = db.Column(
        db.String(32), db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    address_id = db.Column(
        db.String(32), db.ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )

    status = db.Column(db.String(16), nullable=False, default=STATUS_RECEIVED, index=True)
    note = db.Column(db.Text, nullable=True)
    admin_note = db.Column(db.Text, nullable=True)
    recurrence = db.Column(db.String(64), nullable=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_email = db.Column(db.String(254), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", back_populates="orders")
    address = db.relationship("Address")
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<OrderInquiry id={self.id} status={self.status}>"

    def to_summary(self) -> dict:
        """Listing shape: header, customer and a light item list."""
        return {
            "id": self.id,
            "status": self.status,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "subtotal": money(self.subtotal),
            "total": money(self.total),
            "currency": self.currency,
            "recurrence": self.recurrence,
            "createdAt": to_utc_z(self.created_at),
            "customer": self.customer.to_dict() if self.customer else None,
            "items": [
                {
                    "id": it.id,
                    "productId": it.product_id,
                    "quantity": it.quantity,
                    "unitPrice": money(it.unit_price),
                }
                for it in self.items
            ],
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "customerId": self.customer_id,
            "addressId": self.address_id,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "customerPhone": self.customer_phone,
            "note": self.note,
            "adminNote": self.admin_note,
            "recurrence": self.recurrence,
            "subtotal": money(self.subtotal),
            "total": money(self.total),
            "currency": self.currency,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "customer": self.customer.to_dict() if self.customer else None,
            "address": self.address.to_dict() if self.address else None,
            "items": [it.to_dict() for it in self.items],
        }


class OrderItem(db.Model):
    """Line of an order; unit_price is a snapshot independent of later price edits."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        db.CheckConstraint("unit_price >= 0", name="ck_order_items_unit_price_nonnegative"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    order_id = db.Column(
        db.String(32), db.ForeignKey("order_inquiries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(
        db.String(32), db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    variant_id = db.Column(
        db.String(32), db.ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    variant_name = db.Column(db.String(255), nullable=True)

    # Submission order of the line within its order
    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    order = db.relationship("OrderInquiry", back_populates="items")
    product = db.relationship("Product")
    variant = db.relationship("ProductVariant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "quantity": self.quantity,
            "unitPrice": money(self.unit_price),
            "product": self.product.to_ref() if self.product else None,
        }
