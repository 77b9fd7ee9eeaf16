from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .common import new_id


class Customer(db.Model):
    """
    Customer (contact) captured from public quote requests.

    Email is unique and always stored lower-cased; order submission upserts
    on it. Orders keep their own snapshot of name/email/phone.
    """
    __tablename__ = "customers"

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    email = db.Column(db.String(254), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    company = db.Column(db.String(255), nullable=True)

    marketing_opt_in = db.Column(db.Boolean, nullable=False, default=False, index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    addresses = db.relationship(
        "Address",
        back_populates="customer",
        order_by="Address.created_at.desc()",
    )
    orders = db.relationship(
        "OrderInquiry",
        back_populates="customer",
        order_by="OrderInquiry.created_at.desc()",
        lazy="dynamic",
    )

    def to_dict(self, include_addresses: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "company": self.company,
            "marketingOptIn": self.marketing_opt_in,
            "tags": list(self.tags or []),
            "note": self.note,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_addresses:
            data["addresses"] = [a.to_dict() for a in self.addresses]
        return data


class Address(db.Model):
    """Append-only: every order that carries an address creates a new row."""
    __tablename__ = "addresses"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    customer_id = db.Column(
        db.String(32), db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    line1 = db.Column(db.String(255), nullable=False)
    line2 = db.Column(db.String(255), nullable=True)
    district = db.Column(db.String(120), nullable=True)
    city = db.Column(db.String(120), nullable=False)
    state = db.Column(db.String(120), nullable=True)
    postal_code = db.Column(db.String(32), nullable=True)
    country = db.Column(db.String(64), nullable=False, default="US")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    customer = db.relationship("Customer", back_populates="addresses")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "line1": self.line1,
            "line2": self.line2,
            "district": self.district,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
            "createdAt": to_utc_z(self.created_at),
        }
