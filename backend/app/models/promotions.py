from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .common import new_id, money


class Promotion(db.Model):
    """
    Time-windowed discount attached to one product.

    Exactly one of percent_off (1-90) or price_off is expected to be set;
    when both are present the lower resulting price wins at evaluation time.
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.Index("ix_promotions_window", "active", "starts_at", "ends_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    product_id = db.Column(
        db.String(32), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    percent_off = db.Column(db.Integer, nullable=True)
    price_off = db.Column(db.Numeric(10, 2), nullable=True)

    # Naive UTC; compared against time_utils.utcnow()
    starts_at = db.Column(db.DateTime(), nullable=False)
    ends_at = db.Column(db.DateTime(), nullable=False)

    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", back_populates="promotions")

    def to_dict(self):
        return {
            "id": self.id,
            "productId": self.product_id,
            "title": self.title,
            "description": self.description,
            "percentOff": self.percent_off,
            "priceOff": money(self.price_off),
            "startsAt": to_utc_z(self.starts_at),
            "endsAt": to_utc_z(self.ends_at),
            "active": self.active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
