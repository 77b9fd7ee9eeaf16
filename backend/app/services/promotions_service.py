# Overview: Service-layer operations for promotions; active listing and admin CRUD.

"""
Promotions are time-windowed discounts on a single product. Which one a
product actually shows is decided at read time by product_views.compute_sale.

A promotion carries exactly one discount: percent_off in 1..90, or a
positive price_off. ends_at must be after starts_at.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Product, Promotion
from ..time_utils import as_naive_utc, utcnow
from ..validation import MISSING, ProductNotFound, PromotionNotFound, ValidationError

PROMOTION_FIELDS = ("title", "description", "percent_off", "price_off", "starts_at", "ends_at", "active")


def list_active(now: datetime | None = None) -> list[Promotion]:
    """Active promotions whose window contains now, newest start first."""
    now = now or utcnow()
    return (
        db.session.query(Promotion)
        .options(
            selectinload(Promotion.product).selectinload(Product.images),
            selectinload(Promotion.product).selectinload(Product.promotions),
        )
        .filter(
            Promotion.active.is_(True),
            Promotion.starts_at <= now,
            Promotion.ends_at >= now,
        )
        .order_by(Promotion.starts_at.desc())
        .all()
    )


def get_promotion(promotion_id: str) -> Promotion:
    promotion = db.session.get(Promotion, promotion_id)
    if promotion is None:
        raise PromotionNotFound(f"Promotion {promotion_id} not found")
    return promotion


def _check_rules(percent_off, price_off, starts_at, ends_at) -> None:
    problems = []
    if bool(percent_off) == bool(price_off):
        problems.append({"field": "percentOff", "message": "exactly one of percentOff or priceOff is required"})
    if starts_at is not None and ends_at is not None and ends_at <= starts_at:
        problems.append({"field": "endsAt", "message": "must be after startsAt"})
    if problems:
        raise ValidationError("Invalid payload", details=problems)


def create_promotion(data: dict) -> Promotion:
    """
    data keys: product_id, title, description?, percent_off?, price_off?,
    starts_at, ends_at, active?
    """
    _check_rules(data.get("percent_off"), data.get("price_off"), data["starts_at"], data["ends_at"])
    if db.session.get(Product, data["product_id"]) is None:
        raise ProductNotFound(f"Product {data['product_id']} not found")

    promotion = Promotion(
        product_id=data["product_id"],
        title=data["title"],
        description=data.get("description"),
        percent_off=data.get("percent_off"),
        price_off=data.get("price_off"),
        starts_at=as_naive_utc(data["starts_at"]),
        ends_at=as_naive_utc(data["ends_at"]),
        active=data["active"] if data.get("active") is not None else True,
    )
    db.session.add(promotion)
    db.session.commit()
    return promotion


def update_promotion(promotion_id: str, patch: dict) -> Promotion:
    """Partial update; the discount and window rules are checked on the merged result."""
    promotion = get_promotion(promotion_id)

    merged = {key: getattr(promotion, key) for key in PROMOTION_FIELDS}
    for key in PROMOTION_FIELDS:
        if patch.get(key, MISSING) is not MISSING:
            value = patch[key]
            merged[key] = as_naive_utc(value) if isinstance(value, datetime) else value
    _check_rules(merged["percent_off"], merged["price_off"], merged["starts_at"], merged["ends_at"])

    for key, value in merged.items():
        if key in ("title", "starts_at", "ends_at", "active") and value is None:
            continue
        setattr(promotion, key, value)
    db.session.commit()
    return promotion


def delete_promotion(promotion_id: str) -> None:
    promotion = get_promotion(promotion_id)
    db.session.delete(promotion)
    db.session.commit()
