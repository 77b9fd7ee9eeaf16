# Overview: Flask API routes for promotions; parses input and returns JSON responses.

from __future__ import annotations

from flask import Blueprint, request

from ..decorators import require_admin
from ..services import products_service, promotions_service
from ..services.product_views import serialize_product
from ..time_utils import utcnow
from ..validation import MISSING, PayloadValidator

promotions_bp = Blueprint("promotions", __name__, url_prefix="/promotions")

MAX_PERCENT_OFF = 90


def read_promotion_payload(payload, partial: bool) -> dict:
    v = PayloadValidator(payload)
    required = not partial
    data = {
        "product_id": MISSING if partial else v.string("productId", required=True, min_len=1),
        "title": v.string("title", required=required, min_len=2, max_len=255),
        "description": v.string("description"),
        "percent_off": v.integer("percentOff", minimum=1, maximum=MAX_PERCENT_OFF, coerce=True),
        "price_off": v.decimal("priceOff", minimum=0, coerce=True),
        "starts_at": v.datetime("startsAt", required=required),
        "ends_at": v.datetime("endsAt", required=required),
        "active": v.boolean("active"),
    }
    if data["price_off"] not in (MISSING, None) and data["price_off"] <= 0:
        v.fail("priceOff", "must be > 0")
    v.check()
    return {k: val for k, val in data.items() if val is not MISSING}


@promotions_bp.get("")
def list_active_promotions():
    """
    Promotions running right now, newest start first, each with its
    product in the public shape (hidden fields stay hidden).
    """
    now = utcnow()
    variants_enabled = products_service.variants_enabled()
    result = []
    for promo in promotions_service.list_active(now):
        data = promo.to_dict()
        data["product"] = serialize_product(promo.product, False, variants_enabled=variants_enabled, now=now)
        result.append(data)
    return result


@promotions_bp.post("")
@require_admin
def create_promotion_route():
    data = read_promotion_payload(request.get_json(silent=True), partial=False)
    promo = promotions_service.create_promotion(data)
    return promo.to_dict(), 201


@promotions_bp.patch("/<promotion_id>")
@require_admin
def update_promotion_route(promotion_id: str):
    patch = read_promotion_payload(request.get_json(silent=True), partial=True)
    promo = promotions_service.update_promotion(promotion_id, patch)
    return promo.to_dict()


@promotions_bp.delete("/<promotion_id>")
@require_admin
def delete_promotion_route(promotion_id: str):
    promotions_service.delete_promotion(promotion_id)
    return {"ok": True}
