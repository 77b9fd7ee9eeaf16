"""
Public/admin product serialization.

Non-admin callers never see a field whose visibility flag is off: the key
is left out of the payload entirely. Admins always get every field plus a
"visibility" block with the raw flags.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from app.models.common import money
from app.time_utils import to_utc_z, utcnow, within_window

from .order_service import round2


def compute_sale(product, now: datetime | None = None) -> dict | None:
    """
    Best promotion running now, or None.

    A promotion qualifies when it is active, now is inside its window and
    it carries a discount. Each qualifying promotion's price is
    max(0, round2(discounted)); the lowest one strictly below the base price
    wins (first one on ties).
    """
    now = now or utcnow()
    base = Decimal(product.price if product.price is not None else 0)

    best = None
    best_price = base
    for promo in product.promotions:
        if not promo.active or not within_window(now, promo.starts_at, promo.ends_at):
            continue
        if not promo.percent_off and not promo.price_off:
            continue

        new_price = base
        if promo.percent_off:
            new_price = base * (Decimal(1) - Decimal(promo.percent_off) / Decimal(100))
        if promo.price_off:
            new_price = min(new_price, base - Decimal(promo.price_off))
        new_price = max(Decimal(0), round2(new_price))

        if new_price < best_price:
            best, best_price = promo, new_price

    if best is None or best_price >= base:
        return None

    sale = {
        "promotionId": best.id,
        "title": best.title,
        "startsAt": to_utc_z(best.starts_at),
        "endsAt": to_utc_z(best.ends_at),
        "salePrice": money(best_price),
    }
    if best.percent_off:
        sale["percentOff"] = best.percent_off
    if best.price_off:
        sale["priceOff"] = money(best.price_off)
    return sale


def _category_view(category) -> dict | None:
    if category is None:
        return None
    data = category.to_ref()
    data["parent"] = category.parent.to_ref() if category.parent else None
    return data


def _variant_view(variant, show_price: bool) -> dict:
    data = {
        "id": variant.id,
        "name": variant.name,
        "stock": variant.stock,
        "active": variant.active,
        "sortOrder": variant.sort_order or 0,
        "sku": variant.sku,
        "imageUrl": variant.image_url,
        "images": list(variant.images or []),
    }
    if show_price:
        data["price"] = money(variant.price)
    return data


def serialize_product(product, is_admin: bool, *, variants_enabled: bool = False, now: datetime | None = None) -> dict:
    vis = product.visibility

    def show(flag: str) -> bool:
        return is_admin or vis[flag]

    data = {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "active": product.active,
        "stock": product.stock,
        "sortOrder": product.sort_order,
        "category": _category_view(product.first_category),
        "createdAt": to_utc_z(product.created_at),
        "updatedAt": to_utc_z(product.updated_at),
    }

    if show("description"):
        data["description"] = product.description
    if show("price"):
        data["price"] = money(product.price)
        data["sale"] = compute_sale(product, now)
    if show("packageSize"):
        data["packageSize"] = product.package_size
    if show("pdf"):
        data["pdfUrl"] = product.pdf_url
    if show("images"):
        urls = [im.url for im in product.images]
        data["images"] = urls
        data["imageUrl"] = urls[0] if urls else (product.image_url or None)

    if is_admin:
        data["visibility"] = vis

    if variants_enabled:
        variants = product.variants if is_admin else [v for v in product.variants if v.active]
        data["variants"] = [_variant_view(v, show("price")) for v in variants]

    return data
