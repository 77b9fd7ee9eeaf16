# Overview: Stock ledger accessor; atomic per-product / per-variant stock adjustments.

"""
Stock is a plain integer on Product (and ProductVariant). It changes only
as a side effect of order status transitions into or out of COMPLETED.

Adjustments are issued as a single UPDATE ... SET stock = stock + :delta
so concurrent transactions never lose an increment. Must be called inside
the caller's transaction; nothing here commits.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Product, ProductVariant
from ..validation import ProductNotFound, VariantNotFound


def _increment(model, row_id: str, delta: int) -> int:
    return (
        db.session.query(model)
        .filter(model.id == row_id)
        .update({model.stock: model.stock + delta}, synchronize_session="fetch")
    )


def increment_product_stock(product_id: str, delta: int) -> None:
    if _increment(Product, product_id, delta) == 0:
        raise ProductNotFound(f"Product {product_id} not found")


def increment_variant_stock(variant_id: str, delta: int) -> None:
    if _increment(ProductVariant, variant_id, delta) == 0:
        raise VariantNotFound(f"Variant {variant_id} not found")


def apply_stock_delta(lines, direction: int) -> None:
    """
    Apply quantity * direction to every line.

    lines: iterable of (product_id, variant_id | None, quantity)
    direction: -1 consumes stock, +1 restores it
    """
    if direction not in (-1, 1):
        raise ValueError("direction must be -1 or 1")

    for product_id, variant_id, quantity in lines:
        delta = direction * int(quantity)
        increment_product_stock(product_id, delta)
        if variant_id:
            increment_variant_stock(variant_id, delta)
