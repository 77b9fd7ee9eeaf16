"""
Catalog item resolution for order lines.

Two implementations, picked once from FEATURE_VARIANTS:

- ProductCatalog: variants disabled. Lines resolve to the product only and
  any submitted variant id is ignored.
- VariantCatalog: lines may carry a variant, which must belong to the
  line's product; its price and stock are used alongside the product's.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Product, ProductVariant
from ..validation import ConflictError, ProductNotFound, VariantNotFound


@dataclass(frozen=True)
class ResolvedLine:
    product: Product
    variant: ProductVariant | None

    @property
    def catalog_price(self) -> Decimal:
        source = self.variant if self.variant is not None else self.product
        return Decimal(source.price if source.price is not None else 0)

    @property
    def variant_name(self) -> str | None:
        return self.variant.name if self.variant is not None else None


class ProductCatalog:
    variants_enabled = False

    def _product(self, product_id: str) -> Product:
        product = db.session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found")
        return product

    def resolve(self, product_id: str, variant_id: str | None) -> ResolvedLine:
        return ResolvedLine(product=self._product(product_id), variant=None)

    def stock_lines(self, items):
        """(product_id, variant_id, quantity) triples for stock_service."""
        return [(it.product_id, None, it.quantity) for it in items]


class VariantCatalog(ProductCatalog):
    variants_enabled = True

    def resolve(self, product_id: str, variant_id: str | None) -> ResolvedLine:
        product = self._product(product_id)
        if not variant_id:
            return ResolvedLine(product=product, variant=None)

        variant = db.session.get(ProductVariant, variant_id)
        if variant is None:
            raise VariantNotFound(f"Variant {variant_id} not found")
        if variant.product_id != product.id:
            raise ConflictError(f"Variant {variant_id} does not belong to product {product_id}")
        return ResolvedLine(product=product, variant=variant)

    def stock_lines(self, items):
        return [(it.product_id, it.variant_id, it.quantity) for it in items]


def current_catalog() -> ProductCatalog:
    if current_app.config.get("FEATURE_VARIANTS"):
        return VariantCatalog()
    return ProductCatalog()
