# backend/app/services/products_service.py
"""
Products Service

Catalog reads (public and admin) and admin writes. Nested images, the
category link and variants are written together with the product.

Deletion never breaks order history: a product referenced by any order
item is archived (active=False) instead of removed.
"""
from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Category, OrderItem, Product, ProductCategory, ProductImage, ProductVariant
from ..slug_utils import slugify
from ..validation import MISSING, CategoryNotFound, ConflictError, ProductNotFound, VariantNotFound

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price", "stock", "active", "package_size", "pdf_url", "image_url"}
NON_NULLABLE_FIELDS = {"name", "price", "stock", "active", "image_url"}

VISIBILITY_COLUMNS = {
    "price": "visible_price",
    "packageSize": "visible_package_size",
    "pdf": "visible_pdf",
    "images": "visible_images",
    "description": "visible_description",
}

ORDER_MAP = {
    "name_asc": Product.name.asc(),
    "name_desc": Product.name.desc(),
    "price_asc": Product.price.asc(),
    "price_desc": Product.price.desc(),
    "sortOrder": Product.sort_order.asc(),
}
DEFAULT_SORT = "sortOrder"


def variants_enabled() -> bool:
    return bool(current_app.config.get("FEATURE_VARIANTS"))


def visibility_flags_enabled() -> bool:
    return bool(current_app.config.get("FEATURE_VISIBILITY_FLAGS"))


def _with_relations(query):
    options = [
        selectinload(Product.images),
        selectinload(Product.category_links).selectinload(ProductCategory.category).selectinload(Category.parent),
        selectinload(Product.promotions),
    ]
    if variants_enabled():
        options.append(selectinload(Product.variants))
    return query.options(*options)


def list_products(q: str | None = None, sort: str | None = None, include_inactive: bool = False) -> list[Product]:
    """
    Catalog listing.

    q: case-insensitive substring over name and description.
    sort: one of ORDER_MAP (unknown values fall back to manual sortOrder),
    always followed by created_at desc so ties are stable.
    """
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.active.is_(True))

    term = (q or "").strip()
    if term:
        query = query.filter(
            or_(
                Product.name.icontains(term, autoescape=True),
                Product.description.icontains(term, autoescape=True),
            )
        )

    order_by = ORDER_MAP.get(sort or DEFAULT_SORT, ORDER_MAP[DEFAULT_SORT])
    return _with_relations(query).order_by(order_by, Product.created_at.desc()).all()


def get_product(id_or_slug: str, include_inactive: bool = False) -> Product:
    """Lookup by id first, then by slug. Inactive products are hidden unless asked for."""
    product = _with_relations(db.session.query(Product)).filter(Product.id == id_or_slug).first()
    if product is None:
        product = _with_relations(db.session.query(Product)).filter(Product.slug == id_or_slug).first()
    if product is None or (not product.active and not include_inactive):
        raise ProductNotFound(f"Product {id_or_slug} not found")
    return product


def _require_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(f"Product {product_id} not found")
    return product


def _ensure_unique_slug(slug: str, exclude_id: str | None = None) -> None:
    if not slug:
        raise ConflictError("Product name must contain at least one letter or digit.")
    query = db.session.query(Product.id).filter(Product.slug == slug)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"A product with slug '{slug}' already exists.")


def _apply_visibility(product: Product, visibility: dict | None) -> None:
    if not visibility or not visibility_flags_enabled():
        return
    for key, column in VISIBILITY_COLUMNS.items():
        if visibility.get(key) is not None:
            setattr(product, column, visibility[key])


def _replace_category(product: Product, category_id: str | None) -> None:
    product.category_links.clear()
    if category_id:
        if db.session.get(Category, category_id) is None:
            raise CategoryNotFound(f"Category {category_id} not found")
        product.category_links.append(ProductCategory(category_id=category_id))


def _replace_images(product: Product, urls: list[str]) -> None:
    product.images.clear()
    for i, url in enumerate(urls):
        product.images.append(ProductImage(url=url, sort_order=(i + 1) * 10))


def _variant_in_use(variant_id: str) -> bool:
    return db.session.query(OrderItem.id).filter(OrderItem.variant_id == variant_id).first() is not None


def _sync_variants(product: Product, variants: list[dict]) -> None:
    """
    Make product.variants match the payload.

    Entries with a known id update that variant in place, entries without
    one create a new variant. An id that is not one of this product's
    variants raises ConflictError when it belongs to another product and
    VariantNotFound otherwise. Variants missing from the payload are deleted,
    or deactivated when an order item still points at them.
    """
    existing = {v.id: v for v in product.variants}
    keep = set()

    for i, data in enumerate(variants):
        variant_id = data.get("id")
        if variant_id and variant_id not in existing:
            if db.session.get(ProductVariant, variant_id) is not None:
                raise ConflictError(f"Variant {variant_id} belongs to another product")
            raise VariantNotFound(f"Variant {variant_id} not found")

        variant = existing.get(variant_id) if variant_id else None
        if variant is None:
            variant = ProductVariant()
            product.variants.append(variant)
        else:
            keep.add(variant.id)

        variant.name = data["name"]
        variant.price = data["price"]
        variant.stock = data["stock"]
        variant.sort_order = data["sort_order"] if data.get("sort_order") is not None else (i + 1) * 10
        variant.active = data.get("active") is not False
        variant.sku = data.get("sku")
        variant.image_url = data.get("image_url")
        variant.images = list(data.get("images") or [])

    for variant_id, variant in existing.items():
        if variant_id in keep:
            continue
        if _variant_in_use(variant_id):
            variant.active = False
        else:
            product.variants.remove(variant)


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Product conflicts with an existing record.") from exc


def create_product(data: dict) -> Product:
    """
    Create a product from a validated payload.

    data keys: name, description, price, stock, active?, package_size?,
    pdf_url?, image_url?, images?, category_id?, visibility?, variants?

    Raises:
        ConflictError: If the derived slug already exists
        CategoryNotFound: If category_id does not resolve
    """
    slug = slugify(data["name"])
    _ensure_unique_slug(slug)

    product = Product(slug=slug, sort_order=0, image_url=data.get("image_url") or "")
    for k in PRODUCT_MUTABLE_FIELDS - {"image_url"}:
        if data.get(k, MISSING) is not MISSING:
            setattr(product, k, data[k])
    if product.active is None:
        product.active = True

    _apply_visibility(product, data.get("visibility"))

    try:
        db.session.add(product)
        if data.get("category_id"):
            _replace_category(product, data["category_id"])
        if data.get("images"):
            _replace_images(product, data["images"])
        if variants_enabled() and data.get("variants"):
            _sync_variants(product, data["variants"])
    except Exception:
        db.session.rollback()
        raise

    _commit()
    return get_product(product.id, include_inactive=True)


def update_product(product_id: str, patch: dict) -> Product:
    """
    Partial update. Only keys present in patch are touched; a new name
    re-derives the slug. images / category_id / variants replace the
    current set when supplied.
    """
    product = _require_product(product_id)

    try:
        if "name" in patch and patch["name"]:
            slug = slugify(patch["name"])
            _ensure_unique_slug(slug, exclude_id=product.id)
            product.slug = slug

        for k, v in patch.items():
            if k not in PRODUCT_MUTABLE_FIELDS or (v is None and k in NON_NULLABLE_FIELDS):
                continue
            setattr(product, k, v)

        _apply_visibility(product, patch.get("visibility"))

        if "category_id" in patch:
            _replace_category(product, patch["category_id"])
        if "images" in patch and patch["images"] is not None:
            _replace_images(product, patch["images"])
        if variants_enabled() and patch.get("variants") is not None:
            _sync_variants(product, patch["variants"])
    except Exception:
        db.session.rollback()
        raise

    _commit()
    return get_product(product.id, include_inactive=True)


def product_in_use(product_id: str) -> bool:
    return db.session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first() is not None


def delete_product(product_id: str) -> dict:
    """
    Archive-or-delete.

    Referenced by any order item -> active=False, row kept.
    Otherwise the product is removed together with its images, category
    links, promotions and variants.
    """
    product = _require_product(product_id)

    if product_in_use(product_id):
        product.active = False
        db.session.commit()
        return {
            "ok": True,
            "archived": True,
            "message": "Product is linked to orders and was archived (disabled) instead of deleted.",
        }

    db.session.delete(product)
    db.session.commit()
    return {"ok": True, "deleted": True}


def hard_delete_product(product_id: str) -> dict:
    """Explicit removal; refuses (ConflictError) when order items reference the product."""
    product = _require_product(product_id)
    if product_in_use(product_id):
        raise ConflictError("This product has related orders. Archive it instead.")

    db.session.delete(product)
    db.session.commit()
    return {"ok": True, "deleted": True}


def set_sort_order(product_id: str, sort_order: int) -> None:
    product = _require_product(product_id)
    product.sort_order = sort_order
    db.session.commit()


def set_active(product_id: str, active: bool) -> None:
    product = _require_product(product_id)
    product.active = active
    db.session.commit()


def set_visibility(product_id: str, flags: dict) -> dict:
    """
    Toggle visibility flags explicitly.

    Raises ConflictError when FEATURE_VISIBILITY_FLAGS is off.
    """
    if not visibility_flags_enabled():
        raise ConflictError(
            "Visibility flags are not enabled in this environment. "
            "Set FEATURE_VISIBILITY_FLAGS=1 after migrating schema."
        )
    product = _require_product(product_id)
    for key, column in VISIBILITY_COLUMNS.items():
        if flags.get(key) is not None:
            setattr(product, column, flags[key])
    db.session.commit()
    return product.visibility


DEMO_PRODUCTS = (
    {
        "name": "Sodium Hypochlorite 12%",
        "description": "High-grade bleach for industrial cleaning and sanitation.",
        "price": Decimal("99.90"),
        "stock": 120,
        "package_size": "20 L",
        "pdf_url": "/files/sodium-hypochlorite.pdf",
        "images": ["/images/sodium-1.jpg", "/images/sodium-2.jpg", "/images/sodium-3.jpg"],
    },
    {
        "name": "Hydrogen Peroxide 35%",
        "description": "Food-grade H2O2 suitable for various industrial processes.",
        "price": Decimal("149.00"),
        "stock": 80,
        "package_size": "5 L",
        "pdf_url": "/files/hydrogen-peroxide.pdf",
        "images": ["/images/h2o2-1.jpg", "/images/h2o2-2.jpg"],
    },
)


def seed_demo_products() -> tuple[int, int]:
    """
    Upsert DEMO_PRODUCTS by slug, price hidden. Existing rows get their
    fields and images reset. Returns (created, updated).
    """
    created = updated = 0
    try:
        for i, demo in enumerate(DEMO_PRODUCTS):
            slug = slugify(demo["name"])
            product = db.session.query(Product).filter_by(slug=slug).first()
            if product is None:
                product = Product(slug=slug)
                db.session.add(product)
                created += 1
            else:
                updated += 1

            product.name = demo["name"]
            product.description = demo["description"]
            product.price = demo["price"]
            product.stock = demo["stock"]
            product.package_size = demo["package_size"]
            product.pdf_url = demo["pdf_url"]
            product.image_url = demo["images"][0]
            product.sort_order = (i + 1) * 10
            product.active = True
            product.visible_price = False
            _replace_images(product, demo["images"])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return created, updated
