# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product catalog routes.

Reads are public. Passing ?all=1 together with an admin bearer token
widens the listing to inactive products and switches the payload to the
admin shape (every field plus the raw visibility flags). Writes require
an admin.

Service exceptions (ValidationError, NotFoundError, ConflictError) are
turned into JSON by app.errors.
"""
from flask import Blueprint, request

from ..decorators import request_is_admin, require_admin
from ..services import products_service
from ..services.product_views import serialize_product
from ..validation import MISSING, PayloadValidator

products_bp = Blueprint("products", __name__, url_prefix="/products")

MAX_IMAGES = 10
VISIBILITY_KEYS = ("price", "packageSize", "pdf", "images", "description")


def _wants_admin_view() -> bool:
    return request.args.get("all", "0") == "1" and request_is_admin()


def _view(product, is_admin: bool) -> dict:
    return serialize_product(product, is_admin, variants_enabled=products_service.variants_enabled())


def _read_visibility(v: PayloadValidator):
    nested = v.nested("visibility")
    if nested is None:
        return MISSING
    flags = {key: nested.boolean(key) for key in VISIBILITY_KEYS}
    return {k: val for k, val in flags.items() if val is not MISSING}


def _read_variants(v: PayloadValidator):
    entries = v.objects("variants")
    if entries is None:
        return MISSING
    variants = []
    for ev in entries:
        variants.append({
            "id": ev.string("id", min_len=1),
            "name": ev.string("name", required=True, min_len=1, max_len=255),
            "price": ev.decimal("price", required=True, coerce=True),
            "stock": ev.integer("stock", required=True, minimum=0, coerce=True),
            "sort_order": ev.integer("sortOrder", coerce=True, default=None),
            "active": ev.boolean("active", default=True),
            "sku": ev.string("sku", max_len=64, default=None),
            "image_url": ev.urlish("imageUrl", default=None),
            "images": ev.urlish_list("images", max_items=MAX_IMAGES),
        })
    for entry in variants:
        for key in ("id", "images"):
            if entry[key] is MISSING:
                entry[key] = None
    return variants


def read_product_payload(payload, partial: bool) -> dict:
    """
    Validate a create (partial=False) or update (partial=True) body.

    Returns snake_case keys, only for fields present in the body.
    """
    v = PayloadValidator(payload)
    required = not partial
    data = {
        "name": v.string("name", required=required, min_len=2, max_len=255),
        "description": v.string("description", required=required, min_len=2),
        "price": v.decimal("price", required=required, coerce=True),
        "stock": v.integer("stock", required=required, minimum=0, coerce=True),
        "active": v.boolean("active"),
        "package_size": v.string("packageSize", min_len=1, max_len=100),
        "pdf_url": v.urlish("pdfUrl"),
        "image_url": v.urlish("imageUrl"),
        "images": v.urlish_list("images", max_items=MAX_IMAGES),
        "category_id": v.string("categoryId", min_len=1),
        "visibility": _read_visibility(v),
        "variants": _read_variants(v),
    }
    v.check()
    return {k: val for k, val in data.items() if val is not MISSING}


@products_bp.get("")
def list_products():
    """
    Query params:
    - q: search over name and description
    - sort: name_asc | name_desc | price_asc | price_desc | sortOrder (default)
    - all=1: include inactive products (admin token required, ignored otherwise)
    """
    is_admin = _wants_admin_view()
    products = products_service.list_products(
        q=request.args.get("q"),
        sort=request.args.get("sort"),
        include_inactive=is_admin,
    )
    return [_view(p, is_admin) for p in products]


@products_bp.get("/<id_or_slug>")
def get_product(id_or_slug: str):
    is_admin = _wants_admin_view()
    product = products_service.get_product(id_or_slug, include_inactive=is_admin)
    return _view(product, is_admin)


@products_bp.post("")
@require_admin
def create_product_route():
    data = read_product_payload(request.get_json(silent=True), partial=False)
    created = products_service.create_product(data)
    return _view(created, True), 201


@products_bp.put("/<product_id>")
@require_admin
def update_product_route(product_id: str):
    patch = read_product_payload(request.get_json(silent=True), partial=True)
    updated = products_service.update_product(product_id, patch)
    return _view(updated, True)


@products_bp.delete("/<product_id>")
@require_admin
def delete_product_route(product_id: str):
    """Archive when referenced by orders, delete otherwise."""
    return products_service.delete_product(product_id)


@products_bp.delete("/<product_id>/hard")
@require_admin
def hard_delete_product_route(product_id: str):
    return products_service.hard_delete_product(product_id)


@products_bp.patch("/<product_id>/sort-order")
@require_admin
def sort_order_route(product_id: str):
    v = PayloadValidator(request.get_json(silent=True))
    sort_order = v.integer("sortOrder", required=True, coerce=True)
    v.check()
    products_service.set_sort_order(product_id, sort_order)
    return {"ok": True}


@products_bp.patch("/<product_id>/archive")
@require_admin
def archive_route(product_id: str):
    products_service.set_active(product_id, False)
    return {"ok": True}


@products_bp.patch("/<product_id>/unarchive")
@require_admin
def unarchive_route(product_id: str):
    products_service.set_active(product_id, True)
    return {"ok": True}


@products_bp.patch("/<product_id>/visibility")
@require_admin
def visibility_route(product_id: str):
    v = PayloadValidator(request.get_json(silent=True))
    flags = {key: v.boolean(key) for key in VISIBILITY_KEYS}
    v.check()
    visibility = products_service.set_visibility(
        product_id, {k: val for k, val in flags.items() if val is not MISSING}
    )
    return {"ok": True, "visibility": visibility}
