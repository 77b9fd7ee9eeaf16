# Overview: Flask API routes for categories; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_admin
from ..services import categories_service
from ..validation import PayloadValidator

categories_bp = Blueprint("categories", __name__, url_prefix="/categories")


@categories_bp.get("")
def list_categories():
    """Root categories with their children, both by name."""
    return [c.to_dict(include_children=True) for c in categories_service.list_roots()]


@categories_bp.post("")
@require_admin
def create_category_route():
    v = PayloadValidator(request.get_json(silent=True))
    name = v.string("name", required=True, min_len=2, max_len=120)
    parent_id = v.string("parentId", min_len=1, default=None)
    v.check()

    category = categories_service.create_category(name, parent_id)
    data = category.to_dict(include_children=True)
    data["parent"] = category.parent.to_ref() if category.parent else None
    return data, 201


@categories_bp.post("/seed")
@require_admin
def seed_categories_route():
    count = categories_service.seed_default_tree()
    return {"ok": True, "count": count}
