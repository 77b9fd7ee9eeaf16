# Overview: Service-layer operations for catalog categories; listing, creation, default tree seed.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Category
from ..slug_utils import slugify
from ..validation import CategoryNotFound, ConflictError, ValidationError

DEFAULT_TREE = (
    ("Floor Care", ("Floor Finishes", "Floor Strippers", "Neutral & Specialty Cleaners")),
    ("Bathroom Cleaners", ("Acid Bathroom Cleaners", "Non-Acid Bathroom & Bowl Cleaners")),
    ("Glass Cleaners", ("Ready-To-Use on Glass",)),
    ("Carpet Care", ("Pre-Treatment",)),
    ("Cleaners/Degreasers", ("Super Heavy Duty Concentrate",)),
)


def list_roots() -> list[Category]:
    """Top-level categories by name, children eagerly loaded (also by name)."""
    return (
        db.session.query(Category)
        .options(selectinload(Category.children))
        .filter(Category.parent_id.is_(None))
        .order_by(Category.name.asc())
        .all()
    )


def create_category(name: str, parent_id: str | None = None) -> Category:
    """
    Create a root category or a sub-category.

    Raises:
        CategoryNotFound: parent_id does not resolve
        ValidationError: parent is itself a sub-category
        ConflictError: slug already taken
    """
    parent = None
    if parent_id:
        parent = db.session.get(Category, parent_id)
        if parent is None:
            raise CategoryNotFound(f"Category {parent_id} not found")
        if parent.parent_id is not None:
            raise ValidationError(
                "Invalid payload",
                details=[{"field": "parentId", "message": "categories nest one level only"}],
            )

    slug = slugify(name)
    if not slug:
        raise ValidationError("Invalid payload", details=[{"field": "name", "message": "must contain a letter or digit"}])
    if db.session.query(Category.id).filter(Category.slug == slug).first() is not None:
        raise ConflictError(f"A category with slug '{slug}' already exists.")

    category = Category(name=name, slug=slug, parent=parent)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"A category with slug '{slug}' already exists.") from exc
    return category


def _upsert_by_slug(name: str, parent: Category | None) -> Category:
    slug = slugify(name)
    category = db.session.query(Category).filter_by(slug=slug).first()
    if category is None:
        category = Category(name=name, slug=slug)
        db.session.add(category)
    if parent is not None:
        category.parent = parent
    return category


def seed_default_tree() -> int:
    """
    Idempotently create the default category tree.

    Existing categories are matched by slug and only re-parented. Returns
    the number of categories in the tree.
    """
    count = 0
    try:
        for parent_name, children in DEFAULT_TREE:
            parent = _upsert_by_slug(parent_name, None)
            count += 1
            for child_name in children:
                _upsert_by_slug(child_name, parent)
                count += 1
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return count
