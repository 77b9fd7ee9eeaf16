from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z, utcnow
from .common import new_id, money


class Category(db.Model):
    """
    Catalog category.

    Categories nest through parent_id. Only one level is used in practice;
    the service layer rejects a parent that is itself a child.
    """
    __tablename__ = "categories"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(160), nullable=False, unique=True, index=True)
    parent_id = db.Column(
        db.String(32),
        db.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    parent = db.relationship(
        "Category",
        remote_side=[id],
        backref=db.backref("children", lazy=True, order_by="Category.name"),
    )

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug!r}>"

    def to_ref(self) -> dict:
        return {"id": self.id, "name": self.name, "slug": self.slug}

    def to_dict(self, include_children: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "parentId": self.parent_id,
            "createdAt": to_utc_z(self.created_at),
        }
        if include_children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


class Product(db.Model):
    """
    Product master data.

    Per-field visibility flags control what non-admin callers see; they are
    read by services/product_views.py and never consulted for admins.
    Stock is adjusted only by order completion (services/stock_service.py).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_sort", "active", "sort_order"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True, index=True)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    package_size = db.Column(db.String(100), nullable=True)
    pdf_url = db.Column(db.String(1024), nullable=True)
    # Legacy single cover image; images relationship wins when populated
    image_url = db.Column(db.String(1024), nullable=False, default="")

    visible_price = db.Column(db.Boolean, nullable=False, default=False)
    visible_description = db.Column(db.Boolean, nullable=False, default=True)
    visible_images = db.Column(db.Boolean, nullable=False, default=True)
    visible_package_size = db.Column(db.Boolean, nullable=False, default=True)
    visible_pdf = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    images = db.relationship(
        "ProductImage",
        back_populates="product",
        order_by="ProductImage.sort_order",
        cascade="all, delete-orphan",
    )
    category_links = db.relationship(
        "ProductCategory",
        back_populates="product",
        order_by="ProductCategory.created_at",
        cascade="all, delete-orphan",
    )
    promotions = db.relationship(
        "Promotion",
        back_populates="product",
        order_by="Promotion.created_at",
        cascade="all, delete-orphan",
    )
    variants = db.relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.sort_order",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} slug={self.slug!r} stock={self.stock}>"

    @property
    def visibility(self) -> dict:
        return {
            "price": bool(self.visible_price),
            "packageSize": bool(self.visible_package_size),
            "pdf": bool(self.visible_pdf),
            "images": bool(self.visible_images),
            "description": bool(self.visible_description),
        }

    @property
    def first_category(self) -> Category | None:
        if not self.category_links:
            return None
        return self.category_links[0].category

    def to_ref(self) -> dict:
        return {"id": self.id, "name": self.name, "slug": self.slug}


class ProductImage(db.Model):
    __tablename__ = "product_images"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    product_id = db.Column(
        db.String(32), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url = db.Column(db.String(1024), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", back_populates="images")


class ProductCategory(db.Model):
    __tablename__ = "product_categories"
    __table_args__ = (
        db.UniqueConstraint("product_id", "category_id", name="uq_product_categories_pair"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    product_id = db.Column(
        db.String(32), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = db.Column(
        db.String(32), db.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", back_populates="category_links")
    category = db.relationship("Category")


class ProductVariant(db.Model):
    """
    Independently priced and stocked option of a product (e.g. a size).

    Only written and surfaced when FEATURE_VARIANTS is on.
    """
    __tablename__ = "product_variants"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    product_id = db.Column(
        db.String(32), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    sku = db.Column(db.String(64), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)
    images = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    product = db.relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "price": money(self.price),
            "stock": self.stock,
            "sortOrder": self.sort_order,
            "active": self.active,
            "sku": self.sku,
            "imageUrl": self.image_url,
            "images": list(self.images or []),
        }
