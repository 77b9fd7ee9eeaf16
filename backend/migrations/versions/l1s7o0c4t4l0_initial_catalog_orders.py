"""initial catalog and orders schema

Revision ID: l1s7o0c4t4l0
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete schema:
- categories, products, product_images, product_categories, product_variants
- promotions
- customers, addresses
- order_inquiries (with optimistic version column), order_items
- users
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'l1s7o0c4t4l0'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(length=32), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # catalog
    # ============================================================================
    op.create_table(
        'categories',
        _id(),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('slug', sa.String(length=160), nullable=False),
        sa.Column('parent_id', sa.String(length=32), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['parent_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])

    op.create_table(
        'products',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('package_size', sa.String(length=100), nullable=True),
        sa.Column('pdf_url', sa.String(length=1024), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=False, server_default=''),
        sa.Column('visible_price', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('visible_description', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('visible_images', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('visible_package_size', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('visible_pdf', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_slug', 'products', ['slug'], unique=True)
    op.create_index('ix_products_active_sort', 'products', ['active', 'sort_order'])

    op.create_table(
        'product_images',
        _id(),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('url', sa.String(length=1024), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_images_product_id', 'product_images', ['product_id'])
    op.create_index('ix_product_images_sort_order', 'product_images', ['sort_order'])

    op.create_table(
        'product_categories',
        _id(),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('category_id', sa.String(length=32), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'category_id', name='uq_product_categories_pair'),
    )
    op.create_index('ix_product_categories_product_id', 'product_categories', ['product_id'])
    op.create_index('ix_product_categories_category_id', 'product_categories', ['category_id'])

    op.create_table(
        'product_variants',
        _id(),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('images', sa.JSON(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    # ============================================================================
    # promotions
    # ============================================================================
    op.create_table(
        'promotions',
        _id(),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('percent_off', sa.Integer(), nullable=True),
        sa.Column('price_off', sa.Numeric(10, 2), nullable=True),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.Column('ends_at', sa.DateTime(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_promotions_product_id', 'promotions', ['product_id'])
    op.create_index('ix_promotions_window', 'promotions', ['active', 'starts_at', 'ends_at'])

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        _id(),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('company', sa.String(length=255), nullable=True),
        sa.Column('marketing_opt_in', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)
    op.create_index('ix_customers_marketing_opt_in', 'customers', ['marketing_opt_in'])

    op.create_table(
        'addresses',
        _id(),
        sa.Column('customer_id', sa.String(length=32), nullable=True),
        sa.Column('line1', sa.String(length=255), nullable=False),
        sa.Column('line2', sa.String(length=255), nullable=True),
        sa.Column('district', sa.String(length=120), nullable=True),
        sa.Column('city', sa.String(length=120), nullable=False),
        sa.Column('state', sa.String(length=120), nullable=True),
        sa.Column('postal_code', sa.String(length=32), nullable=True),
        sa.Column('country', sa.String(length=64), nullable=False, server_default='US'),
        _created_at(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_addresses_customer_id', 'addresses', ['customer_id'])

    # ============================================================================
    # orders
    # ============================================================================
    op.create_table(
        'order_inquiries',
        _id(),
        sa.Column('customer_id', sa.String(length=32), nullable=True),
        sa.Column('address_id', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='RECEIVED'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('recurrence', sa.String(length=64), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_email', sa.String(length=254), nullable=True),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        _created_at(),
        _updated_at(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['address_id'], ['addresses.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_inquiries_customer_id', 'order_inquiries', ['customer_id'])
    op.create_index('ix_order_inquiries_status', 'order_inquiries', ['status'])
    op.create_index('ix_order_inquiries_created_at', 'order_inquiries', ['created_at'])
    op.create_index('ix_order_inquiries_status_created', 'order_inquiries', ['status', 'created_at'])

    op.create_table(
        'order_items',
        _id(),
        sa.Column('order_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=32), nullable=False),
        sa.Column('variant_id', sa.String(length=32), nullable=True),
        sa.Column('variant_name', sa.String(length=255), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.CheckConstraint('unit_price >= 0', name='ck_order_items_unit_price_nonnegative'),
        sa.ForeignKeyConstraint(['order_id'], ['order_inquiries.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])
    op.create_index('ix_order_items_variant_id', 'order_items', ['variant_id'])

    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='ADMIN'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)


def downgrade():
    op.drop_table('users')
    op.drop_table('order_items')
    op.drop_table('order_inquiries')
    op.drop_table('addresses')
    op.drop_table('customers')
    op.drop_table('promotions')
    op.drop_table('product_variants')
    op.drop_table('product_categories')
    op.drop_table('product_images')
    op.drop_table('products')
    op.drop_table('categories')
