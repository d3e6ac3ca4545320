"""
Initial catalog schema - stores, categories, brands, products, listings, taxes

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _pk(name: str) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # 1. Stores
    op.create_table(
        "stores",
        _pk("store_id"),
        sa.Column("external_id", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("address_line1", sa.Text),
        sa.Column("city", sa.String(100)),
        sa.Column("state", sa.String(100)),
        sa.Column("postal_code", sa.String(20)),
        sa.Column("country", sa.String(100), nullable=False, server_default="India"),
        sa.Column("lat", sa.Float),
        sa.Column("lon", sa.Float),
        sa.Column("phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("min_order_amount", sa.Numeric(12, 2)),
        sa.Column("delivery_fee", sa.Numeric(12, 2)),
        sa.Column("estimated_delivery_time", sa.Integer),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_open", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # 2. Categories
    op.create_table(
        "categories",
        _pk("category_id"),
        sa.Column("store_id", UUID(as_uuid=True), sa.ForeignKey("stores.store_id")),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("parent_id", UUID(as_uuid=True), sa.ForeignKey("categories.category_id")),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255)),
        sa.Column("description", sa.Text),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "external_id", name="uq_category_store_external"),
    )

    # 3. Brands
    op.create_table(
        "brands",
        _pk("brand_id"),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("normalized_name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_brands_normalized_name", "brands", ["normalized_name"])

    # 4. Products
    op.create_table(
        "products",
        _pk("product_id"),
        sa.Column("sku", sa.String(100)),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("slug", sa.String(500)),
        sa.Column("description", sa.Text),
        sa.Column("category_id", UUID(as_uuid=True), sa.ForeignKey("categories.category_id")),
        sa.Column("brand_id", UUID(as_uuid=True), sa.ForeignKey("brands.brand_id")),
        sa.Column("base_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="INR"),
        sa.Column("unit", sa.String(20)),
        sa.Column("unit_quantity", sa.Float),
        sa.Column("primary_image_url", sa.Text),
        sa.Column("manufacturer", sa.String(255)),
        sa.Column("barcode", sa.String(64)),
        sa.Column("ean", sa.String(64)),
        sa.Column("normalized_name", sa.String(500)),
        sa.Column("size_free_name", sa.String(500)),
        sa.Column("extracted_volume_ml", sa.Float),
        sa.Column("extracted_weight_g", sa.Float),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_customizable", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_addon", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("extra_attributes", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        *_timestamps(),
        sa.CheckConstraint("base_price >= 0", name="ck_product_base_price"),
    )
    op.create_index(
        "uq_products_barcode", "products", ["barcode"], unique=True, postgresql_where=sa.text("barcode IS NOT NULL")
    )
    op.create_index("uq_products_ean", "products", ["ean"], unique=True, postgresql_where=sa.text("ean IS NOT NULL"))
    op.create_index("ix_products_sku", "products", ["sku"])
    op.create_index("ix_products_size_free_name", "products", ["size_free_name"])
    op.create_index("ix_products_active_created", "products", ["is_active", "created_at"])

    # 5. Product images
    op.create_table(
        "product_images",
        _pk("image_id"),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.product_id"), nullable=False),
        sa.Column("image_url", sa.Text, nullable=False),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_primary", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("product_id", "image_url", name="uq_product_image_url"),
    )

    # 6. Store listings
    op.create_table(
        "store_products",
        _pk("store_product_id"),
        sa.Column("store_id", UUID(as_uuid=True), sa.ForeignKey("stores.store_id"), nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.product_id"), nullable=False),
        sa.Column("external_id", sa.String(100), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_in_stock", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "external_id", name="uq_store_product_external"),
        sa.CheckConstraint("price >= 0", name="ck_store_product_price"),
    )
    op.create_index("ix_store_products_product", "store_products", ["product_id"])

    # 7. Variations
    op.create_table(
        "product_variations",
        _pk("variation_id"),
        sa.Column(
            "store_product_id",
            UUID(as_uuid=True),
            sa.ForeignKey("store_products.store_product_id"),
            nullable=False,
        ),
        sa.Column("external_id", sa.String(100)),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255)),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_in_stock", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("store_product_id", "name", name="uq_variation_listing_name"),
    )
    op.create_index("ix_product_variations_external", "product_variations", ["external_id"])

    # 8. Taxes
    op.create_table(
        "taxes",
        _pk("tax_id"),
        sa.Column("store_id", UUID(as_uuid=True), sa.ForeignKey("stores.store_id")),
        sa.Column("external_id", sa.String(100)),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tax_code", sa.String(100), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("rate", sa.Float, nullable=False, server_default="0"),
        sa.Column("tax_type", sa.String(50), nullable=False, server_default="percentage"),
        sa.Column("is_inclusive", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "tax_code", name="uq_tax_store_code"),
        sa.UniqueConstraint("store_id", "external_id", name="uq_tax_store_external"),
        sa.CheckConstraint("rate >= 0", name="ck_tax_rate"),
    )

    # 9. Listing tax links
    op.create_table(
        "store_product_taxes",
        _pk("id"),
        sa.Column("store_id", UUID(as_uuid=True), sa.ForeignKey("stores.store_id"), nullable=False),
        sa.Column(
            "store_product_id",
            UUID(as_uuid=True),
            sa.ForeignKey("store_products.store_product_id"),
            nullable=False,
        ),
        sa.Column("tax_id", UUID(as_uuid=True), sa.ForeignKey("taxes.tax_id"), nullable=False),
        sa.Column("override_rate", sa.Float),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "store_product_id", "tax_id", name="uq_store_product_tax"),
    )


def downgrade() -> None:
    tables = [
        "store_product_taxes",
        "taxes",
        "product_variations",
        "store_products",
        "product_images",
        "products",
        "brands",
        "categories",
        "stores",
    ]
    for table in tables:
        op.drop_table(table)
