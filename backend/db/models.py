"""
CatalogSync Database Models

Shared product catalog reconciled from many store feeds. Products are
store-agnostic; everything priced, stocked or taxed lives on a store listing.

Tables:
  1. stores               - Physical store locations (keyed by ERP external id)
  2. categories           - Store-scoped category tree
  3. brands               - Globally unique brands
  4. products             - Shared, deduplicated product catalog
  5. product_images       - Image URLs per product
  6. store_products       - Store listings: price / stock per (store, product)
  7. product_variations   - Named variants of a store listing
  8. taxes                - Store tax definitions
  9. store_product_taxes  - Tax links per store listing
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    text,
    types,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import relationship

from db.session import Base


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


Money = Numeric(12, 2, asdecimal=False)


# ─── 1. Stores ──────────────────────────────────────────────────────────────


class Store(Base):
    __tablename__ = "stores"

    store_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    description = Column(Text)
    address_line1 = Column(Text)
    city = Column(String(100))
    state = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100), nullable=False, default="India")
    lat = Column(Float)
    lon = Column(Float)
    phone = Column(String(50))
    email = Column(String(255))
    min_order_amount = Column(Money)
    delivery_fee = Column(Money)
    estimated_delivery_time = Column(Integer)  # minutes
    is_active = Column(Boolean, nullable=False, default=True)
    is_open = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    listings = relationship("StoreProduct", back_populates="store")
    taxes = relationship("Tax", back_populates="store")


# ─── 2. Categories ──────────────────────────────────────────────────────────


class Category(Base):
    __tablename__ = "categories"

    category_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = Column(GUID(), ForeignKey("stores.store_id"))
    external_id = Column(String(100), nullable=False)
    parent_id = Column(GUID(), ForeignKey("categories.category_id"))
    name = Column(String(255), nullable=False)
    slug = Column(String(255))
    description = Column(Text)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (UniqueConstraint("store_id", "external_id", name="uq_category_store_external"),)

    parent = relationship("Category", remote_side=[category_id])


# ─── 3. Brands ──────────────────────────────────────────────────────────────


class Brand(Base):
    __tablename__ = "brands"

    brand_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    normalized_name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (Index("ix_brands_normalized_name", "normalized_name"),)


# ─── 4. Products ────────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    product_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    sku = Column(String(100))
    name = Column(String(500), nullable=False)
    slug = Column(String(500))
    description = Column(Text)
    category_id = Column(GUID(), ForeignKey("categories.category_id"))
    brand_id = Column(GUID(), ForeignKey("brands.brand_id"))
    base_price = Column(Money, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="INR")
    unit = Column(String(20))
    unit_quantity = Column(Float)
    primary_image_url = Column(Text)
    manufacturer = Column(String(255))
    barcode = Column(String(64))  # unique when present (partial index)
    ean = Column(String(64))  # unique when present (partial index)
    # Derived from name on every write; see catalog.normalizer.derive_name_fields
    normalized_name = Column(String(500))
    size_free_name = Column(String(500))
    extracted_volume_ml = Column(Float)
    extracted_weight_g = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    is_customizable = Column(Boolean, nullable=False, default=False)
    is_addon = Column(Boolean, nullable=False, default=False)
    extra_attributes = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index(
            "uq_products_barcode",
            "barcode",
            unique=True,
            postgresql_where=text("barcode IS NOT NULL"),
            sqlite_where=text("barcode IS NOT NULL"),
        ),
        Index(
            "uq_products_ean",
            "ean",
            unique=True,
            postgresql_where=text("ean IS NOT NULL"),
            sqlite_where=text("ean IS NOT NULL"),
        ),
        Index("ix_products_sku", "sku"),
        Index("ix_products_size_free_name", "size_free_name"),
        Index("ix_products_active_created", "is_active", "created_at"),
        CheckConstraint("base_price >= 0", name="ck_product_base_price"),
    )

    brand = relationship("Brand")
    category = relationship("Category")
    images = relationship("ProductImage", back_populates="product", cascade="all, delete-orphan")
    listings = relationship("StoreProduct", back_populates="product")


class ProductImage(Base):
    __tablename__ = "product_images"

    image_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    product_id = Column(GUID(), ForeignKey("products.product_id"), nullable=False)
    image_url = Column(Text, nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (UniqueConstraint("product_id", "image_url", name="uq_product_image_url"),)

    product = relationship("Product", back_populates="images")


# ─── 5. Store Listings ──────────────────────────────────────────────────────


class StoreProduct(Base):
    __tablename__ = "store_products"

    store_product_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = Column(GUID(), ForeignKey("stores.store_id"), nullable=False)
    product_id = Column(GUID(), ForeignKey("products.product_id"), nullable=False)
    external_id = Column(String(100), nullable=False)
    price = Column(Money, nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_in_stock = Column(Boolean, nullable=False, default=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("store_id", "external_id", name="uq_store_product_external"),
        Index("ix_store_products_product", "product_id"),
        CheckConstraint("price >= 0", name="ck_store_product_price"),
    )

    store = relationship("Store", back_populates="listings")
    product = relationship("Product", back_populates="listings")
    variations = relationship("ProductVariation", back_populates="listing")


class ProductVariation(Base):
    __tablename__ = "product_variations"

    variation_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_product_id = Column(GUID(), ForeignKey("store_products.store_product_id"), nullable=False)
    external_id = Column(String(100))
    name = Column(String(255), nullable=False)
    display_name = Column(String(255))
    price = Column(Money, nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_in_stock = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("store_product_id", "name", name="uq_variation_listing_name"),
        Index("ix_product_variations_external", "external_id"),
    )

    listing = relationship("StoreProduct", back_populates="variations")


# ─── 6. Taxes ───────────────────────────────────────────────────────────────


class Tax(Base):
    __tablename__ = "taxes"

    tax_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = Column(GUID(), ForeignKey("stores.store_id"))  # NULL = global
    external_id = Column(String(100))
    name = Column(String(255), nullable=False)
    tax_code = Column(String(100), nullable=False)
    description = Column(Text)
    rate = Column(Float, nullable=False, default=0)
    tax_type = Column(String(50), nullable=False, default="percentage")
    is_inclusive = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("store_id", "tax_code", name="uq_tax_store_code"),
        UniqueConstraint("store_id", "external_id", name="uq_tax_store_external"),
        CheckConstraint("rate >= 0", name="ck_tax_rate"),
    )

    store = relationship("Store", back_populates="taxes")


class StoreProductTax(Base):
    __tablename__ = "store_product_taxes"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    store_id = Column(GUID(), ForeignKey("stores.store_id"), nullable=False)
    store_product_id = Column(GUID(), ForeignKey("store_products.store_product_id"), nullable=False)
    tax_id = Column(GUID(), ForeignKey("taxes.tax_id"), nullable=False)
    override_rate = Column(Float)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("store_id", "store_product_id", "tax_id", name="uq_store_product_tax"),
    )
