"""
Catalog Repositories: narrow read/insert interfaces over the catalog store.

The matcher and brand resolver only see these interfaces, so they can be
driven by an in-memory fake in tests. The SQLAlchemy implementations run
every insert inside a SAVEPOINT and translate uniqueness violations into
CatalogConflictError, leaving the surrounding push transaction usable.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import CatalogConflictError
from db.models import Brand, Product, StoreProduct

logger = structlog.get_logger()


# ── Interfaces ─────────────────────────────────────────────────────────────


class BrandRepository(ABC):
    @abstractmethod
    async def find_by_name(self, name: str) -> uuid.UUID | None: ...

    @abstractmethod
    async def find_by_normalized_name(self, normalized_name: str) -> uuid.UUID | None: ...

    @abstractmethod
    async def slug_exists(self, slug: str) -> bool: ...

    @abstractmethod
    async def create(self, name: str, normalized_name: str, slug: str) -> uuid.UUID:
        """Insert a brand. Raises CatalogConflictError if name or slug is taken."""


class ProductRepository(ABC):
    """Product lookups. The matcher's exact lookups consider active products
    only and return the earliest-created product when several qualify; the
    reconciler's fallbacks (find_listing_product, find_by_identifier) see
    every row."""

    @abstractmethod
    async def find_listed(self, store_id: uuid.UUID, external_id: str) -> uuid.UUID | None:
        """Product behind an available listing of this store."""

    @abstractmethod
    async def find_by_barcode(self, barcode: str) -> uuid.UUID | None: ...

    @abstractmethod
    async def find_by_ean(self, ean: str) -> uuid.UUID | None: ...

    @abstractmethod
    async def find_by_sku(self, sku: str) -> uuid.UUID | None: ...

    @abstractmethod
    async def find_by_name_and_volume(
        self, size_free_name: str, volume_ml: float, tolerance: float
    ) -> uuid.UUID | None: ...

    @abstractmethod
    async def find_by_name_and_weight(
        self, size_free_name: str, weight_g: float, tolerance: float
    ) -> uuid.UUID | None: ...

    @abstractmethod
    async def fuzzy_candidates(self) -> Sequence[tuple[uuid.UUID, str]]:
        """(product_id, name) for every active product, oldest first."""

    @abstractmethod
    async def find_listing_product(self, store_id: uuid.UUID, external_id: str) -> uuid.UUID | None:
        """Product behind this store's listing, available or not."""

    @abstractmethod
    async def find_by_identifier(self, barcode: str | None, ean: str | None) -> uuid.UUID | None:
        """Product holding this barcode or EAN, active or not."""


# ── SQLAlchemy implementations ─────────────────────────────────────────────


async def insert_or_conflict(db: AsyncSession, obj, entity: str, key: str):
    """Flush a single new row inside a SAVEPOINT.

    On a uniqueness violation only the savepoint is rolled back and the
    violation surfaces as CatalogConflictError.
    """
    # Pending changes go out first so a conflict rollback cannot discard them.
    await db.flush()
    try:
        async with db.begin_nested():
            db.add(obj)
            await db.flush()
    except IntegrityError as exc:
        logger.info("catalog.insert.conflict", entity=entity, key=key)
        raise CatalogConflictError(entity, key) from exc
    return obj


class SqlBrandRepository(BrandRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_name(self, name: str) -> uuid.UUID | None:
        result = await self.db.execute(select(Brand.brand_id).where(Brand.name == name).limit(1))
        return result.scalar_one_or_none()

    async def find_by_normalized_name(self, normalized_name: str) -> uuid.UUID | None:
        result = await self.db.execute(
            select(Brand.brand_id)
            .where(Brand.normalized_name == normalized_name)
            .order_by(Brand.created_at, Brand.brand_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.db.execute(select(Brand.brand_id).where(Brand.slug == slug).limit(1))
        return result.scalar_one_or_none() is not None

    async def create(self, name: str, normalized_name: str, slug: str) -> uuid.UUID:
        brand = Brand(name=name, normalized_name=normalized_name, slug=slug)
        await insert_or_conflict(self.db, brand, "brand", name)
        return brand.brand_id


class SqlProductRepository(ProductRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    def _active(self, *criteria):
        return (
            select(Product.product_id)
            .where(Product.is_active.is_(True), *criteria)
            .order_by(Product.created_at, Product.product_id)
            .limit(1)
        )

    async def _first(self, query) -> uuid.UUID | None:
        result = await self.db.execute(query)
        return result.scalars().first()

    async def find_listed(self, store_id: uuid.UUID, external_id: str) -> uuid.UUID | None:
        return await self._first(
            select(StoreProduct.product_id)
            .where(
                StoreProduct.store_id == store_id,
                StoreProduct.external_id == external_id,
                StoreProduct.is_available.is_(True),
            )
            .limit(1)
        )

    async def find_by_barcode(self, barcode: str) -> uuid.UUID | None:
        return await self._first(self._active(Product.barcode == barcode))

    async def find_by_ean(self, ean: str) -> uuid.UUID | None:
        return await self._first(self._active(Product.ean == ean))

    async def find_by_sku(self, sku: str) -> uuid.UUID | None:
        return await self._first(self._active(Product.sku == sku))

    async def find_by_name_and_volume(
        self, size_free_name: str, volume_ml: float, tolerance: float
    ) -> uuid.UUID | None:
        return await self._first(
            self._active(
                Product.size_free_name == size_free_name,
                Product.extracted_volume_ml.is_not(None),
                func.abs(Product.extracted_volume_ml - volume_ml) <= tolerance,
            )
        )

    async def find_by_name_and_weight(
        self, size_free_name: str, weight_g: float, tolerance: float
    ) -> uuid.UUID | None:
        return await self._first(
            self._active(
                Product.size_free_name == size_free_name,
                Product.extracted_weight_g.is_not(None),
                func.abs(Product.extracted_weight_g - weight_g) <= tolerance,
            )
        )

    async def fuzzy_candidates(self) -> Sequence[tuple[uuid.UUID, str]]:
        # Full scan of active names per unmatched item.
        # TODO: pre-filter with a pg_trgm similarity index once catalogs reach 100k+ products.
        result = await self.db.execute(
            select(Product.product_id, Product.name)
            .where(Product.is_active.is_(True))
            .order_by(Product.created_at, Product.product_id)
        )
        return [(row.product_id, row.name) for row in result.all()]

    async def find_listing_product(self, store_id: uuid.UUID, external_id: str) -> uuid.UUID | None:
        return await self._first(
            select(StoreProduct.product_id)
            .where(StoreProduct.store_id == store_id, StoreProduct.external_id == external_id)
            .limit(1)
        )

    async def find_by_identifier(self, barcode: str | None, ean: str | None) -> uuid.UUID | None:
        criteria = []
        if barcode:
            criteria.append(Product.barcode == barcode)
        if ean:
            criteria.append(Product.ean == ean)
        if not criteria:
            return None
        return await self._first(
            select(Product.product_id)
            .where(or_(*criteria))
            .order_by(Product.created_at, Product.product_id)
            .limit(1)
        )
