"""
Brand Resolver: find-or-create a brand id from a free-form brand name.

Lookup order:
  1. exact name
  2. normalized key ("Coca Cola", "Coca-Cola" and "CocaCola" share one)
  3. create, with a slug made unique by a millisecond suffix when taken

No fuzzy matching: "Coke" and "Coca Cola" are different brands.
"""

import time
import uuid

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from catalog.errors import CatalogConflictError
from catalog.normalizer import brand_key, slugify
from catalog.repository import BrandRepository

logger = structlog.get_logger()


class BrandResolver:
    def __init__(self, brands: BrandRepository):
        self.brands = brands

    async def resolve(self, raw_name: str | None) -> uuid.UUID | None:
        """Return the brand id for raw_name, creating the brand if needed.

        Blank names resolve to None. A concurrent creator winning the
        insert is not an error: its brand is looked up and reused.
        """
        if raw_name is None:
            return None
        name = raw_name.strip()
        if not name:
            return None
        return await self._find_or_create(name)

    async def _lookup(self, name: str, key: str) -> uuid.UUID | None:
        brand_id = await self.brands.find_by_name(name)
        if brand_id is None and key:
            brand_id = await self.brands.find_by_normalized_name(key)
        return brand_id

    @retry(
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(CatalogConflictError),
        reraise=True,
    )
    async def _find_or_create(self, name: str) -> uuid.UUID:
        key = brand_key(name)
        brand_id = await self._lookup(name, key)
        if brand_id is not None:
            return brand_id

        slug = slugify(name) or "brand"
        if await self.brands.slug_exists(slug):
            slug = f"{slug}-{time.time_ns() // 1_000_000}"

        try:
            brand_id = await self.brands.create(name, key, slug)
        except CatalogConflictError:
            brand_id = await self._lookup(name, key)
            if brand_id is None:
                # Only the slug collided; retry with a fresh suffix.
                raise
            logger.info("catalog.brand.reused_after_conflict", brand=name, brand_id=str(brand_id))
            return brand_id

        logger.info("catalog.brand.created", brand=name, slug=slug, brand_id=str(brand_id))
        return brand_id
