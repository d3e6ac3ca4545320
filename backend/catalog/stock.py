"""
Stock Updates: fast path for ERP stock/price pushes between full catalog pushes.

Listings and variants are addressed by the ERP's own ids within one store.
Unknown ids are counted, not fatal; an unknown store is.
"""

from dataclasses import asdict, dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.errors import StoreNotFoundError
from catalog.schemas import StockUpdateRequest
from db.models import ProductVariation, Store, StoreProduct

logger = structlog.get_logger()


@dataclass
class StockUpdateResult:
    products_updated: int = 0
    products_not_found: int = 0
    variants_updated: int = 0
    variants_not_found: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


class StockUpdater:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def apply(self, request: StockUpdateRequest) -> StockUpdateResult:
        store_id = (
            await self.db.execute(select(Store.store_id).where(Store.external_id == request.store_id))
        ).scalar_one_or_none()
        if store_id is None:
            raise StoreNotFoundError(request.store_id)

        external_ids = [item.id for item in request.products]
        rows = await self.db.execute(
            select(StoreProduct).where(
                StoreProduct.store_id == store_id,
                StoreProduct.external_id.in_(external_ids),
            )
        )
        listings = {row.external_id: row for row in rows.scalars()}

        variant_ids = [variant.id for item in request.products for variant in item.variants]
        variations: dict[str, list[ProductVariation]] = {}
        if variant_ids:
            rows = await self.db.execute(
                select(ProductVariation)
                .join(StoreProduct, StoreProduct.store_product_id == ProductVariation.store_product_id)
                .where(StoreProduct.store_id == store_id, ProductVariation.external_id.in_(variant_ids))
            )
            for variation in rows.scalars():
                variations.setdefault(variation.external_id, []).append(variation)

        result = StockUpdateResult()
        for item in request.products:
            listing = listings.get(item.id)
            if listing is None:
                result.products_not_found += 1
                logger.warning("catalog.stock.listing_missing", store_external_id=request.store_id, external_id=item.id)
            else:
                listing.stock_quantity = item.stock_quantity
                listing.is_in_stock = item.stock_quantity > 0
                listing.is_available = item.is_available
                if item.price > 0:
                    listing.price = item.price
                result.products_updated += 1

            for variant in item.variants:
                matches = variations.get(variant.id)
                if not matches:
                    result.variants_not_found += 1
                    continue
                for variation in matches:
                    variation.stock_quantity = variant.stock_quantity
                    variation.is_in_stock = variant.stock_quantity > 0
                    variation.is_active = variant.is_available
                    if variant.price > 0:
                        variation.price = variant.price
                result.variants_updated += 1

        await self.db.commit()
        logger.info("catalog.stock.updated", store_external_id=request.store_id, **result.as_dict())
        return result
