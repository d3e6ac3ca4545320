"""
Catalog Maintenance Workers

Workers:
  1. backfill_normalized_fields: recompute the derived name columns the
     matcher relies on (normalized_name, size_free_name, volume, weight)
"""

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.normalizer import derive_name_fields
from db.models import Product
from workers.celery_app import celery_app

logger = structlog.get_logger()

BATCH_SIZE = 500


async def backfill_product_name_fields(db: AsyncSession, *, force: bool = False, batch_size: int = BATCH_SIZE) -> dict:
    """
    Recompute derived name columns in keyset-paginated batches, committing
    per batch. Without force, only rows missing normalized_name or
    size_free_name are touched.
    """
    scanned = 0
    updated = 0
    last_id = None

    while True:
        query = select(Product).order_by(Product.product_id).limit(batch_size)
        if last_id is not None:
            query = query.where(Product.product_id > last_id)
        if not force:
            query = query.where(or_(Product.normalized_name.is_(None), Product.size_free_name.is_(None)))
        products = (await db.execute(query)).scalars().all()
        if not products:
            break

        for product in products:
            fields = derive_name_fields(product.name)
            changed = (
                product.normalized_name != fields.normalized_name
                or product.size_free_name != fields.size_free_name
                or product.extracted_volume_ml != fields.volume_ml
                or product.extracted_weight_g != fields.weight_g
            )
            if changed:
                product.normalized_name = fields.normalized_name
                product.size_free_name = fields.size_free_name
                product.extracted_volume_ml = fields.volume_ml
                product.extracted_weight_g = fields.weight_g
                updated += 1
        scanned += len(products)
        last_id = products[-1].product_id
        await db.commit()

    logger.info("catalog.backfill.completed", scanned=scanned, updated=updated, force=force)
    return {"status": "success", "scanned": scanned, "updated": updated}


@celery_app.task(
    name="workers.catalog.backfill_normalized_fields",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    acks_late=True,
)
def backfill_normalized_fields(self, force: bool = False):
    """Nightly (or on-demand) refresh of the matcher's derived product columns."""
    import asyncio

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    run_id = self.request.id or "manual"
    logger.info("catalog.backfill.started", run_id=run_id, force=force)

    async def _backfill():
        from core.config import get_settings

        settings = get_settings()
        engine = create_async_engine(settings.database_url)
        try:
            async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            async with async_session() as db:
                return await backfill_product_name_fields(db, force=force)
        finally:
            await engine.dispose()

    try:
        return asyncio.run(_backfill())
    except Exception as exc:
        logger.error("catalog.backfill.failed", run_id=run_id, error=str(exc))
        raise self.retry(exc=exc)
