"""
Products Router — bulk catalog push and stock updates from ERP/POS connectors.
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_cache, get_current_user, get_db
from api.v1.routers.stores import store_cache_key
from catalog.errors import CatalogPushError, StoreNotFoundError
from catalog.reconciliation import CatalogReconciler
from catalog.schemas import CatalogPushRequest, StockUpdateRequest
from catalog.stock import StockUpdater
from core.cache import RedisCache
from core.config import get_settings

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/products", tags=["products"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class PushCounts(BaseModel):
    products_created: int
    products_updated: int
    variations_processed: int
    store_products_processed: int
    taxes_processed: int


class PushResponse(BaseModel):
    status: str = "success"
    data: PushCounts
    message: str


class StockCounts(BaseModel):
    products_updated: int
    products_not_found: int
    variants_updated: int
    variants_not_found: int


class StockResponse(BaseModel):
    status: str = "success"
    data: StockCounts
    message: str


# ─── Helpers ────────────────────────────────────────────────────────────────


async def _within_request_budget(db: AsyncSession, work, route: str):
    """Await work under the request timeout; a timed-out unit of work is rolled back."""
    timeout = get_settings().request_timeout_seconds
    try:
        return await asyncio.wait_for(work, timeout=timeout)
    except asyncio.TimeoutError:
        await db.rollback()
        logger.warning("http.request.timeout", route=route, timeout_seconds=timeout)
        raise HTTPException(status_code=504, detail="Request timed out")


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.post("/push", response_model=PushResponse)
async def push_products(
    payload: CatalogPushRequest,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    user: dict = Depends(get_current_user),
):
    """Reconcile a store's full catalog feed into the shared catalog."""
    try:
        result = await _within_request_budget(db, CatalogReconciler(db).push_catalog(payload), "products.push")
    except CatalogPushError as exc:
        raise HTTPException(status_code=500, detail={"code": exc.code, "message": exc.message})
    await cache.delete(store_cache_key(payload.store_details.store_id))
    return PushResponse(
        data=PushCounts(**result.as_dict()),
        message=f"Catalog for store {payload.store_details.store_id} reconciled",
    )


@router.post("/stock", response_model=StockResponse)
async def update_stock(
    payload: StockUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Update stock, availability and price of existing store listings."""
    try:
        result = await _within_request_budget(db, StockUpdater(db).apply(payload), "products.stock")
    except StoreNotFoundError:
        raise HTTPException(status_code=404, detail="Store not found")
    return StockResponse(
        data=StockCounts(**result.as_dict()),
        message=f"Stock updated for store {payload.store_id}",
    )
