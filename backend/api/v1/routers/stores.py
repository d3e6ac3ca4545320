"""
Stores Router — store reads and status/detail updates, addressed by the ERP store id.

Store reads are cache-aside through Redis; every write invalidates the entry.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_cache, get_current_user, get_db
from core.cache import RedisCache, cache_key
from db.models import Store

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/stores", tags=["stores"])


# ─── Schemas ────────────────────────────────────────────────────────────────


class StoreResponse(BaseModel):
    store_id: UUID
    external_id: str
    name: str
    slug: str
    description: str | None
    address_line1: str | None
    city: str | None
    state: str | None
    postal_code: str | None
    country: str
    lat: float | None
    lon: float | None
    phone: str | None
    email: str | None
    min_order_amount: float | None
    delivery_fee: float | None
    estimated_delivery_time: int | None
    is_active: bool
    is_open: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StoreStatus(BaseModel):
    external_id: str
    is_active: bool
    is_open: bool

    model_config = {"from_attributes": True}


class StoreStatusUpdate(BaseModel):
    is_active: bool | None = None
    is_open: bool | None = None

    @model_validator(mode="after")
    def _require_one(self):
        if self.is_active is None and self.is_open is None:
            raise ValueError("At least one of is_active or is_open must be provided")
        return self


class StoreDetailsUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    address_line1: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    lat: float | None = Field(None, ge=-90, le=90)
    lon: float | None = Field(None, ge=-180, le=180)
    phone: str | None = None
    email: str | None = Field(None, max_length=255)
    min_order_amount: float | None = Field(None, ge=0)
    delivery_fee: float | None = Field(None, ge=0)
    estimated_delivery_time: int | None = Field(None, ge=0)


# ─── Helpers ────────────────────────────────────────────────────────────────


def store_cache_key(external_id: str) -> str:
    return cache_key("store", {"external_id": external_id})


async def _load_store(db: AsyncSession, external_id: str) -> Store:
    result = await db.execute(select(Store).where(Store.external_id == external_id))
    store = result.scalar_one_or_none()
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return store


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("/{store_id}", response_model=StoreResponse)
async def get_store(
    store_id: str,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    user: dict = Depends(get_current_user),
):
    """Get a store by its ERP id (cache-aside)."""
    key = store_cache_key(store_id)
    cached = await cache.get_json(key)
    if cached is not None:
        logger.debug("stores.cache.hit", store_external_id=store_id)
        return cached

    store = await _load_store(db, store_id)
    body = StoreResponse.model_validate(store).model_dump(mode="json")
    await cache.set_json(key, body)
    return body


@router.get("/{store_id}/status", response_model=StoreStatus)
async def get_store_status(
    store_id: str,
    db: AsyncSession = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Get a store's active/open flags."""
    return await _load_store(db, store_id)


@router.put("/{store_id}/status", response_model=StoreStatus)
async def update_store_status(
    store_id: str,
    update: StoreStatusUpdate,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    user: dict = Depends(get_current_user),
):
    """Open/close or activate/deactivate a store."""
    store = await _load_store(db, store_id)
    for field, value in update.model_dump(exclude_none=True).items():
        setattr(store, field, value)
    store.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(store)
    await cache.delete(store_cache_key(store_id))
    logger.info("stores.status.updated", store_external_id=store_id, is_active=store.is_active, is_open=store.is_open)
    return store


@router.put("/{store_id}", response_model=StoreResponse)
async def update_store_details(
    store_id: str,
    update: StoreDetailsUpdate,
    db: AsyncSession = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
    user: dict = Depends(get_current_user),
):
    """Partially update a store's descriptive details."""
    store = await _load_store(db, store_id)
    changes = update.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field, value in changes.items():
        setattr(store, field, value)
    store.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(store)
    await cache.delete(store_cache_key(store_id))
    return store
