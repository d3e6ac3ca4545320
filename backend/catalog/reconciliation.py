"""
Catalog Reconciliation: apply one store's bulk feed to the shared catalog.

Stages, all inside the caller's session and committed once at the end:
  1. store upsert       (by store external id)
  2. category upsert    (by store + category external id, parents first)
  3. tax upsert         (by store + tax code)
  4. product upsert     (brand resolve -> match -> update or create)
     store listings     (by store + product external id)
     variations         (by listing + variation name)
     tax links          (by store + listing + tax)

Any failure rolls the whole push back and surfaces as CatalogPushError
naming the stage. Re-sending an identical feed creates nothing new.
"""

import uuid
from dataclasses import asdict, dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.brands import BrandResolver
from catalog.errors import CatalogConflictError, CatalogPushError
from catalog.matcher import ProductMatcher
from catalog.normalizer import derive_name_fields, slugify
from catalog.repository import SqlBrandRepository, SqlProductRepository, insert_or_conflict
from catalog.schemas import CatalogPushRequest, CategoryIn, ProductIn, StoreDetails, StoreProductIn, TaxIn, VariationIn
from db.models import (
    Category,
    Product,
    ProductImage,
    ProductVariation,
    Store,
    StoreProduct,
    StoreProductTax,
    Tax,
)

logger = structlog.get_logger()


@dataclass
class PushResult:
    products_created: int = 0
    products_updated: int = 0
    variations_processed: int = 0
    store_products_processed: int = 0
    taxes_processed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CatalogReconciler:
    def __init__(
        self,
        db: AsyncSession,
        matcher: ProductMatcher | None = None,
        brand_resolver: BrandResolver | None = None,
    ):
        self.db = db
        self.products = SqlProductRepository(db)
        self.matcher = matcher or ProductMatcher(self.products)
        self.brands = brand_resolver or BrandResolver(SqlBrandRepository(db))

    async def push_catalog(self, payload: CatalogPushRequest) -> PushResult:
        """Reconcile a validated feed and commit it as one transaction."""
        result = PushResult()
        log = logger.bind(store_external_id=payload.store_details.store_id)
        log.info(
            "catalog.push.started",
            products=len(payload.products),
            categories=len(payload.categories),
            taxes=len(payload.taxes),
            variations=len(payload.variations),
        )

        stage = "store_upsert"
        try:
            store = await self._upsert_store(payload.store_details)

            stage = "category_upsert"
            categories = await self._upsert_categories(store, payload.categories)

            stage = "tax_upsert"
            taxes = await self._upsert_taxes(store, payload.taxes)

            stage = "product_upsert"
            products = await self._upsert_products(store, payload.products, categories, result)
            listings = await self._upsert_listings(store, payload.listings(), products, taxes, result)
            await self._upsert_variations(payload.variations, listings, result)

            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            log.error("catalog.push.failed", stage=stage, error=str(exc), error_type=type(exc).__name__)
            raise CatalogPushError(stage, str(exc)) from exc

        log.info("catalog.push.completed", **result.as_dict())
        return result

    # ── Store / categories / taxes ─────────────────────────────────────────

    async def _get_store(self, external_id: str) -> Store | None:
        result = await self.db.execute(select(Store).where(Store.external_id == external_id))
        return result.scalar_one_or_none()

    async def _upsert_store(self, details: StoreDetails) -> Store:
        store = await self._get_store(details.store_id)
        if store is None:
            try:
                new_store = Store(
                    external_id=details.store_id,
                    name=details.name,
                    slug=slugify(details.name) or details.store_id,
                )
                store = await insert_or_conflict(self.db, new_store, "store", details.store_id)
            except CatalogConflictError:
                store = await self._get_store(details.store_id)
                if store is None:
                    raise

        store.name = details.name
        store.slug = slugify(details.name) or details.store_id
        store.address_line1 = details.address.line1
        store.city = details.address.city
        store.state = details.address.state
        store.postal_code = details.address.postal_code
        store.lat = details.location.lat
        store.lon = details.location.lng
        await self.db.flush()
        return store

    async def _upsert_categories(self, store: Store, categories: list[CategoryIn]) -> dict[str, uuid.UUID]:
        """Upsert the store's categories; returns external id -> category id."""
        result = await self.db.execute(select(Category).where(Category.store_id == store.store_id))
        existing = {row.external_id: row for row in result.scalars()}
        ids = {external_id: row.category_id for external_id, row in existing.items()}

        pending = {category.id: category for category in categories}
        while pending:
            ready = [
                category
                for category in pending.values()
                if not category.parent_id or category.parent_id not in pending or category.parent_id == category.id
            ]
            if not ready:
                raise ValueError(f"category parent cycle among: {sorted(pending)}")
            for item in ready:
                del pending[item.id]
                parent_id = ids.get(item.parent_id) if item.parent_id and item.parent_id != item.id else None
                if item.parent_id and parent_id is None:
                    logger.warning(
                        "catalog.category.parent_missing",
                        category_external_id=item.id,
                        parent_external_id=item.parent_id,
                    )
                category = existing.get(item.id)
                if category is None:
                    category = Category(category_id=uuid.uuid4(), store_id=store.store_id, external_id=item.id)
                    self.db.add(category)
                    existing[item.id] = category
                category.parent_id = parent_id
                category.name = item.name
                category.slug = item.slug or slugify(item.name)
                category.description = item.description
                category.display_order = item.display_order
                category.is_active = item.is_active
                ids[item.id] = category.category_id

        await self.db.flush()
        return ids

    async def _upsert_taxes(self, store: Store, taxes: list[TaxIn]) -> dict[str, uuid.UUID]:
        """Upsert the store's taxes; returns tax external id -> tax id."""
        result = await self.db.execute(select(Tax).where(Tax.store_id == store.store_id))
        rows = list(result.scalars())
        by_code = {row.tax_code: row for row in rows}

        for item in taxes:
            tax = by_code.get(item.tax_id)
            if tax is None:
                tax = Tax(tax_id=uuid.uuid4(), store_id=store.store_id, tax_code=item.tax_id)
                self.db.add(tax)
                by_code[item.tax_id] = tax
            tax.external_id = item.id
            tax.name = item.name
            tax.description = item.description
            tax.rate = item.rate
            tax.tax_type = item.tax_type
            tax.is_inclusive = item.is_inclusive
            tax.is_active = item.is_active

        await self.db.flush()
        return {tax.external_id: tax.tax_id for tax in by_code.values() if tax.external_id}

    # ── Products ───────────────────────────────────────────────────────────

    async def _upsert_products(
        self,
        store: Store,
        items: list[ProductIn],
        categories: dict[str, uuid.UUID],
        result: PushResult,
    ) -> dict[str, uuid.UUID]:
        """Match or create every product; returns product external id -> product id."""
        ids: dict[str, uuid.UUID] = {}
        for item in items:
            brand_id = await self.brands.resolve(item.brand)
            category_id = categories.get(item.category_id) if item.category_id else None
            product, created = await self._reconcile_product(store.store_id, item, brand_id, category_id)
            if created:
                result.products_created += 1
            else:
                result.products_updated += 1
            await self._upsert_images(product, item)
            ids[item.id] = product.product_id
        return ids

    async def _match(self, store_id: uuid.UUID, item: ProductIn):
        return await self.matcher.match(
            item.name,
            barcode=_blank_to_none(item.barcode),
            sku=_blank_to_none(item.sku),
            ean=_blank_to_none(item.ean),
            store_id=store_id,
            external_id=item.id,
        )

    async def _reconcile_product(
        self,
        store_id: uuid.UUID,
        item: ProductIn,
        brand_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
    ) -> tuple[Product, bool]:
        match = await self._match(store_id, item)
        if match is not None:
            logger.debug("catalog.product.matched", external_id=item.id, **match.as_dict())
            return await self._update_product(match.product_id, item, brand_id, category_id), False

        # Unavailable listings and inactive products are invisible to the
        # matcher, but the listing still owns this external id.
        product_id = await self.products.find_listing_product(store_id, item.id)
        if product_id is not None:
            logger.debug("catalog.product.relisted", external_id=item.id, product_id=str(product_id))
            return await self._update_product(product_id, item, brand_id, category_id), False

        barcode, ean = _blank_to_none(item.barcode), _blank_to_none(item.ean)
        product = Product(product_id=uuid.uuid4(), sku=_blank_to_none(item.sku), barcode=barcode, ean=ean)
        self._apply_product_fields(product, item, brand_id, category_id)
        try:
            await insert_or_conflict(self.db, product, "product", barcode or ean or item.id)
        except CatalogConflictError:
            # Another push, or an inactive product, already holds the barcode/EAN.
            product_id = await self.products.find_by_identifier(barcode, ean)
            if product_id is None:
                raise
            logger.info("catalog.product.reused_after_conflict", external_id=item.id, product_id=str(product_id))
            return await self._update_product(product_id, item, brand_id, category_id), False

        logger.debug("catalog.product.created", external_id=item.id, product_id=str(product.product_id))
        return product, True

    async def _update_product(
        self,
        product_id: uuid.UUID,
        item: ProductIn,
        brand_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
    ) -> Product:
        product = await self.db.get(Product, product_id)
        self._apply_product_fields(product, item, brand_id, category_id)
        return product

    def _apply_product_fields(
        self,
        product: Product,
        item: ProductIn,
        brand_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
    ) -> None:
        """Last-write-wins update of every mutable product field."""
        fields = derive_name_fields(item.name)
        product.name = item.name
        product.slug = item.slug or slugify(item.name) or item.sku
        product.description = item.description
        product.category_id = category_id
        product.brand_id = brand_id
        product.base_price = item.price
        product.currency = item.currency
        product.unit = item.unit
        product.unit_quantity = item.unit_quantity
        product.primary_image_url = item.primary_image_url
        product.manufacturer = item.manufacturer
        product.is_active = item.is_active
        product.is_featured = item.is_featured
        product.is_customizable = item.is_customizable
        product.is_addon = item.is_addon
        product.extra_attributes = item.extra_attributes
        product.normalized_name = fields.normalized_name
        product.size_free_name = fields.size_free_name
        product.extracted_volume_ml = fields.volume_ml
        product.extracted_weight_g = fields.weight_g

    async def _upsert_images(self, product: Product, item: ProductIn) -> None:
        urls = [url for url in [item.primary_image_url, *item.images] if url]
        if not urls:
            return
        result = await self.db.execute(
            select(ProductImage.image_url).where(ProductImage.product_id == product.product_id)
        )
        known = set(result.scalars())
        for position, url in enumerate(dict.fromkeys(urls)):
            if url in known:
                continue
            self.db.add(
                ProductImage(
                    product_id=product.product_id,
                    image_url=url,
                    display_order=position,
                    is_primary=url == item.primary_image_url,
                )
            )
            known.add(url)

    # ── Listings / variations / tax links ──────────────────────────────────

    async def _upsert_listings(
        self,
        store: Store,
        items: list[StoreProductIn],
        products: dict[str, uuid.UUID],
        taxes: dict[str, uuid.UUID],
        result: PushResult,
    ) -> dict[str, StoreProduct]:
        """Upsert listings and their tax links; returns external id -> listing."""
        rows = await self.db.execute(select(StoreProduct).where(StoreProduct.store_id == store.store_id))
        listings = {row.external_id: row for row in rows.scalars()}

        rows = await self.db.execute(select(StoreProductTax).where(StoreProductTax.store_id == store.store_id))
        links = {(row.store_product_id, row.tax_id): row for row in rows.scalars()}

        for item in items:
            product_id = products.get(item.product_id)
            if product_id is None:
                logger.warning("catalog.listing.product_missing", product_external_id=item.product_id)
                continue

            listing = listings.get(item.product_id)
            if listing is None:
                listing = StoreProduct(
                    store_product_id=uuid.uuid4(),
                    store_id=store.store_id,
                    external_id=item.product_id,
                )
                self.db.add(listing)
                listings[item.product_id] = listing
            listing.product_id = product_id
            listing.price = item.price
            listing.stock_quantity = item.stock_quantity
            listing.is_in_stock = item.is_in_stock
            listing.is_available = item.is_available
            result.store_products_processed += 1

            for tax_external_id in dict.fromkeys(item.taxes):
                tax_id = taxes.get(tax_external_id)
                if tax_id is None:
                    logger.warning(
                        "catalog.tax_link.tax_missing",
                        product_external_id=item.product_id,
                        tax_external_id=tax_external_id,
                    )
                    continue
                link = links.get((listing.store_product_id, tax_id))
                if link is None:
                    link = StoreProductTax(
                        store_id=store.store_id,
                        store_product_id=listing.store_product_id,
                        tax_id=tax_id,
                    )
                    self.db.add(link)
                    links[(listing.store_product_id, tax_id)] = link
                link.is_active = True
                result.taxes_processed += 1

        await self.db.flush()
        return listings

    async def _upsert_variations(
        self,
        items: list[VariationIn],
        listings: dict[str, StoreProduct],
        result: PushResult,
    ) -> None:
        listing_ids = [listing.store_product_id for listing in listings.values()]
        existing: dict[tuple[uuid.UUID, str], ProductVariation] = {}
        if listing_ids and items:
            rows = await self.db.execute(
                select(ProductVariation).where(ProductVariation.store_product_id.in_(listing_ids))
            )
            existing = {(row.store_product_id, row.name): row for row in rows.scalars()}

        for item in items:
            listing = listings.get(item.product_id)
            if listing is None:
                logger.warning(
                    "catalog.variation.listing_missing",
                    product_external_id=item.product_id,
                    variation=item.name,
                )
                continue
            key = (listing.store_product_id, item.name)
            variation = existing.get(key)
            if variation is None:
                variation = ProductVariation(store_product_id=listing.store_product_id, name=item.name)
                self.db.add(variation)
                existing[key] = variation
            variation.external_id = item.id
            variation.display_name = item.display_name or item.name
            variation.price = item.price
            variation.is_default = item.is_default
            result.variations_processed += 1

        await self.db.flush()
