"""
Catalog payload schemas: bulk push and stock update bodies.

Payloads are validated in full before the reconciler touches the database,
so a malformed push never writes anything.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ─── Bulk push ──────────────────────────────────────────────────────────────


class Address(BaseModel):
    line1: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""


class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class StoreDetails(BaseModel):
    store_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    address: Address
    location: Location


class CategoryIn(BaseModel):
    id: str = Field(..., min_length=1)
    parent_id: str | None = None
    name: str = Field(..., min_length=1)
    slug: str = ""
    description: str = ""
    display_order: int = 0
    is_active: bool = True


class TaxIn(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    tax_id: str = Field(..., min_length=1)
    description: str = ""
    rate: float = Field(..., ge=0)
    tax_type: str = "percentage"
    is_inclusive: bool = False
    is_active: bool = True


class ProductIn(BaseModel):
    """One ERP product. Unknown keys are kept and stored as extra attributes."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    sku: str
    name: str = Field(..., min_length=1)
    slug: str | None = None
    description: str = ""
    category_id: str | None = None
    price: float = Field(..., ge=0)
    currency: str = "INR"
    unit: str | None = None
    unit_quantity: float | None = None
    primary_image_url: str | None = None
    images: list[str] = []
    brand: str | None = None
    manufacturer: str | None = None
    barcode: str | None = None
    ean: str | None = None
    taxes: list[str] = []
    is_active: bool = True
    is_featured: bool = False
    is_customizable: bool = False
    is_addon: bool = False

    @property
    def extra_attributes(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class VariationIn(BaseModel):
    id: str | None = None
    product_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    display_name: str = ""
    price: float = Field(..., ge=0)
    is_default: bool = False


class StoreProductIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock_quantity: int = Field(0, ge=0)
    is_in_stock: bool = True
    is_available: bool = True
    taxes: list[str] = []


class CatalogPushRequest(BaseModel):
    store_details: StoreDetails
    categories: list[CategoryIn] = []
    taxes: list[TaxIn] = []
    products: list[ProductIn] = Field(..., min_length=1)
    variations: list[VariationIn] = []
    store_products: list[StoreProductIn] | None = None

    def listings(self) -> list[StoreProductIn]:
        """Explicit store listings, or one per product when none were sent."""
        if self.store_products is not None:
            return self.store_products
        return [
            StoreProductIn(
                product_id=product.id,
                price=product.price,
                stock_quantity=0,
                is_in_stock=True,
                is_available=True,
                taxes=product.taxes,
            )
            for product in self.products
        ]


# ─── Stock update ───────────────────────────────────────────────────────────


class VariantStockIn(BaseModel):
    id: str = Field(..., min_length=1)
    stock_quantity: int = Field(..., ge=0)
    is_available: bool = True
    price: float = 0


class ProductStockIn(BaseModel):
    id: str = Field(..., min_length=1)
    stock_quantity: int = Field(..., ge=0)
    is_available: bool = True
    price: float = 0
    variants: list[VariantStockIn] = []


class StockUpdateRequest(BaseModel):
    store_id: str = Field(..., min_length=1)
    products: list[ProductStockIn] = Field(..., min_length=1)
