"""
Product Matcher: decide whether an incoming item is a product we already have.

Layers run in order and the first hit wins:

  0. existing_external_id    available listing for (store, external id)  100
  1. barcode                 exact barcode                              100
  2. ean                     exact EAN                                  100
  3. sku                     exact SKU                                   98
  4. normalized_name_volume  same size-free name, volume within 10 ml     95
  5. normalized_name_weight  same size-free name, weight within 10 g      95
  6. fuzzy                   best name similarity above 0.45       score*100

An exact identifier always beats a fuzzy name match, however similar the
names are. Exact-layer ties go to the earliest-created product; fuzzy ties
go to the earliest-created product among the best scores.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from rapidfuzz import fuzz, utils

from catalog.normalizer import extract_volume_ml, extract_weight_g, strip_size
from catalog.repository import ProductRepository
from core.config import get_settings

logger = structlog.get_logger()

Scorer = Callable[[str, str], float]


class MatchType(str, Enum):
    EXISTING_EXTERNAL_ID = "existing_external_id"
    BARCODE = "barcode"
    EAN = "ean"
    SKU = "sku"
    NORMALIZED_NAME_VOLUME = "normalized_name_volume"
    NORMALIZED_NAME_WEIGHT = "normalized_name_weight"
    FUZZY = "fuzzy"
    NONE = "none"


@dataclass(frozen=True)
class MatchResult:
    product_id: uuid.UUID
    match_type: MatchType
    confidence: float

    def as_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "match_type": self.match_type.value,
            "confidence": round(self.confidence, 2),
        }


def name_similarity(a: str, b: str) -> float:
    """Default fuzzy scorer: normalized Levenshtein ratio on a 0-1 scale."""
    return fuzz.ratio(a, b, processor=utils.default_process) / 100.0


class ProductMatcher:
    def __init__(
        self,
        products: ProductRepository,
        scorer: Scorer = name_similarity,
        fuzzy_threshold: float | None = None,
        size_tolerance: float | None = None,
    ):
        settings = get_settings()
        self.products = products
        self.scorer = scorer
        self.fuzzy_threshold = settings.fuzzy_match_threshold if fuzzy_threshold is None else fuzzy_threshold
        self.size_tolerance = settings.size_tolerance if size_tolerance is None else size_tolerance

    async def match(
        self,
        name: str,
        barcode: str | None = None,
        sku: str | None = None,
        ean: str | None = None,
        store_id: uuid.UUID | None = None,
        external_id: str | None = None,
    ) -> MatchResult | None:
        """Run the layers in order; None means no layer matched."""
        result = await self._match(name, barcode, sku, ean, store_id, external_id)
        if result is not None:
            logger.debug("catalog.match.found", name=name, **result.as_dict())
        return result

    async def _match(self, name, barcode, sku, ean, store_id, external_id) -> MatchResult | None:
        if store_id is not None and external_id:
            product_id = await self.products.find_listed(store_id, external_id)
            if product_id is not None:
                return MatchResult(product_id, MatchType.EXISTING_EXTERNAL_ID, 100.0)

        exact_layers = (
            (barcode, self.products.find_by_barcode, MatchType.BARCODE, 100.0),
            (ean, self.products.find_by_ean, MatchType.EAN, 100.0),
            (sku, self.products.find_by_sku, MatchType.SKU, 98.0),
        )
        for value, lookup, match_type, confidence in exact_layers:
            value = (value or "").strip()
            if not value:
                continue
            product_id = await lookup(value)
            if product_id is not None:
                return MatchResult(product_id, match_type, confidence)

        base = strip_size(name)
        if base:
            volume = extract_volume_ml(name)
            if volume is not None:
                product_id = await self.products.find_by_name_and_volume(base, volume, self.size_tolerance)
                if product_id is not None:
                    return MatchResult(product_id, MatchType.NORMALIZED_NAME_VOLUME, 95.0)

            weight = extract_weight_g(name)
            if weight is not None:
                product_id = await self.products.find_by_name_and_weight(base, weight, self.size_tolerance)
                if product_id is not None:
                    return MatchResult(product_id, MatchType.NORMALIZED_NAME_WEIGHT, 95.0)

        return await self._fuzzy(name)

    async def _fuzzy(self, name: str) -> MatchResult | None:
        if not name or not name.strip():
            return None
        best_id: uuid.UUID | None = None
        best_score = 0.0
        for product_id, candidate in await self.products.fuzzy_candidates():
            score = self.scorer(name, candidate)
            # Strict ">" keeps the earliest candidate on ties.
            if score > best_score:
                best_id, best_score = product_id, score
        if best_id is None or best_score <= self.fuzzy_threshold:
            return None
        return MatchResult(best_id, MatchType.FUZZY, best_score * 100.0)
