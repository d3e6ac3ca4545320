"""
Product Name Normalizer

Pure text functions shared by the matcher, the brand resolver and the
derived-column backfill:

  normalize("Coca-Cola Soft Drink 1 Litre")  -> "coca cola 1 l"
  extract_volume_ml("Coca-Cola 1.5L")        -> 1500.0
  extract_weight_g("Basmati Rice 5 kg")      -> 5000.0
  strip_size("Coca-Cola 1.5L")               -> "coca cola"

All functions are deterministic and memoized; they never raise on odd input
(None and empty strings normalize to "").
"""

import re
from dataclasses import dataclass
from functools import lru_cache

STOP_WORDS = ("soft", "drink", "bottle", "pack", "packet", "box", "can", "tin", "jar", "pouch")

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_STOP_WORD_RE = re.compile(r"\b(?:" + "|".join(STOP_WORDS) + r")\b")
_WHITESPACE = re.compile(r"\s+")

# Applied in order; each rewrites whole tokens only.
_UNIT_REWRITES = (
    (re.compile(r"\b(?:litre|liter|ltr|lt)\b"), "l"),
    (re.compile(r"\b(?:millilitre|milliliter|milli)\b"), "ml"),
    (re.compile(r"\b(?:kilogram|kilo)\b"), "kg"),
    (re.compile(r"\b(?:gram|gm)\b"), "g"),
)

_NUMBER = r"(\d+\.?\d*)\s*"
_LITRES = re.compile(_NUMBER + r"(?:l|ltr|lt|litre|liter)\b", re.IGNORECASE)
_MILLILITRES = re.compile(_NUMBER + r"(?:ml|millilitre|milliliter)\b", re.IGNORECASE)
_KILOGRAMS = re.compile(_NUMBER + r"(?:kg|kilo|kilogram)\b", re.IGNORECASE)
_GRAMS = re.compile(_NUMBER + r"(?:g|gm|gram)\b", re.IGNORECASE)

# Any quantity token, used to build the size-free comparison name.
_QUANTITY = re.compile(
    r"\d+(?:\.\d+)?\s*"
    r"(?:millilitre|milliliter|milli|ml|litre|liter|ltr|lt|l|kilogram|kilo|kg|gram|gm|g)s?\b",
    re.IGNORECASE,
)
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class NameFields:
    """Columns derived from a product name, written on every product save."""

    normalized_name: str
    size_free_name: str
    volume_ml: float | None
    weight_g: float | None


@lru_cache(maxsize=65536)
def normalize(name: str | None) -> str:
    """Canonical comparison form of a product name."""
    if not name:
        return ""
    text = _NON_ALNUM.sub(" ", name.lower())
    text = _STOP_WORD_RE.sub(" ", text)
    for pattern, replacement in _UNIT_REWRITES:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def _first_quantity(name: str | None, primary: re.Pattern, secondary: re.Pattern, scale: float) -> float | None:
    if not name:
        return None
    match = primary.search(name)
    if match:
        return float(match.group(1)) * scale
    match = secondary.search(name)
    if match:
        return float(match.group(1))
    return None


@lru_cache(maxsize=65536)
def extract_volume_ml(name: str | None) -> float | None:
    """Volume in millilitres from the first litre (else millilitre) token."""
    return _first_quantity(name, _LITRES, _MILLILITRES, 1000.0)


@lru_cache(maxsize=65536)
def extract_weight_g(name: str | None) -> float | None:
    """Weight in grams from the first kilogram (else gram) token."""
    return _first_quantity(name, _KILOGRAMS, _GRAMS, 1000.0)


@lru_cache(maxsize=65536)
def strip_size(name: str | None) -> str:
    """Normalized name with every quantity token removed."""
    if not name:
        return ""
    return normalize(_QUANTITY.sub(" ", name))


def brand_key(name: str | None) -> str:
    """Spacing-insensitive brand key: "Coca Cola" and "CocaCola" share one."""
    return normalize(name).replace(" ", "")


def slugify(text: str | None) -> str:
    if not text:
        return ""
    return _SLUG_SEPARATORS.sub("-", text.lower()).strip("-")


def derive_name_fields(name: str | None) -> NameFields:
    return NameFields(
        normalized_name=normalize(name),
        size_free_name=strip_size(name),
        volume_ml=extract_volume_ml(name),
        weight_g=extract_weight_g(name),
    )
