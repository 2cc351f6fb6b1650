"""Brand categories for the ranking filter.

Rules (first match wins, substring match on the lower-cased brand name):
- luxury, then streetwear, then sustainable keyword lists
- anything else is emerging
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class BrandCategory(str, Enum):
    LUXURY = "luxury"
    STREETWEAR = "streetwear"
    SUSTAINABLE = "sustainable"
    EMERGING = "emerging"


# Configuration (Locked)
LUXURY_BRANDS = ("bottega veneta", "jacquemus", "loewe", "jil sander", "maison margiela")
STREETWEAR_BRANDS = ("stussy", "supreme", "bape", "kith", "off-white")
SUSTAINABLE_BRANDS = ("stella mccartney", "veja", "patagonia", "reformation")

_RULES: tuple[tuple[BrandCategory, tuple[str, ...]], ...] = (
    (BrandCategory.LUXURY, LUXURY_BRANDS),
    (BrandCategory.STREETWEAR, STREETWEAR_BRANDS),
    (BrandCategory.SUSTAINABLE, SUSTAINABLE_BRANDS),
)


def categorize_brand(brand_name: str) -> BrandCategory:
    name = brand_name.strip().lower()
    for category, keywords in _RULES:
        if any(k in name for k in keywords):
            return category
    return BrandCategory.EMERGING


def parse_brand_category(value: Optional[str]) -> Optional[BrandCategory]:
    """None (or "all") means no filter; unknown names raise ValueError."""
    if value is None:
        return None
    v = value.strip().lower()
    if not v or v == "all":
        return None
    return BrandCategory(v)
