from __future__ import annotations

import pytest

from derive.core.brand_category import BrandCategory, categorize_brand, parse_brand_category


@pytest.mark.parametrize(
    "brand, expected",
    [
        ("Supreme", BrandCategory.STREETWEAR),
        ("OFF-WHITE c/o Virgil", BrandCategory.STREETWEAR),
        ("Maison Margiela Paris", BrandCategory.LUXURY),
        ("  Loewe ", BrandCategory.LUXURY),
        ("Veja", BrandCategory.SUSTAINABLE),
        ("Acme", BrandCategory.EMERGING),
    ],
)
def test_categorize_brand(brand: str, expected: BrandCategory):
    assert categorize_brand(brand) is expected


def test_luxury_keywords_win_over_later_lists():
    assert categorize_brand("Jacquemus x Kith") is BrandCategory.LUXURY


def test_parse_brand_category():
    assert parse_brand_category(None) is None
    assert parse_brand_category("all") is None
    assert parse_brand_category(" ALL ") is None
    assert parse_brand_category("Streetwear") is BrandCategory.STREETWEAR
    with pytest.raises(ValueError):
        parse_brand_category("footwear")
