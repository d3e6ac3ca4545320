"""
Tests for product name normalization and size extraction.
"""

import pytest

from catalog.normalizer import (
    brand_key,
    derive_name_fields,
    extract_volume_ml,
    extract_weight_g,
    normalize,
    slugify,
    strip_size,
)


class TestNormalize:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize("Coca-Cola (Original)!") == "coca cola original"

    def test_removes_stop_words_as_whole_tokens(self):
        assert normalize("Coca Cola Soft Drink Bottle 1 L") == "coca cola 1 l"
        # "canada" contains "can" but is not the token "can"
        assert normalize("Canada Dry Tin") == "canada dry"

    def test_canonicalizes_unit_tokens(self):
        assert normalize("Milk 1 Litre") == "milk 1 l"
        assert normalize("Juice 200 Millilitre") == "juice 200 ml"
        assert normalize("Rice 5 Kilogram") == "rice 5 kg"
        assert normalize("Salt 500 gm") == "salt 500 g"

    def test_collapses_whitespace(self):
        assert normalize("  Amul   Butter \t 100 g ") == "amul butter 100 g"

    @pytest.mark.parametrize("value", [None, "", "   ", "!!!"])
    def test_empty_inputs(self, value):
        assert normalize(value) == ""

    def test_is_deterministic(self):
        assert normalize("Parle-G Biscuits 800g") == normalize("Parle-G Biscuits 800g")


class TestSizeExtraction:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Coca Cola 1L", 1000.0),
            ("Coca Cola 1.5 L", 1500.0),
            ("Sprite 2 litre", 2000.0),
            ("Pepsi 750ml", 750.0),
            ("Fanta 300 ML", 300.0),
            ("Bisleri 0.5ltr", 500.0),
        ],
    )
    def test_volume(self, name, expected):
        assert extract_volume_ml(name) == pytest.approx(expected)

    def test_litres_win_over_millilitres(self):
        assert extract_volume_ml("Combo 500ml + 1L") == pytest.approx(1000.0)

    def test_no_volume(self):
        assert extract_volume_ml("Lays Classic Salted") is None
        assert extract_volume_ml("Tata Salt 1kg") is None

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Basmati Rice 5kg", 5000.0),
            ("Atta 2.5 Kilo", 2500.0),
            ("Tata Salt 500g", 500.0),
            ("Maggi Noodles 70 gm", 70.0),
        ],
    )
    def test_weight(self, name, expected):
        assert extract_weight_g(name) == pytest.approx(expected)

    def test_no_weight(self):
        assert extract_weight_g("Pepsi 750ml") is None
        assert extract_weight_g(None) is None


class TestDerivedFields:
    def test_strip_size_removes_quantities(self):
        assert strip_size("Coca-Cola 1.5L") == "coca cola"
        assert strip_size("Coca Cola Soft Drink 1 Litre") == "coca cola"
        assert strip_size("Basmati Rice 5kg") == "basmati rice"

    def test_same_product_different_spellings_share_size_free_name(self):
        assert strip_size("Amul Taaza Milk 1L") == strip_size("AMUL TAAZA MILK 1000 ml")

    def test_derive_name_fields(self):
        fields = derive_name_fields("Thums Up 750ml Bottle")
        assert fields.normalized_name == "thums up 750ml"
        assert fields.size_free_name == "thums up"
        assert fields.volume_ml == pytest.approx(750.0)
        assert fields.weight_g is None


class TestBrandKeyAndSlug:
    def test_spacing_and_punctuation_variants_share_a_key(self):
        assert brand_key("Coca Cola") == brand_key("CocaCola") == brand_key("Coca-Cola") == "cocacola"

    def test_different_brand_differs(self):
        assert brand_key("Coke") != brand_key("Coca Cola")

    def test_slugify(self):
        assert slugify("Haldiram's  Snacks!") == "haldiram-s-snacks"
        assert slugify("--Amul--") == "amul"
        assert slugify("") == ""
