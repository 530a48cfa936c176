"""Tests for price normalization and budget ranges."""
import random

import pytest

from bundlegen.core.pricing import (
    BUDGET_RANGES,
    DENOMINATION_CP,
    budget_range,
    cp_to_display_gp,
    fallback_base_price_cp,
    is_within_budget,
    normalize_imported_price_gp,
    normalize_price,
    parse_price_string,
    roll_shop_price,
)
from bundlegen.core.budget import BudgetTier


class TestNormalizePrice:
    """Tests for converting raw price fields to copper."""

    @pytest.mark.parametrize("denomination", ["cp", "sp", "ep", "gp", "pp"])
    @pytest.mark.parametrize("value", [1, 3, 25, 1200])
    def test_object_price_uses_denomination_multiplier(self, value, denomination):
        """{value, denomination} converts with the fixed multiplier."""
        assert normalize_price({"value": value, "denomination": denomination}) == value * DENOMINATION_CP[denomination]

    @pytest.mark.parametrize("value", [1, 7, 150])
    def test_bare_number_is_gold(self, value):
        """A bare number is assumed to be gold pieces."""
        assert normalize_price(value) == value * 100

    def test_string_with_denomination(self):
        """Strings carry their own denomination."""
        assert normalize_price("3 gp") == 300
        assert normalize_price("50cp") == 50
        assert normalize_price("2 PP") == 2000

    def test_string_without_denomination_defaults_to_gold(self):
        """A string number without denomination is gold."""
        assert normalize_price("12") == 1200

    def test_fractional_values_round_to_copper(self):
        """Fractions convert to the nearest copper."""
        assert normalize_price("0.5 gp") == 50
        assert normalize_price({"value": 0.25, "denomination": "sp"}) == 2

    def test_unit_key_is_accepted(self):
        """Some catalogs use 'unit' instead of 'denomination'."""
        assert normalize_price({"value": 4, "unit": "sp"}) == 40

    def test_missing_denomination_in_object_defaults_to_gold(self):
        """An object without denomination is gold."""
        assert normalize_price({"value": 2}) == 200

    @pytest.mark.parametrize("raw", [None, "", "free", {"value": "n/a"}, {"denomination": "gp"}, [], True, float("nan")])
    def test_unparseable_is_none(self, raw):
        """Unparseable input never raises and yields None."""
        assert normalize_price(raw) is None


class TestParsePriceString:
    """Tests for the price string parser."""

    def test_first_number_wins(self):
        """Only the first number and its denomination are used."""
        assert parse_price_string("5 sp or 1 gp") == (5.0, "sp")

    def test_no_number(self):
        """Strings without a number are rejected."""
        assert parse_price_string("priceless") is None


class TestBudgetRanges:
    """Tests for budget price ranges."""

    def test_elite_widens_with_magic(self):
        """Elite's ceiling rises when magic is allowed."""
        assert budget_range("elite", allow_magic=False) == BUDGET_RANGES["elite"]
        assert budget_range("elite", allow_magic=True) == BUDGET_RANGES["elite_magic"]

    def test_other_tiers_ignore_magic(self):
        """Only elite has a magic variant."""
        assert budget_range("poor", allow_magic=True) == BUDGET_RANGES["poor"]

    def test_enum_and_unknown_budget(self):
        """Enum members work; unknown labels fall back to normal."""
        assert budget_range(BudgetTier.WELL) == BUDGET_RANGES["well"]
        assert budget_range("lavish") == BUDGET_RANGES["normal"]

    def test_unknown_price_is_within_budget(self):
        """None prices are never filtered out."""
        assert is_within_budget(None, "poor") is True

    def test_within_budget_bounds(self):
        """Range bounds are inclusive."""
        assert is_within_budget(100, "poor") is True
        assert is_within_budget(101, "poor") is False


class TestShopPricing:
    """Tests for shop price rolls."""

    def test_variance_stays_in_bounds(self, rng):
        """Rolled prices stay within 70%-130% of the base."""
        for _ in range(200):
            base, rolled = roll_shop_price(1000, "normal", rng=rng)
            assert base == 1000
            assert 700 <= rolled <= 1300

    def test_unknown_base_is_invented_from_range(self, rng):
        """Unpriced records get a base price from 15%-55% of the range span."""
        low, high = BUDGET_RANGES["well"]
        spread = high - low
        for _ in range(100):
            base = fallback_base_price_cp("well", rng=rng)
            assert low + int(spread * 0.15) <= base <= low + int(spread * 0.55)

    def test_rolled_price_at_least_one(self):
        """Tiny prices never roll to zero."""
        _, rolled = roll_shop_price(1, "poor", rng=random.Random(0))
        assert rolled >= 1

    def test_display_gp_minimum(self):
        """Display prices are whole gold, at least 1."""
        assert cp_to_display_gp(20) == 1
        assert cp_to_display_gp(1490) == 15


class TestImportedPrice:
    """Tests for imported price overrides."""

    def test_direct_gp(self):
        """A direct gp value wins."""
        assert normalize_imported_price_gp(12, {"value": 1, "denomination": "pp"}) == 12

    def test_object_price_converts_to_gp(self):
        """Object prices convert to gold."""
        assert normalize_imported_price_gp(None, {"value": 3, "denomination": "pp"}) == 30
        assert normalize_imported_price_gp(None, {"value": 5, "unit": "sp"}) == pytest.approx(0.5)

    def test_non_positive_is_none(self):
        """Zero, negative and junk prices are ignored."""
        assert normalize_imported_price_gp(0, None) is None
        assert normalize_imported_price_gp(-3, "abc") is None
        assert normalize_imported_price_gp(None, {"value": 0}) is None
