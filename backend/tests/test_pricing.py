"""
Pure pricing helpers: slugs, order totals and promotion selection.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

from app.services.order_service import calc_totals
from app.services.product_views import compute_sale
from app.slug_utils import slugify


NOW = datetime(2026, 3, 1, 12, 0, 0)


def _promo(pid="p", percent_off=None, price_off=None, active=True, starts_at=None, ends_at=None, title="Promo"):
    return SimpleNamespace(
        id=pid,
        title=title,
        active=active,
        percent_off=percent_off,
        price_off=Decimal(price_off) if price_off is not None else None,
        starts_at=starts_at or NOW - timedelta(days=1),
        ends_at=ends_at or NOW + timedelta(days=1),
    )


def _product(price, promotions):
    return SimpleNamespace(price=Decimal(price), promotions=promotions)


class TestSlugify:

    def test_lowercases_and_collapses_separators(self):
        assert slugify("Floor Care") == "floor-care"
        assert slugify("Non-Acid Bathroom & Bowl Cleaners") == "non-acid-bathroom-bowl-cleaners"

    def test_strips_edge_dashes(self):
        assert slugify("  --Glass Cleaners!! ") == "glass-cleaners"

    def test_deterministic(self):
        assert slugify("Sodium Hypochlorite 12%") == slugify("Sodium Hypochlorite 12%")
        assert slugify("Sodium Hypochlorite 12%") == "sodium-hypochlorite-12"

    def test_non_ascii_letters_are_separators(self):
        assert slugify("Café Noir") == "caf-noir"


class TestCalcTotals:

    def test_single_line(self):
        totals = calc_totals([{"quantity": 3, "unit_price": Decimal("12.99")}])
        assert totals["subtotal"] == Decimal("38.97")
        assert totals["total"] == totals["subtotal"]

    def test_rounds_half_up(self):
        totals = calc_totals([{"quantity": 1, "unit_price": "0.005"}])
        assert totals["subtotal"] == Decimal("0.01")

    def test_sums_lines(self):
        totals = calc_totals([
            {"quantity": 2, "unit_price": 10},
            {"quantity": 1, "unit_price": "0.5"},
        ])
        assert totals["total"] == Decimal("20.50")

    def test_malformed_numbers_count_as_zero(self):
        totals = calc_totals([
            {"quantity": "abc", "unit_price": 5},
            {"quantity": 2, "unit_price": None},
            {"quantity": 1, "unit_price": 4},
        ])
        assert totals["subtotal"] == Decimal("4.00")

    def test_empty(self):
        assert calc_totals([])["total"] == Decimal("0.00")


class TestComputeSale:

    def test_lowest_price_wins(self):
        product = _product("40", [
            _promo("pct", percent_off=10),
            _promo("flat", price_off="5"),
        ])
        sale = compute_sale(product, NOW)
        assert sale["promotionId"] == "flat"
        assert sale["salePrice"] == 35.0
        assert sale["priceOff"] == 5.0
        assert "percentOff" not in sale

    def test_percent_off(self):
        sale = compute_sale(_product("19.99", [_promo(percent_off=15)]), NOW)
        # 19.99 * 0.85 = 16.9915
        assert sale["salePrice"] == 16.99
        assert sale["percentOff"] == 15

    def test_inactive_promotion_never_selected(self):
        product = _product("40", [_promo(percent_off=50, active=False)])
        assert compute_sale(product, NOW) is None

    def test_out_of_window_never_selected(self):
        product = _product("40", [
            _promo("future", percent_off=50, starts_at=NOW + timedelta(hours=1), ends_at=NOW + timedelta(days=2)),
            _promo("past", percent_off=50, starts_at=NOW - timedelta(days=2), ends_at=NOW - timedelta(seconds=1)),
        ])
        assert compute_sale(product, NOW) is None

    def test_window_bounds_are_inclusive(self):
        product = _product("40", [_promo(percent_off=10, starts_at=NOW, ends_at=NOW)])
        assert compute_sale(product, NOW)["salePrice"] == 36.0

    def test_promotion_without_discount_ignored(self):
        assert compute_sale(_product("40", [_promo()]), NOW) is None

    def test_clamped_at_zero(self):
        sale = compute_sale(_product("3", [_promo(price_off="5")]), NOW)
        assert sale["salePrice"] == 0.0

    def test_zero_price_product_has_no_sale(self):
        assert compute_sale(_product("0", [_promo(price_off="5")]), NOW) is None

    def test_first_promotion_wins_ties(self):
        product = _product("40", [_promo("a", price_off="4"), _promo("b", percent_off=10)])
        assert compute_sale(product, NOW)["promotionId"] == "a"
