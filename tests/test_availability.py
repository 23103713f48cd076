"""Tests for availability and stock checks."""

import pytest

from availability import available_sizes, check_stock, is_available, is_out_of_stock, size_options
from errors import ValidationFailure
from schemas import ShoppingMode
from tests.helpers import make_product, make_snapshot

BUY = ShoppingMode.BUY
RENT = ShoppingMode.RENT


class TestIsAvailable:
    def test_buy_follows_purchasable_flag(self):
        assert is_available(make_product(is_purchasable=True), BUY)
        assert not is_available(make_product(is_purchasable=False), BUY)

    def test_rent_follows_rentable_flag(self):
        assert is_available(make_product(is_rentable=True), RENT)
        assert not is_available(make_product(is_rentable=False), RENT)

    def test_neither_flag_is_never_available(self):
        product = make_product(is_purchasable=False, is_rentable=False)
        assert not is_available(product, BUY)
        assert not is_available(product, RENT)


class TestOutOfStock:
    def test_missing_record_is_out_of_stock(self):
        """A size with no inventory record counts as zero stock."""
        snapshot = make_snapshot(stock={"S": (3, 1)})
        assert is_out_of_stock(snapshot, "M", BUY) is True

    def test_uses_counter_for_mode(self):
        snapshot = make_snapshot(stock={"M": (0, 2)})
        assert is_out_of_stock(snapshot, "M", BUY) is True
        assert is_out_of_stock(snapshot, "M", RENT) is False

    def test_in_stock(self):
        snapshot = make_snapshot(stock={"M": (4, 0)})
        assert is_out_of_stock(snapshot, "M", BUY) is False


class TestAvailableSizes:
    def test_filters_positive_stock(self):
        snapshot = make_snapshot(stock={"S": (2, 0), "M": (0, 3), "L": (1, 1)})
        assert available_sizes(snapshot, BUY) == {"S", "L"}
        assert available_sizes(snapshot, RENT) == {"M", "L"}

    def test_unavailable_product_has_no_sizes(self):
        snapshot = make_snapshot(stock={"S": (2, 2)}, is_purchasable=False, is_rentable=False)
        assert available_sizes(snapshot, BUY) == set()
        assert size_options(snapshot, BUY) == []

    def test_size_options_cover_every_size(self):
        snapshot = make_snapshot(stock={"M": (1, 0)})
        options = dict(size_options(snapshot, BUY))
        assert list(options) == ["S", "M", "L", "XL", "XXL"]
        assert options["M"] is False
        assert options["XXL"] is True


class TestCheckStock:
    def test_no_size_selected(self):
        with pytest.raises(ValidationFailure, match="Please select a size"):
            check_stock(make_snapshot(), "", BUY)

    def test_unknown_size(self):
        with pytest.raises(ValidationFailure, match="Size not available"):
            check_stock(make_snapshot(stock={"S": (1, 1)}), "XL", BUY)

    def test_not_enough_for_quantity(self):
        with pytest.raises(ValidationFailure) as exc:
            check_stock(make_snapshot(stock={"S": (2, 0)}), "S", BUY, quantity=3)
        assert exc.value.title == "Not enough stock"
        assert "Only 2 item(s)" in exc.value.description

    def test_rental_needs_one_unit(self):
        check_stock(make_snapshot(stock={"S": (0, 1)}), "S", RENT, quantity=5)

    def test_rental_with_no_units(self):
        with pytest.raises(ValidationFailure, match="Not enough stock"):
            check_stock(make_snapshot(stock={"S": (5, 0)}), "S", RENT)
