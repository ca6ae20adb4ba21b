"""Tests for cart aggregation."""

from decimal import Decimal

import pytest

from cart_manager import CartManager
from conftest import COKE, COOKIES


@pytest.fixture
def misses():
    return []


@pytest.fixture
def cart(catalog, misses):
    return CartManager(catalog, on_miss=misses.append)


class TestAddByCode:

    def test_repeated_code_merges_into_one_line(self, cart):
        """Adding the same code N times gives one line with quantity N."""
        for _ in range(5):
            cart.add_by_code(COKE)

        lines = cart.get_lines()
        assert len(lines) == 1
        assert lines[0].quantity == 5
        assert lines[0].subtotal == Decimal("7500")

    def test_new_codes_append_in_first_scan_order(self, cart):
        cart.add_by_code(COOKIES)
        cart.add_by_code(COKE)
        cart.add_by_code(COOKIES)

        assert [line.code for line in cart.get_lines()] == [COOKIES, COKE]
        assert [line.quantity for line in cart.get_lines()] == [2, 1]

    def test_input_is_trimmed(self, cart):
        cart.add_by_code(f"  {COKE}  ")
        cart.add_by_code(COKE)

        assert len(cart) == 1
        assert cart.get_lines()[0].quantity == 2

    @pytest.mark.parametrize("blank", ["", "   ", None])
    def test_blank_input_is_a_no_op(self, cart, misses, blank):
        assert cart.add_by_code(blank) is None
        assert len(cart) == 0
        assert misses == []

    def test_unknown_code_signals_miss(self, cart, misses):
        """A catalog miss leaves the cart alone and reports the clean code."""
        assert cart.add_by_code(" 999 ") is None
        assert len(cart) == 0
        assert misses == ["999"]

    def test_unknown_code_without_listener(self, catalog):
        cart = CartManager(catalog)
        assert cart.add_by_code("999") is None
        assert cart.get_lines() == []

    def test_line_keeps_its_price_when_incremented(self, cart, catalog):
        from catalog import Product

        cart.add_by_code(COKE)
        catalog.put(Product(COKE, "Coca Cola", "new price", Decimal("2000")))
        line = cart.add_by_code(COKE)

        assert line.unit_price == Decimal("1500")
        assert line.subtotal == Decimal("3000")


class TestTotals:

    def test_empty_cart_total_is_zero(self, cart):
        assert cart.total == Decimal("0")
        assert cart.item_count == 0

    def test_total_matches_lines_after_every_mutation(self, cart):
        """total == sum of subtotals after each add and remove."""
        steps = [
            ("add", COKE), ("add", COOKIES), ("add", COKE), ("add", "999"),
            ("remove", COOKIES), ("add", "7790000000002"), ("remove", "nope"),
            ("add", COOKIES), ("remove", COKE),
        ]
        for op, code in steps:
            if op == "add":
                cart.add_by_code(code)
            else:
                cart.remove_by_code(code)
            assert cart.get_total() == sum((line.subtotal for line in cart.get_lines()), Decimal("0"))

        assert cart.total == Decimal("4100")
        assert cart.item_count == 2


class TestRemoveAndClear:

    def test_remove_drops_whole_line(self, cart):
        for _ in range(3):
            cart.add_by_code(COKE)
        cart.add_by_code(COOKIES)

        assert cart.remove_by_code(COKE) is True
        assert [line.code for line in cart.get_lines()] == [COOKIES]

    def test_remove_missing_code(self, cart):
        assert cart.remove_by_code(COKE) is False

    def test_clear_all_resets_entry(self, cart):
        cart.add_by_code(COKE)
        cart.entry = "77912"

        cart.clear_all()

        assert cart.get_lines() == []
        assert cart.entry == ""
        assert cart.total == Decimal("0")


class TestManualEntry:

    def test_submit_entry_adds_and_clears(self, cart):
        cart.entry = f" {COOKIES}"
        line = cart.submit_entry()

        assert line.code == COOKIES
        assert cart.entry == ""

    def test_submit_entry_clears_on_miss(self, cart, misses):
        cart.entry = "123"
        assert cart.submit_entry() is None
        assert cart.entry == ""
        assert misses == ["123"]

    def test_typed_and_scanned_codes_merge(self, catalog):
        """Manual entry goes through the same aggregation as scans."""
        cart = CartManager(catalog)
        cart.add_by_code(COKE)       # scanned
        cart.entry = COKE
        cart.submit_entry()          # typed

        assert cart.get_lines()[0].quantity == 2
