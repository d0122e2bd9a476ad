"""Tests for CartStore."""

import pytest

from schoolcart.cart_store import CartStore
from schoolcart.errors import (
    CartNotFoundError,
    ProductNotFoundError,
    QuantityLimitError,
    StoreNotFoundError,
)


class TestCartStore:
    def test_load_missing_raises(self, data_dir):
        with pytest.raises(CartNotFoundError):
            CartStore(data_dir).load("nope")

    def test_invalid_id_raises(self, data_dir):
        with pytest.raises(CartNotFoundError):
            CartStore(data_dir).load("../escape")

    def test_load_or_create_does_not_save(self, data_dir):
        store = CartStore(data_dir)
        cart = store.load_or_create("fresh")
        assert cart.id == "fresh"
        assert not store.exists("fresh")

    def test_add_accumulates_and_persists(self, data_dir):
        store = CartStore(data_dir)
        store.add("c1", "stationery", "PEN", 2)
        store.add("c1", "stationery", "PEN")

        cart = CartStore(data_dir).load("c1")
        assert cart.qty("stationery", "PEN") == 3
        assert not list(store.carts_dir.glob(".cart_*.tmp"))

    def test_set_qty_zero_removes(self, data_dir):
        store = CartStore(data_dir)
        store.add("c1", "books", "BOOK-A", 2)
        cart = store.set_qty("c1", "books", "BOOK-A", 0)
        assert cart.lines == {}
        assert store.load("c1").lines == {}

    def test_quantity_limit(self, data_dir):
        store = CartStore(data_dir)
        store.set_qty("c1", "stationery", "PEN", 10)

        with pytest.raises(QuantityLimitError) as exc_info:
            store.add("c1", "stationery", "PEN")
        assert exc_info.value.max_qty == 10
        assert store.load("c1").qty("stationery", "PEN") == 10

    def test_no_limit_for_books(self, data_dir):
        cart = CartStore(data_dir).set_qty("c1", "books", "BOOK-B", 50)
        assert cart.qty("books", "BOOK-B") == 50

    def test_unknown_product(self, data_dir):
        with pytest.raises(ProductNotFoundError):
            CartStore(data_dir).add("c1", "books", "PEN")

    def test_unknown_store(self, data_dir):
        with pytest.raises(StoreNotFoundError):
            CartStore(data_dir).add("c1", "toys", "PEN")

    def test_remove_and_clear(self, data_dir, full_cart_lines):
        store = CartStore(data_dir)
        for store_id, skus in full_cart_lines.items():
            for sku, qty in skus.items():
                store.set_qty("c1", store_id, sku, qty)

        cart = store.remove("c1", "stationery", "PEN")
        assert cart.lines["stationery"] == {"NOTE": 1}

        cart = store.clear_store("c1", "stationery")
        assert cart.non_empty_store_ids() == ["books"]

        cart = store.clear("c1")
        assert cart.lines == {}

    def test_delete(self, data_dir):
        store = CartStore(data_dir)
        store.add("c1", "books", "BOOK-A")
        store.delete("c1")
        assert not store.exists("c1")
        store.delete("c1")
