"""Pytest fixtures for schoolcart tests."""

import json
import tempfile
from pathlib import Path

import pytest

INDEX = {
    "title": "Test Fundraiser",
    "classes": ["1A", "2B"],
    "stores": [
        {"id": "stationery", "name": "Stationery Hub", "cover": "covers/stationery.png"},
        {"id": "books", "name": "Book Nook"},
    ],
    "gst": 0.09,
    "discountCodes": [
        {"code": "SAVE10", "kind": "percent", "amount": 10, "description": "10% off"},
        {"code": "HALF", "kind": "percent", "amount": 50},
        {"code": "TAKE5", "kind": "absolute", "amount": 5},
        {"code": "BIG", "kind": "absolute", "amount": 100},
        {"code": "BROKEN", "kind": "mystery", "amount": 1},
    ],
    "discountCap": {"percentMax": 30, "absoluteMax": 50},
}

STATIONERY = {
    "id": "stationery",
    "name": "Stationery Hub",
    "shipping": {"baseFee": 3},
    "constraints": {"maxQtyPerItem": 10},
    "discounts": [
        {"type": "nthItemPercent", "nth": 3, "percentOff": 50},
        {"type": "shippingThreshold", "threshold": 20, "shippingPercentOff": 100},
    ],
    "products": [
        {"sku": "PEN", "name": "Gel Pen", "price": 1.5, "img": "img/pen.png"},
        {"sku": "PENCIL", "name": "Pencil", "price": 0.8},
        {"sku": "NOTE", "name": "Notebook", "price": 4},
    ],
}

BOOKS = {
    "id": "books",
    "name": "Book Nook",
    "shipping": {"baseFee": 5},
    "discounts": [{"type": "overallPercent", "percentOff": 10}],
    "products": [
        {"sku": "BOOK-A", "name": "Atlas", "price": 12},
        {"sku": "BOOK-B", "name": "Biology Primer", "price": 8},
    ],
}

CARDS = {
    "cards": [
        {"number": "123456789012", "balance": 100},
        {"number": "111111", "balance": 1},
    ]
}


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir):
    """A data directory seeded with two stores, discount codes and gift cards."""
    stores_dir = temp_dir / "data" / "stores"
    write_json(stores_dir / "index.json", INDEX)
    write_json(stores_dir / "stationery.json", STATIONERY)
    write_json(stores_dir / "books.json", BOOKS)
    write_json(stores_dir / "cards.json", CARDS)
    yield temp_dir / "data"


@pytest.fixture
def full_cart_lines():
    """Two PEN and a NOTE from stationery plus one BOOK-A: grand total S$26.58."""
    return {"stationery": {"PEN": 2, "NOTE": 1}, "books": {"BOOK-A": 1}}
