"""Tests for the FastAPI API."""

import pytest
from fastapi.testclient import TestClient

CARD = "123456789012"


@pytest.fixture
def api_client(data_dir, monkeypatch):
    """Create test client reading the seeded data directory."""
    monkeypatch.setenv("SCHOOLCART_DATA_DIR", str(data_dir))

    from schoolcart.api import app

    return TestClient(app)


def order_body(**overrides):
    body = {
        "cart": {"stationery": {"PEN": 2, "NOTE": 1}, "books": {"BOOK-A": 1}},
        "name": "Ana",
        "class_name": "1A",
        "justifications": [{"sku": "PEN", "text": "for exams"}],
        "card_number": CARD,
    }
    body.update(overrides)
    return body


class TestHealthCheck:
    def test_health(self, api_client):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "store_count": 2}

    def test_health_reports_bad_index(self, api_client, data_dir):
        (data_dir / "stores" / "index.json").write_text("[oops")
        data = api_client.get("/api/health").json()
        assert data["status"] == "error"


class TestStores:
    def test_list_stores(self, api_client):
        data = api_client.get("/api/stores").json()
        assert data["title"] == "Test Fundraiser"
        assert data["classes"] == ["1A", "2B"]
        assert [s["id"] for s in data["stores"]] == ["stationery", "books"]
        assert data["gst"] == 0.09

    def test_get_store(self, api_client):
        data = api_client.get("/api/stores/stationery").json()
        assert data["shipping"] == {"baseFee": 3}
        assert data["constraints"] == {"maxQtyPerItem": 10}
        assert data["products"][0] == {
            "sku": "PEN",
            "name": "Gel Pen",
            "price": 1.5,
            "img": "img/pen.png",
        }

    def test_store_not_found(self, api_client):
        response = api_client.get("/api/stores/toys")
        assert response.status_code == 404
        assert response.json()["error_type"] == "StoreNotFoundError"

    def test_price_store(self, api_client):
        response = api_client.post(
            "/api/stores/stationery/price",
            json={"lines": [{"sku": "PEN", "qty": 2}, {"sku": "NOTE", "qty": 1}]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["storeTotal"] == 9.81
        assert data["itemsDiscount"] == 0.75
        assert data["discountFlags"]["nthAppliedUnits"] == [
            {"sku": "PEN", "unitPrice": 1.5, "amount": 0.75}
        ]
        assert data["perItem"][0]["finalLineTotal"] == 2.25


class TestCarts:
    def test_create_and_edit(self, api_client):
        response = api_client.post("/api/carts")
        assert response.status_code == 201
        cart_id = response.json()["id"]

        response = api_client.post(
            f"/api/carts/{cart_id}/items",
            json={"store_id": "books", "sku": "BOOK-A", "qty": 2},
        )
        assert response.status_code == 200
        assert response.json()["lines"] == {"books": {"BOOK-A": 2}}

        response = api_client.put(
            f"/api/carts/{cart_id}/items",
            json={"store_id": "books", "sku": "BOOK-A", "qty": 0},
        )
        assert response.json()["lines"] == {}

        assert api_client.get(f"/api/carts/{cart_id}").json()["lines"] == {}

    def test_remove_and_clear(self, api_client):
        cart_id = api_client.post("/api/carts").json()["id"]
        for sku in ("PEN", "NOTE"):
            api_client.post(
                f"/api/carts/{cart_id}/items", json={"store_id": "stationery", "sku": sku}
            )
        api_client.post(f"/api/carts/{cart_id}/items", json={"store_id": "books", "sku": "BOOK-B"})

        response = api_client.delete(
            f"/api/carts/{cart_id}/items", params={"store_id": "stationery", "sku": "PEN"}
        )
        assert response.json()["lines"]["stationery"] == {"NOTE": 1}

        response = api_client.delete(f"/api/carts/{cart_id}", params={"store_id": "books"})
        assert list(response.json()["lines"]) == ["stationery"]

        response = api_client.delete(f"/api/carts/{cart_id}")
        assert response.json()["lines"] == {}

    def test_quantity_limit(self, api_client):
        cart_id = api_client.post("/api/carts").json()["id"]
        response = api_client.post(
            f"/api/carts/{cart_id}/items",
            json={"store_id": "stationery", "sku": "PEN", "qty": 11},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "QuantityLimitError"

    def test_unknown_product(self, api_client):
        cart_id = api_client.post("/api/carts").json()["id"]
        response = api_client.post(
            f"/api/carts/{cart_id}/items", json={"store_id": "books", "sku": "PEN"}
        )
        assert response.status_code == 404

    def test_cart_not_found(self, api_client):
        assert api_client.get("/api/carts/nope").status_code == 404
        response = api_client.post(
            "/api/carts/nope/items", json={"store_id": "books", "sku": "BOOK-A"}
        )
        assert response.status_code == 404


class TestCheckout:
    def test_quote_inline_cart(self, api_client):
        response = api_client.post(
            "/api/checkout/quote",
            json={"cart": {"stationery": {"PEN": 2, "NOTE": 1}, "books": {"BOOK-A": 1}}},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["grandTotal"] == 26.58
        assert [s["storeId"] for s in data["stores"]] == ["books", "stationery"]
        assert data["overallDiscounts"]["capApplied"] is False

    def test_quote_with_codes(self, api_client):
        response = api_client.post(
            "/api/checkout/quote",
            json={"cart": {"books": {"BOOK-A": 1}}, "codes": ["TAKE5"]},
        )
        data = response.json()
        assert data["overallDiscounts"]["absoluteDiscountAmount"] == 5
        assert data["grandTotal"] == 11.77

    def test_quote_rejects_two_percent_codes(self, api_client):
        response = api_client.post(
            "/api/checkout/quote",
            json={"cart": {"books": {"BOOK-A": 1}}, "codes": ["SAVE10", "HALF"]},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "PercentCodeLimitError"

    def test_quote_stored_cart(self, api_client):
        cart_id = api_client.post("/api/carts").json()["id"]
        api_client.post(f"/api/carts/{cart_id}/items", json={"store_id": "books", "sku": "BOOK-A"})

        data = api_client.post("/api/checkout/quote", json={"cart_id": cart_id}).json()
        assert data["grandTotal"] == 16.77

    def test_quote_empty(self, api_client):
        data = api_client.post("/api/checkout/quote", json={}).json()
        assert data["stores"] == []
        assert data["grandTotal"] == 0

    def test_apply_code(self, api_client):
        response = api_client.post("/api/checkout/codes", json={"code": "save10"})
        assert response.status_code == 200
        assert response.json() == {"applied": ["SAVE10"]}

    @pytest.mark.parametrize(
        "body, detail",
        [
            ({"code": " "}, "Enter a discount code"),
            ({"code": "NOPE"}, "Code not recognised"),
            ({"code": "SAVE10", "applied": ["SAVE10"]}, "Code already applied"),
            ({"code": "HALF", "applied": ["SAVE10"]}, "Only one percentage discount can be used"),
        ],
    )
    def test_apply_code_rejected(self, api_client, body, detail):
        response = api_client.post("/api/checkout/codes", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == detail

    def test_remove_code(self, api_client):
        response = api_client.post(
            "/api/checkout/codes/remove", json={"code": "take5", "applied": ["TAKE5", "SAVE10"]}
        )
        assert response.json() == {"applied": ["SAVE10"]}


class TestOrders:
    def test_place_order(self, api_client):
        response = api_client.post("/api/orders", json=order_body())
        assert response.status_code == 201
        data = response.json()
        assert data["grandTotal"] == 26.58
        assert data["paymentInfo"]["balanceAfter"] == 73.42
        assert data["overallDiscounts"] is None
        assert data["className"] == "1A"

        listing = api_client.get("/api/orders").json()
        assert listing["count"] == 1
        assert listing["orders"][0]["id"] == data["id"]

        order = api_client.get(f"/api/orders/{data['id']}").json()
        assert order["idemKey"] == data["idemKey"]

    def test_receipt(self, api_client):
        order_id = api_client.post("/api/orders", json=order_body()).json()["id"]
        response = api_client.get(f"/api/orders/{order_id}/receipt")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "## Grand Total: S$26.58" in response.text

    def test_idempotent(self, api_client):
        first = api_client.post("/api/orders", json=order_body(idempotency_key="abc")).json()
        second = api_client.post("/api/orders", json=order_body(idempotency_key="abc")).json()
        assert first["id"] == second["id"]
        assert api_client.get("/api/orders").json()["count"] == 1

    def test_stored_cart_cleared(self, api_client):
        cart_id = api_client.post("/api/carts").json()["id"]
        api_client.post(f"/api/carts/{cart_id}/items", json={"store_id": "stationery", "sku": "PEN"})

        response = api_client.post(
            "/api/orders", json=order_body(cart=None, cart_id=cart_id)
        )
        assert response.status_code == 201
        assert api_client.get(f"/api/carts/{cart_id}").json()["lines"] == {}

    def test_insufficient_balance(self, api_client):
        response = api_client.post("/api/orders", json=order_body(card_number="111111"))
        assert response.status_code == 402
        assert response.json()["detail"] == "Insufficient balance (available S$1.00)"

    def test_invalid_buyer(self, api_client):
        response = api_client.post("/api/orders", json=order_body(class_name="9Z"))
        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidBuyerError"

    def test_empty_cart(self, api_client):
        response = api_client.post("/api/orders", json=order_body(cart={}))
        assert response.status_code == 409

    def test_order_not_found(self, api_client):
        assert api_client.get("/api/orders/missing").status_code == 404
        assert api_client.get("/api/orders/missing/receipt").status_code == 404
