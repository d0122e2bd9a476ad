"""Integration tests for CLI."""

import json
import os
import subprocess
import sys
from pathlib import Path

SRC_DIR = Path(__file__).parent.parent / "src"


def run_schoolcart(args: list[str], data_dir: Path) -> subprocess.CompletedProcess:
    """Run schoolcart CLI command against a data directory."""
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "schoolcart.cli", "--data-dir", str(data_dir)] + args,
        capture_output=True,
        text=True,
        env=env,
    )


class TestCLIIntegration:
    """Integration tests for CLI commands."""

    def test_stores(self, data_dir):
        result = run_schoolcart(["stores"], data_dir)

        assert result.returncode == 0
        assert "Test Fundraiser (GST 9%)" in result.stdout
        assert "Stationery Hub" in result.stdout

    def test_stores_json(self, data_dir):
        result = run_schoolcart(["stores", "--json"], data_dir)

        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert [s["id"] for s in data["stores"]] == ["stationery", "books"]

    def test_store_not_found(self, data_dir):
        result = run_schoolcart(["store", "toys"], data_dir)

        assert result.returncode == 1
        assert 'Error: Store "toys" not found' in result.stderr

    def test_price(self, data_dir):
        result = run_schoolcart(["price", "stationery", "PEN=2", "NOTE"], data_dir)

        assert result.returncode == 0
        assert "Nth item 50% off: -S$0.75" in result.stdout
        assert "Store total:" in result.stdout
        assert "S$9.81" in result.stdout

    def test_price_json(self, data_dir):
        result = run_schoolcart(["price", "books", "BOOK-A=1", "--json"], data_dir)

        assert result.returncode == 0
        assert json.loads(result.stdout)["storeTotal"] == 16.77

    def test_price_bad_line(self, data_dir):
        result = run_schoolcart(["price", "books", "BOOK-A=lots"], data_dir)

        assert result.returncode == 1
        assert "Invalid line: BOOK-A=lots" in result.stderr

    def test_cart_edit(self, data_dir):
        assert run_schoolcart(["cart", "add", "stationery", "PEN", "-q", "2"], data_dir).returncode == 0
        assert run_schoolcart(["cart", "add", "books", "BOOK-A"], data_dir).returncode == 0

        result = run_schoolcart(["cart", "show"], data_dir)
        assert result.returncode == 0
        assert "PEN" in result.stdout
        assert "Total items: 3" in result.stdout

        run_schoolcart(["cart", "remove", "books", "BOOK-A"], data_dir)
        result = run_schoolcart(["cart", "--json"], data_dir)
        assert json.loads(result.stdout)["lines"] == {"stationery": {"PEN": 2}}

        run_schoolcart(["cart", "clear"], data_dir)
        result = run_schoolcart(["cart"], data_dir)
        assert "Your cart is empty." in result.stdout

    def test_cart_quantity_limit(self, data_dir):
        result = run_schoolcart(["cart", "set", "stationery", "PEN", "11"], data_dir)

        assert result.returncode == 1
        assert "exceeds the limit of 10" in result.stderr

    def test_quote_with_codes(self, data_dir):
        run_schoolcart(["cart", "add", "stationery", "PEN", "-q", "2"], data_dir)
        run_schoolcart(["cart", "add", "stationery", "NOTE"], data_dir)
        run_schoolcart(["cart", "add", "books", "BOOK-A"], data_dir)

        result = run_schoolcart(["quote", "-c", "SAVE10", "--json"], data_dir)
        assert result.returncode == 0
        assert json.loads(result.stdout)["grandTotal"] == 23.92

        result = run_schoolcart(["quote", "-c", "SAVE10", "-c", "HALF"], data_dir)
        assert result.returncode == 1
        assert "Only one percentage discount can be used" in result.stderr

    def test_checkout_flow(self, data_dir, temp_dir):
        run_schoolcart(["cart", "add", "stationery", "PEN", "-q", "2"], data_dir)
        run_schoolcart(["cart", "add", "books", "BOOK-A"], data_dir)
        receipt_path = temp_dir / "receipt.md"

        result = run_schoolcart(
            [
                "checkout",
                "--name", "Ana",
                "--class", "1A",
                "--card", "123456789012",
                "--justify", "PEN=for exams",
                "--write-md", str(receipt_path),
            ],
            data_dir,
        )

        assert result.returncode == 0, result.stderr
        assert "Order placed:" in result.stdout
        assert receipt_path.exists()
        assert "for exams" in receipt_path.read_text()

        result = run_schoolcart(["cart"], data_dir)
        assert "Your cart is empty." in result.stdout

        result = run_schoolcart(["orders", "list", "--json"], data_dir)
        orders = json.loads(result.stdout)
        assert len(orders) == 1

        result = run_schoolcart(["orders", "show", orders[0]["id"]], data_dir)
        assert result.returncode == 0
        assert "# Receipt" in result.stdout

    def test_checkout_empty_cart(self, data_dir):
        result = run_schoolcart(
            ["checkout", "--name", "Ana", "--class", "1A", "--card", "123456789012"],
            data_dir,
        )

        assert result.returncode == 1
        assert "Your cart is empty." in result.stderr

    def test_orders_empty(self, data_dir):
        result = run_schoolcart(["orders", "list"], data_dir)

        assert result.returncode == 0
        assert "No orders." in result.stdout

    def test_orders_show_missing(self, data_dir):
        result = run_schoolcart(["orders", "show", "missing"], data_dir)

        assert result.returncode == 1
        assert "Order not found" in result.stderr
