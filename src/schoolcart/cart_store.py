"""Cart storage for schoolcart."""

import fcntl
import json
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .catalog_store import DATA_DIR, CatalogStore
from .errors import CartNotFoundError, ProductNotFoundError, QuantityLimitError
from .models import Cart, _utc_now

CARTS_DIR = "carts"
DEFAULT_CART_ID = "default"

_CART_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class CartStore:
    """Persists carts as JSON and enforces per-store quantity limits."""

    def __init__(self, data_dir: Path | None = None, catalog: CatalogStore | None = None):
        """
        Initialize CartStore.

        Args:
            data_dir: Override base data directory (for testing).
            catalog: Catalog used to validate skus and quantity limits.
        """
        self.data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self.carts_dir = self.data_dir / CARTS_DIR
        self.catalog = catalog or CatalogStore(self.data_dir)

    def _path(self, cart_id: str) -> Path:
        if not _CART_ID_RE.match(cart_id):
            raise CartNotFoundError(cart_id)
        return self.carts_dir / f"{cart_id}.json"

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the carts directory for read-modify-write operations."""
        self.carts_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.carts_dir / ".carts.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self, cart_id: str) -> bool:
        return self._path(cart_id).exists()

    def load(self, cart_id: str) -> Cart:
        """
        Load a cart from disk.

        Raises:
            CartNotFoundError: If the cart doesn't exist.
        """
        path = self._path(cart_id)
        if not path.exists():
            raise CartNotFoundError(cart_id)

        with open(path, "r", encoding="utf-8") as f:
            return Cart.from_dict(json.load(f))

    def load_or_create(self, cart_id: str = DEFAULT_CART_ID) -> Cart:
        """Load a cart, or return a new empty one with that ID (not yet saved)."""
        if self.exists(cart_id):
            return self.load(cart_id)
        now = _utc_now()
        return Cart(id=cart_id, created_at=now, updated_at=now)

    def save(self, cart: Cart) -> None:
        """
        Save a cart to disk atomically.

        Uses write-to-temp-then-rename for atomicity.
        """
        path = self._path(cart.id)
        self.carts_dir.mkdir(parents=True, exist_ok=True)

        cart.updated_at = _utc_now()

        fd, temp_path = tempfile.mkstemp(dir=self.carts_dir, prefix=".cart_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(cart.to_dict(), f, indent=2)
                f.write("\n")
            os.replace(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def delete(self, cart_id: str) -> None:
        """Delete a cart file. Missing carts are ignored."""
        path = self._path(cart_id)
        if path.exists():
            path.unlink()

    def _check_line(self, store_id: str, sku: str, qty: int) -> None:
        """
        Validate a line against the store catalog.

        Raises:
            StoreNotFoundError: If the store doesn't exist.
            ProductNotFoundError: If the store doesn't sell the sku.
            QuantityLimitError: If qty exceeds the store's per-item limit.
        """
        store = self.catalog.get_store(store_id)
        if sku not in store.products_by_sku:
            raise ProductNotFoundError(store_id, sku)
        if store.max_qty_per_item is not None and qty > store.max_qty_per_item:
            raise QuantityLimitError(sku, qty, store.max_qty_per_item)

    def add(self, cart_id: str, store_id: str, sku: str, qty: int = 1) -> Cart:
        """Add units of a product to a cart."""
        with self._lock():
            cart = self.load_or_create(cart_id)
            new_qty = cart.qty(store_id, sku) + qty
            if new_qty > 0:
                self._check_line(store_id, sku, new_qty)
            cart.set_qty(store_id, sku, new_qty)
            self.save(cart)
            return cart

    def set_qty(self, cart_id: str, store_id: str, sku: str, qty: int) -> Cart:
        """Set a line's quantity. qty <= 0 removes the line."""
        with self._lock():
            cart = self.load_or_create(cart_id)
            if qty > 0:
                self._check_line(store_id, sku, qty)
            cart.set_qty(store_id, sku, qty)
            self.save(cart)
            return cart

    def remove(self, cart_id: str, store_id: str, sku: str) -> Cart:
        with self._lock():
            cart = self.load_or_create(cart_id)
            cart.remove(store_id, sku)
            self.save(cart)
            return cart

    def clear_store(self, cart_id: str, store_id: str) -> Cart:
        with self._lock():
            cart = self.load_or_create(cart_id)
            cart.clear_store(store_id)
            self.save(cart)
            return cart

    def clear(self, cart_id: str) -> Cart:
        with self._lock():
            cart = self.load_or_create(cart_id)
            cart.clear()
            self.save(cart)
            return cart
