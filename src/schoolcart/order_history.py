"""Order history storage for schoolcart."""

import fcntl
import json
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .catalog_store import DATA_DIR
from .errors import OrderNotFoundError
from .log import get_logger
from .models import Order

logger = get_logger(__name__)

ORDERS_DIR = "orders"

_ORDER_ID_RE = re.compile(r"^[A-Za-z0-9-]+$")


class OrderHistory:
    """Manages placed orders, one JSON file per order."""

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize OrderHistory.

        Args:
            data_dir: Override base data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self.orders_dir = self.data_dir / ORDERS_DIR

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the orders directory across lookup and write."""
        self.orders_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.orders_dir / ".orders.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def save_order(self, order: Order) -> Order:
        """
        Save an order to history.

        An order whose idempotency key was already recorded is not written
        again; the stored order is returned instead.

        Returns:
            The stored Order.
        """
        with self._lock():
            existing = self.find_by_idempotency_key(order.idempotency_key)
            if existing is not None:
                logger.info(
                    "order_replayed", order_id=existing.id, idem_key=order.idempotency_key
                )
                return existing

            file_path = self.orders_dir / f"{order.id}.json"
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(order.to_dict(), f, indent=2)
                f.write("\n")

        return order

    def list_orders(self, limit: int | None = None) -> list[Order]:
        """
        List orders, newest first.

        Args:
            limit: Maximum number of orders to return.
        """
        if not self.orders_dir.exists():
            return []

        orders: list[Order] = []
        for file_path in self.orders_dir.glob("*.json"):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                orders.append(Order.from_dict(data))
            except (OSError, ValueError, KeyError, TypeError):
                logger.warning("order_file_skipped", path=str(file_path))
                continue

        orders.sort(key=lambda o: o.created_at, reverse=True)

        if limit:
            orders = orders[:limit]

        return orders

    def get_order(self, order_id: str) -> Order:
        """
        Get a specific order.

        Raises:
            OrderNotFoundError: If the order doesn't exist.
        """
        if not _ORDER_ID_RE.match(order_id):
            raise OrderNotFoundError(order_id)

        file_path = self.orders_dir / f"{order_id}.json"
        if not file_path.exists():
            raise OrderNotFoundError(order_id)

        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return Order.from_dict(data)

    def find_by_idempotency_key(self, key: str) -> Order | None:
        if not key:
            return None
        for order in self.list_orders():
            if order.idempotency_key == key:
                return order
        return None

    def last_order(self) -> Order | None:
        """The most recently placed order, if any."""
        orders = self.list_orders(limit=1)
        return orders[0] if orders else None

    def clear(self) -> int:
        """
        Delete all stored orders.

        Returns:
            Number of orders deleted.
        """
        if not self.orders_dir.exists():
            return 0

        count = 0
        for file_path in self.orders_dir.glob("*.json"):
            file_path.unlink()
            count += 1

        return count
