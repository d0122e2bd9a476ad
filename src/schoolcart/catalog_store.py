"""Read-only catalog storage for schoolcart."""

import json
import os
import re
from pathlib import Path
from typing import Any

from .errors import CatalogFileError, StoreNotFoundError
from .log import get_logger
from .models import DiscountCap, DiscountCode, GiftCard, SiteIndex, Store, StoreSummary

logger = get_logger(__name__)

# Can be overridden via SCHOOLCART_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR = Path(os.environ.get("SCHOOLCART_DATA_DIR", _default_data_dir))
STORES_DIR = "stores"
INDEX_FILE = "index.json"
CARDS_FILE = "cards.json"

_RESERVED_NAMES = {Path(INDEX_FILE).stem, Path(CARDS_FILE).stem}
_STORE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class CatalogStore:
    """Loads the site index, store catalogs and gift cards from JSON files."""

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize CatalogStore.

        Args:
            data_dir: Override base data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
        self.stores_dir = self.data_dir / STORES_DIR
        self.index_path = self.stores_dir / INDEX_FILE
        self.cards_path = self.stores_dir / CARDS_FILE

    def _read_json(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise CatalogFileError(str(path), "file not found") from None
        except json.JSONDecodeError as e:
            raise CatalogFileError(str(path), f"invalid JSON: {e.msg}") from e

    def load_index(self) -> SiteIndex:
        """
        Load the site index.

        A missing index yields an empty site with default title and GST rate.
        Discount codes with an unknown kind are skipped.

        Raises:
            CatalogFileError: If the index is malformed.
        """
        if not self.index_path.exists():
            return SiteIndex()

        data = self._read_json(self.index_path)
        if isinstance(data, dict):
            data = dict(data)
            data["discountCodes"] = self._valid_codes(data.get("discountCodes") or [])
        elif not isinstance(data, list):
            raise CatalogFileError(str(self.index_path), "expected an object or a list")

        try:
            return SiteIndex.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogFileError(str(self.index_path), str(e)) from e

    def _valid_codes(self, raw_codes: list[Any]) -> list[dict[str, Any]]:
        valid = []
        for raw in raw_codes:
            try:
                DiscountCode.from_dict(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("discount_code_skipped", code=str(raw)[:40], reason=str(e))
                continue
            valid.append(raw)
        return valid

    def list_stores(self) -> list[StoreSummary]:
        """List the stores in the site index."""
        return self.load_index().stores

    def get_store(self, store_id: str) -> Store:
        """
        Load one store's catalog.

        Raises:
            StoreNotFoundError: If there's no catalog file for the store.
            CatalogFileError: If the catalog file is malformed.
        """
        if not _STORE_ID_RE.match(store_id) or store_id in _RESERVED_NAMES:
            raise StoreNotFoundError(store_id)

        path = self.stores_dir / f"{store_id}.json"
        if not path.exists():
            raise StoreNotFoundError(store_id)

        data = self._read_json(path)
        if not isinstance(data, dict):
            raise CatalogFileError(str(path), "expected an object")
        data.setdefault("id", store_id)
        try:
            return Store.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogFileError(str(path), str(e)) from e

    def discount_codes(self) -> list[DiscountCode]:
        return self.load_index().discount_codes

    def discount_cap(self) -> DiscountCap | None:
        return self.load_index().discount_cap

    def gst_rate(self):
        return self.load_index().gst_rate

    def gift_cards(self) -> list[GiftCard]:
        """
        Load the gift card list.

        Raises:
            CatalogFileError: If cards.json is missing or malformed.
        """
        data = self._read_json(self.cards_path)
        cards = data.get("cards") if isinstance(data, dict) else None
        if not isinstance(cards, list):
            raise CatalogFileError(str(self.cards_path), "expected {'cards': [...]}")

        result = []
        for row in cards:
            if not isinstance(row, dict) or "number" not in row:
                continue
            result.append(GiftCard.from_dict(row))
        return result
