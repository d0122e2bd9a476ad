"""Data models for schoolcart."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar
import uuid

from .utils import ZERO, money_to_json, number_to_json, round2, to_decimal

PERCENT = "percent"
ABSOLUTE = "absolute"
CODE_KINDS = (PERCENT, ABSOLUTE)

DEFAULT_GST_RATE = Decimal("0.09")
DEFAULT_SITE_TITLE = "School Cart"


def _utc_now() -> str:
    """Return current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _generate_id() -> str:
    """Generate a new order/cart ID."""
    return str(uuid.uuid4())


def _optional_money(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str, Decimal)):
        return None
    return to_decimal(value)


# Catalog models


@dataclass(frozen=True)
class Product:
    """A product sold by one store. Reference data, never mutated."""

    sku: str
    name: str
    unit_price: Decimal
    image: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "price": money_to_json(self.unit_price),
            "img": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            sku=str(data["sku"]),
            name=data.get("name", ""),
            unit_price=to_decimal(data.get("price", 0)),
            image=data.get("img") or "",
        )


@dataclass(frozen=True)
class CartLine:
    """One sku and its quantity, as handed to the pricing engine."""

    sku: str
    quantity: int

    def to_dict(self) -> dict[str, Any]:
        return {"sku": self.sku, "qty": self.quantity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        qty = data.get("qty", data.get("quantity", 0))
        return cls(sku=str(data["sku"]), quantity=int(qty))


# Discount rules (tagged union, looked up by kind)


@dataclass(frozen=True)
class NthItemPercent:
    """Every nth cheapest unit in the store cart gets percent_off."""

    nth: int
    percent_off: Decimal
    kind: ClassVar[str] = "nthItemPercent"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "nth": self.nth,
            "percentOff": number_to_json(self.percent_off),
        }


@dataclass(frozen=True)
class OverallPercent:
    """Storewide percentage, spread proportionally over the items."""

    percent_off: Decimal
    kind: ClassVar[str] = "overallPercent"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "percentOff": number_to_json(self.percent_off)}


@dataclass(frozen=True)
class ShippingThreshold:
    """Shipping discount once the discounted items total reaches threshold."""

    threshold: Decimal
    shipping_percent_off: Decimal
    kind: ClassVar[str] = "shippingThreshold"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "threshold": money_to_json(self.threshold),
            "shippingPercentOff": number_to_json(self.shipping_percent_off),
        }


DiscountRule = NthItemPercent | OverallPercent | ShippingThreshold


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        try:
            Decimal(value.strip())
        except ArithmeticError:
            return False
        return True
    return False


def _is_percent(value: Any) -> bool:
    return _is_number(value) and ZERO <= to_decimal(value) <= 100


def parse_discount_rule(data: Any) -> DiscountRule | None:
    """
    Parse a discount rule from its JSON form.

    Returns None for unknown types and malformed payloads, including
    percentages outside 0-100, so that the rule is simply treated as absent.
    """
    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    if kind == NthItemPercent.kind:
        nth, percent = data.get("nth"), data.get("percentOff")
        if not (_is_number(nth) and _is_percent(percent)):
            return None
        nth_value = to_decimal(nth)
        if nth_value != nth_value.to_integral_value():
            return None
        return NthItemPercent(nth=int(nth_value), percent_off=to_decimal(percent))

    if kind == OverallPercent.kind:
        percent = data.get("percentOff")
        if not _is_percent(percent):
            return None
        return OverallPercent(percent_off=to_decimal(percent))

    if kind == ShippingThreshold.kind:
        threshold, percent = data.get("threshold"), data.get("shippingPercentOff")
        if not (_is_number(threshold) and _is_percent(percent)):
            return None
        return ShippingThreshold(
            threshold=to_decimal(threshold),
            shipping_percent_off=to_decimal(percent),
        )

    return None


@dataclass
class StoreAlert:
    """A banner message shown on a store page."""

    message: str
    severity: str = "info"  # info|warning|error|success

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "severity": self.severity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreAlert":
        return cls(message=data.get("message", ""), severity=data.get("severity", "info"))


@dataclass
class Store:
    """A store's catalog plus its pricing configuration."""

    id: str
    name: str
    shipping_base_fee: Decimal = ZERO
    max_qty_per_item: int | None = None
    discounts: list[DiscountRule] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    alerts: list[StoreAlert] = field(default_factory=list)

    @property
    def products_by_sku(self) -> dict[str, Product]:
        return {p.sku: p for p in self.products}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "shipping": {"baseFee": money_to_json(self.shipping_base_fee)},
            "constraints": {"maxQtyPerItem": self.max_qty_per_item},
            "discounts": [d.to_dict() for d in self.discounts],
            "products": [p.to_dict() for p in self.products],
        }
        if self.alerts:
            result["alerts"] = [a.to_dict() for a in self.alerts]
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Store":
        shipping = data.get("shipping") or {}
        constraints = data.get("constraints") or {}
        max_qty = constraints.get("maxQtyPerItem")
        rules = [parse_discount_rule(d) for d in data.get("discounts") or []]
        return cls(
            id=str(data["id"]),
            name=data.get("name", data["id"]),
            shipping_base_fee=to_decimal(shipping.get("baseFee", 0)),
            max_qty_per_item=int(max_qty) if max_qty is not None else None,
            discounts=[r for r in rules if r is not None],
            products=[Product.from_dict(p) for p in data.get("products") or []],
            alerts=[StoreAlert.from_dict(a) for a in data.get("alerts") or []],
        )


@dataclass
class StoreSummary:
    """A store entry in the site index."""

    id: str
    name: str
    cover: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.cover is not None:
            result["cover"] = self.cover
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreSummary":
        return cls(id=str(data["id"]), name=data.get("name", data["id"]), cover=data.get("cover"))


@dataclass(frozen=True)
class DiscountCode:
    """A global, cross-store discount code."""

    code: str
    kind: str  # "percent" | "absolute"
    amount: Decimal
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind,
            "amount": number_to_json(self.amount),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscountCode":
        kind = data.get("kind")
        if kind not in CODE_KINDS:
            raise ValueError(f"unknown discount code kind: {kind!r}")
        return cls(
            code=str(data["code"]),
            kind=kind,
            amount=to_decimal(data.get("amount", 0)),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class DiscountCap:
    """Ceiling on the combined value of all applied codes."""

    percent_max: Decimal | None = None
    absolute_max: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentMax": number_to_json(self.percent_max) if self.percent_max is not None else None,
            "absoluteMax": money_to_json(self.absolute_max) if self.absolute_max is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscountCap":
        return cls(
            percent_max=_optional_money(data.get("percentMax")),
            absolute_max=_optional_money(data.get("absoluteMax")),
        )


@dataclass
class SiteIndex:
    """Site-wide configuration: store list, classes, GST, codes and cap."""

    title: str = DEFAULT_SITE_TITLE
    classes: list[str] = field(default_factory=list)
    stores: list[StoreSummary] = field(default_factory=list)
    gst_rate: Decimal = DEFAULT_GST_RATE
    discount_codes: list[DiscountCode] = field(default_factory=list)
    discount_cap: DiscountCap | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "classes": self.classes,
            "stores": [s.to_dict() for s in self.stores],
            "gst": float(self.gst_rate),
            "discountCodes": [c.to_dict() for c in self.discount_codes],
            "discountCap": self.discount_cap.to_dict() if self.discount_cap else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | list[Any]) -> "SiteIndex":
        # Legacy format: a bare list of stores
        if isinstance(data, list):
            return cls(stores=[StoreSummary.from_dict(s) for s in data])

        gst = data.get("gst")
        cap = data.get("discountCap")
        return cls(
            title=data.get("title") or DEFAULT_SITE_TITLE,
            classes=list(data.get("classes") or []),
            stores=[StoreSummary.from_dict(s) for s in data.get("stores") or []],
            gst_rate=to_decimal(gst) if _is_number(gst) else DEFAULT_GST_RATE,
            discount_codes=[
                DiscountCode.from_dict(c) for c in data.get("discountCodes") or []
            ],
            discount_cap=DiscountCap.from_dict(cap) if isinstance(cap, dict) else None,
        )


# Pricing results


@dataclass(frozen=True)
class ItemDiscount:
    """One discount attributed to a priced item."""

    kind: str
    label: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "label": self.label, "amount": money_to_json(self.amount)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ItemDiscount":
        return cls(
            kind=data.get("kind", ""),
            label=data.get("label", ""),
            amount=to_decimal(data.get("amount", 0)),
        )


@dataclass
class PricedItem:
    """Per-sku pricing line for one store."""

    sku: str
    name: str
    image: str
    quantity: int
    unit_price: Decimal
    original_line_total: Decimal
    discounts: list[ItemDiscount] = field(default_factory=list)
    final_line_total: Decimal = ZERO

    @property
    def discount_total(self) -> Decimal:
        return round2(sum((d.amount for d in self.discounts), ZERO))

    @property
    def remaining_base(self) -> Decimal:
        """Line total after the discounts recorded so far."""
        return round2(self.original_line_total - self.discount_total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "img": self.image,
            "qty": self.quantity,
            "unitPrice": money_to_json(self.unit_price),
            "originalLineTotal": money_to_json(self.original_line_total),
            "discounts": [d.to_dict() for d in self.discounts],
            "finalLineTotal": money_to_json(self.final_line_total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PricedItem":
        return cls(
            sku=str(data["sku"]),
            name=data.get("name", ""),
            image=data.get("img") or "",
            quantity=int(data.get("qty", 0)),
            unit_price=to_decimal(data.get("unitPrice", 0)),
            original_line_total=to_decimal(data.get("originalLineTotal", 0)),
            discounts=[ItemDiscount.from_dict(d) for d in data.get("discounts") or []],
            final_line_total=to_decimal(data.get("finalLineTotal", 0)),
        )


@dataclass(frozen=True)
class NthAppliedUnit:
    """A single unit picked by the nth-item rule."""

    sku: str
    unit_price: Decimal
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "unitPrice": money_to_json(self.unit_price),
            "amount": money_to_json(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NthAppliedUnit":
        return cls(
            sku=str(data["sku"]),
            unit_price=to_decimal(data.get("unitPrice", 0)),
            amount=to_decimal(data.get("amount", 0)),
        )


_TOTALS_FIELDS = (
    ("items_subtotal", "itemsSubtotal"),
    ("items_discount", "itemsDiscount"),
    ("items_net", "itemsNet"),
    ("shipping_base", "shippingBase"),
    ("shipping_discount", "shippingDiscount"),
    ("shipping_net", "shippingNet"),
    ("gst", "gst"),
    ("store_total", "storeTotal"),
)


@dataclass
class StoreTotals:
    """Full price breakdown for one store's cart."""

    items_subtotal: Decimal = ZERO
    items_discount: Decimal = ZERO
    items_net: Decimal = ZERO
    shipping_base: Decimal = ZERO
    shipping_discount: Decimal = ZERO
    shipping_net: Decimal = ZERO
    gst: Decimal = ZERO
    store_total: Decimal = ZERO
    per_item: list[PricedItem] = field(default_factory=list)
    # Display flags
    nth_applied_units: list[NthAppliedUnit] = field(default_factory=list)
    overall_percent: Decimal | None = None

    @classmethod
    def empty(cls) -> "StoreTotals":
        """All-zero totals for a store with nothing in the cart."""
        return cls()

    def to_dict(self, include_items: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            key: money_to_json(getattr(self, attr)) for attr, key in _TOTALS_FIELDS
        }
        if include_items:
            result["perItem"] = [i.to_dict() for i in self.per_item]
            result["discountFlags"] = {
                "nthAppliedUnits": [u.to_dict() for u in self.nth_applied_units],
                "overallPercent": (
                    number_to_json(self.overall_percent)
                    if self.overall_percent is not None
                    else None
                ),
            }
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreTotals":
        flags = data.get("discountFlags") or {}
        overall = flags.get("overallPercent")
        return cls(
            **{attr: to_decimal(data.get(key, 0)) for attr, key in _TOTALS_FIELDS},
            per_item=[PricedItem.from_dict(i) for i in data.get("perItem") or []],
            nth_applied_units=[
                NthAppliedUnit.from_dict(u) for u in flags.get("nthAppliedUnits") or []
            ],
            overall_percent=to_decimal(overall) if overall is not None else None,
        )


@dataclass
class StoreQuote:
    """A store's identity together with its priced totals."""

    store_id: str
    store_name: str
    totals: StoreTotals

    def to_dict(self, include_items: bool = False) -> dict[str, Any]:
        return {
            "storeId": self.store_id,
            "storeName": self.store_name,
            **self.totals.to_dict(include_items=include_items),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreQuote":
        return cls(
            store_id=str(data["storeId"]),
            store_name=data.get("storeName", ""),
            totals=StoreTotals.from_dict(data),
        )


@dataclass
class OverallDiscountsSummary:
    """Checkout-level result of stacking discount codes."""

    grand_total_before_discounts: Decimal
    grand_total_after_discounts: Decimal
    percent_discount_amount: Decimal = ZERO
    absolute_discount_amount: Decimal = ZERO
    applied_codes: list[DiscountCode] = field(default_factory=list)
    cap_applied: bool = False
    configured_cap: DiscountCap | None = None
    percent_code: DiscountCode | None = None

    @property
    def has_discounts(self) -> bool:
        return bool(
            self.applied_codes
            or self.percent_discount_amount > 0
            or self.absolute_discount_amount > 0
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "grandTotalBeforeDiscounts": money_to_json(self.grand_total_before_discounts),
            "grandTotalAfterDiscounts": money_to_json(self.grand_total_after_discounts),
            "percentDiscountAmount": money_to_json(self.percent_discount_amount),
            "absoluteDiscountAmount": money_to_json(self.absolute_discount_amount),
            "appliedCodes": [c.to_dict() for c in self.applied_codes],
            "capApplied": self.cap_applied,
            "configuredCap": self.configured_cap.to_dict() if self.configured_cap else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OverallDiscountsSummary":
        codes = [DiscountCode.from_dict(c) for c in data.get("appliedCodes") or []]
        cap = data.get("configuredCap")
        return cls(
            grand_total_before_discounts=to_decimal(data.get("grandTotalBeforeDiscounts", 0)),
            grand_total_after_discounts=to_decimal(data.get("grandTotalAfterDiscounts", 0)),
            percent_discount_amount=to_decimal(data.get("percentDiscountAmount", 0)),
            absolute_discount_amount=to_decimal(data.get("absoluteDiscountAmount", 0)),
            applied_codes=codes,
            cap_applied=bool(data.get("capApplied", False)),
            configured_cap=DiscountCap.from_dict(cap) if isinstance(cap, dict) else None,
            percent_code=next((c for c in codes if c.kind == PERCENT), None),
        )


# Cart


@dataclass
class Cart:
    """A shopper's cart: {store_id: {sku: qty}}. Quantity 0 means absent."""

    id: str
    lines: dict[str, dict[str, int]] = field(default_factory=dict)
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @classmethod
    def create(cls) -> "Cart":
        """Create an empty cart with a generated ID."""
        now = _utc_now()
        return cls(id=_generate_id(), created_at=now, updated_at=now)

    def qty(self, store_id: str, sku: str) -> int:
        return self.lines.get(store_id, {}).get(sku, 0)

    def set_qty(self, store_id: str, sku: str, qty: int) -> None:
        """Set a line's quantity; qty <= 0 removes it, and empty stores are dropped."""
        store_lines = self.lines.get(store_id)
        if qty <= 0:
            if store_lines is None or sku not in store_lines:
                return
            del store_lines[sku]
            if not store_lines:
                del self.lines[store_id]
            return
        self.lines.setdefault(store_id, {})[sku] = qty

    def add(self, store_id: str, sku: str, qty: int = 1) -> int:
        """Add qty units to a line and return the new quantity."""
        new_qty = self.qty(store_id, sku) + qty
        self.set_qty(store_id, sku, new_qty)
        return max(new_qty, 0)

    def remove(self, store_id: str, sku: str) -> None:
        self.set_qty(store_id, sku, 0)

    def clear_store(self, store_id: str) -> None:
        self.lines.pop(store_id, None)

    def clear(self) -> None:
        self.lines = {}

    def total_qty(self, store_id: str | None = None) -> int:
        if store_id is not None:
            return sum(self.lines.get(store_id, {}).values())
        return sum(q for skus in self.lines.values() for q in skus.values())

    def store_lines(self, store_id: str) -> list[CartLine]:
        return [CartLine(sku, q) for sku, q in self.lines.get(store_id, {}).items()]

    def non_empty_store_ids(self) -> list[str]:
        return sorted(sid for sid, skus in self.lines.items() if any(q > 0 for q in skus.values()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "lines": self.lines,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cart":
        lines = {
            store_id: {sku: int(q) for sku, q in skus.items() if int(q) > 0}
            for store_id, skus in (data.get("lines") or {}).items()
        }
        return cls(
            id=data["id"],
            lines={k: v for k, v in lines.items() if v},
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


# Checkout models


@dataclass(frozen=True)
class GiftCard:
    """A gift card row from cards.json."""

    number: str
    balance: Decimal

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GiftCard":
        return cls(number=str(data["number"]), balance=to_decimal(data.get("balance", 0)))


@dataclass
class PaymentInfo:
    """Result of a simulated gift card redemption."""

    gift_card_number: str
    balance_before: Decimal
    charge_amount: Decimal
    balance_after: Decimal
    auth_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "giftCardNumber": self.gift_card_number,
            "balanceBefore": money_to_json(self.balance_before),
            "chargeAmount": money_to_json(self.charge_amount),
            "balanceAfter": money_to_json(self.balance_after),
            "authAt": self.auth_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentInfo":
        return cls(
            gift_card_number=str(data["giftCardNumber"]),
            balance_before=to_decimal(data.get("balanceBefore", 0)),
            charge_amount=to_decimal(data.get("chargeAmount", 0)),
            balance_after=to_decimal(data.get("balanceAfter", 0)),
            auth_at=data.get("authAt", ""),
        )


@dataclass(frozen=True)
class Justification:
    """Why the buyer wants a particular item."""

    sku: str
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"sku": self.sku, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Justification":
        return cls(sku=str(data.get("sku", "")), text=data.get("text", ""))


@dataclass
class Buyer:
    """Buyer details collected before payment."""

    name: str
    class_name: str
    justifications: list[Justification] = field(default_factory=list)


@dataclass
class OrderItem:
    """A priced item tagged with its store, as posted with the order."""

    store_id: str
    store_name: str
    item: PricedItem

    def to_dict(self) -> dict[str, Any]:
        return {
            "storeId": self.store_id,
            "storeName": self.store_name,
            **self.item.to_dict(),
            "lineTotal": money_to_json(self.item.final_line_total),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            store_id=str(data["storeId"]),
            store_name=data.get("storeName", ""),
            item=PricedItem.from_dict(data),
        )


@dataclass
class Order:
    """A placed order: the payload handed to the receipt/payment side."""

    id: str
    buyer: Buyer
    items: list[OrderItem]
    per_store_totals: list[StoreQuote]
    grand_total: Decimal
    payment_info: PaymentInfo
    overall_discounts: OverallDiscountsSummary | None = None
    breakdown_suppressed: bool = False
    idempotency_key: str = field(default_factory=_generate_id)
    created_at: str = field(default_factory=_utc_now)

    @property
    def items_by_store(self) -> dict[str, list[OrderItem]]:
        grouped: dict[str, list[OrderItem]] = {}
        for item in self.items:
            grouped.setdefault(item.store_name or "Store", []).append(item)
        return grouped

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.buyer.name,
            "className": self.buyer.class_name,
            "justifications": [j.to_dict() for j in self.buyer.justifications],
            "items": [i.to_dict() for i in self.items],
            "itemsByStore": {
                store: [i.to_dict() for i in items]
                for store, items in self.items_by_store.items()
            },
            "perStoreTotals": [q.to_dict() for q in self.per_store_totals],
            "overallDiscounts": (
                self.overall_discounts.to_dict() if self.overall_discounts else None
            ),
            "grandTotal": money_to_json(self.grand_total),
            "paymentInfo": self.payment_info.to_dict(),
            "breakdownSuppressed": self.breakdown_suppressed,
            "createdAt": self.created_at,
            "idemKey": self.idempotency_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        overall = data.get("overallDiscounts")
        return cls(
            id=data["id"],
            buyer=Buyer(
                name=data.get("name", ""),
                class_name=data.get("className", ""),
                justifications=[
                    Justification.from_dict(j) for j in data.get("justifications") or []
                ],
            ),
            items=[OrderItem.from_dict(i) for i in data.get("items") or []],
            per_store_totals=[StoreQuote.from_dict(q) for q in data.get("perStoreTotals") or []],
            grand_total=to_decimal(data.get("grandTotal", 0)),
            payment_info=PaymentInfo.from_dict(data["paymentInfo"]),
            overall_discounts=(
                OverallDiscountsSummary.from_dict(overall) if isinstance(overall, dict) else None
            ),
            breakdown_suppressed=bool(data.get("breakdownSuppressed", False)),
            idempotency_key=data.get("idemKey", ""),
            created_at=data.get("createdAt", ""),
        )
