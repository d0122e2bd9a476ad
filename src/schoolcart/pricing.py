"""
Store pricing engine.

GST is computed on ITEMS ONLY. Final total = items_net + gst + shipping_net.

Rules are applied in a fixed order, each stage working on the result of the
previous one:

- nthItemPercent: k = floor(units / nth) cheapest units across the store cart
- overallPercent: allocated proportionally across items (post-nth)
- shippingThreshold: discounted shipping once items_net >= threshold
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeVar

from .log import get_logger
from .models import (
    DEFAULT_GST_RATE,
    CartLine,
    DiscountRule,
    ItemDiscount,
    NthAppliedUnit,
    NthItemPercent,
    OverallPercent,
    PricedItem,
    Product,
    ShippingThreshold,
    StoreTotals,
)
from .utils import ZERO, round2, to_decimal

logger = get_logger(__name__)

HUNDRED = Decimal(100)

R = TypeVar("R", NthItemPercent, OverallPercent, ShippingThreshold)


@dataclass(frozen=True)
class _Unit:
    sku: str
    unit_price: Decimal


def find_rule(rules: Iterable[DiscountRule], rule_type: type[R]) -> R | None:
    """Return the first rule of the given kind, if any."""
    for rule in rules:
        if isinstance(rule, rule_type):
            return rule
    return None


def format_percent(percent: Decimal) -> str:
    """Format a percentage for a discount label: 50 -> '50', 12.50 -> '12.5'."""
    return f"{to_decimal(percent).normalize():f}"


def price_store(
    catalog: Mapping[str, Product],
    lines: Iterable[CartLine],
    rules: Iterable[DiscountRule],
    shipping_base_fee: Decimal | float | int,
    gst_rate: Decimal | float = DEFAULT_GST_RATE,
) -> StoreTotals:
    """
    Price one store's cart.

    Lines for unknown skus or with non-positive quantity are dropped. Inputs
    are never mutated; every call recomputes from scratch.

    Args:
        catalog: Store products keyed by sku.
        lines: Cart lines for this store. Repeated skus are merged.
        rules: The store's discount rules (at most one of each kind is used).
        shipping_base_fee: Shipping fee before any shipping discount.
        gst_rate: GST rate applied to the discounted items total.

    Returns:
        StoreTotals with per-item discount attribution.
    """
    rules = list(rules)
    per_item = _build_items(catalog, lines)
    if not per_item:
        return StoreTotals.empty()

    by_sku = {item.sku: item for item in per_item}
    units = [
        _Unit(item.sku, item.unit_price)
        for item in per_item
        for _ in range(item.quantity)
    ]

    items_subtotal = round2(sum((i.original_line_total for i in per_item), ZERO))

    nth_applied = _apply_nth_item(by_sku, units, find_rule(rules, NthItemPercent))
    overall = find_rule(rules, OverallPercent)
    _apply_overall_percent(per_item, overall)

    for item in per_item:
        item.final_line_total = round2(item.original_line_total - item.discount_total)

    items_discount = round2(sum((i.discount_total for i in per_item), ZERO))
    items_net = round2(items_subtotal - items_discount)

    shipping_base = round2(shipping_base_fee)
    shipping_discount = _shipping_discount(
        shipping_base, items_net, find_rule(rules, ShippingThreshold)
    )
    shipping_net = round2(max(ZERO, shipping_base - shipping_discount))

    # GST on items only, never on shipping
    gst = round2(items_net * to_decimal(gst_rate))

    store_total = round2(items_net + gst + shipping_net)

    totals = StoreTotals(
        items_subtotal=items_subtotal,
        items_discount=items_discount,
        items_net=items_net,
        shipping_base=shipping_base,
        shipping_discount=shipping_discount,
        shipping_net=shipping_net,
        gst=gst,
        store_total=store_total,
        per_item=per_item,
        nth_applied_units=nth_applied,
        overall_percent=overall.percent_off if overall else None,
    )
    logger.debug(
        "store_priced",
        items=len(per_item),
        units=len(units),
        items_net=str(items_net),
        store_total=str(store_total),
    )
    return totals


def _build_items(catalog: Mapping[str, Product], lines: Iterable[CartLine]) -> list[PricedItem]:
    """Merge lines per sku (first-seen order) and build undiscounted items."""
    quantities: dict[str, int] = {}
    for line in lines:
        if line.sku not in catalog or line.quantity <= 0:
            continue
        quantities[line.sku] = quantities.get(line.sku, 0) + line.quantity

    items = []
    for sku, qty in quantities.items():
        product = catalog[sku]
        items.append(
            PricedItem(
                sku=sku,
                name=product.name,
                image=product.image,
                quantity=qty,
                unit_price=product.unit_price,
                original_line_total=round2(product.unit_price * qty),
            )
        )
    return items


def _apply_nth_item(
    by_sku: dict[str, PricedItem],
    units: list[_Unit],
    rule: NthItemPercent | None,
) -> list[NthAppliedUnit]:
    """Discount the k cheapest units, k = floor(units / nth)."""
    if rule is None or rule.nth <= 0:
        return []

    k = len(units) // rule.nth
    if k <= 0:
        return []

    applied = []
    label = f"Nth item {format_percent(rule.percent_off)}% off"
    # sorted() is stable, so equal prices keep cart order
    for unit in sorted(units, key=lambda u: u.unit_price)[:k]:
        amount = round2(unit.unit_price * rule.percent_off / HUNDRED)
        if amount <= 0:
            continue
        by_sku[unit.sku].discounts.append(
            ItemDiscount(kind=NthItemPercent.kind, label=label, amount=amount)
        )
        applied.append(NthAppliedUnit(sku=unit.sku, unit_price=unit.unit_price, amount=amount))
    return applied


def _apply_overall_percent(per_item: list[PricedItem], rule: OverallPercent | None) -> None:
    """
    Spread a storewide percentage over items in proportion to their remaining base.

    The last item with a positive base takes the remainder, so the allocated
    amounts always sum to the target to the cent.
    """
    if rule is None or rule.percent_off <= 0:
        return

    bases = [item.remaining_base for item in per_item]
    after_nth_base = round2(sum(bases, ZERO))
    if after_nth_base <= 0:
        return

    target = round2(rule.percent_off / HUNDRED * after_nth_base)
    last_idx = max(idx for idx, base in enumerate(bases) if base > 0)
    label = f"Storewide {format_percent(rule.percent_off)}% off"

    running = ZERO
    for idx, (item, base) in enumerate(zip(per_item, bases)):
        if base <= 0:
            continue
        if idx == last_idx:
            amount = round2(target - running)
        else:
            amount = min(round2(base / after_nth_base * target), target - running)
            running = round2(running + amount)
        if amount > 0:
            item.discounts.append(
                ItemDiscount(kind=OverallPercent.kind, label=label, amount=amount)
            )


def _shipping_discount(
    shipping_base: Decimal, items_net: Decimal, rule: ShippingThreshold | None
) -> Decimal:
    if rule is None or items_net < rule.threshold:
        return ZERO
    return round2(shipping_base * rule.shipping_percent_off / HUNDRED)
