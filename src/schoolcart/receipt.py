"""Receipt generation for placed orders."""

import json
from pathlib import Path
from typing import Any

from .models import Order, OrderItem, StoreQuote
from .utils import format_money

SUPPRESSED_NOTICE = (
    "The discount calculation system for the store is down. The overall "
    "discounts are still accurate, but per-item and shipping breakdowns are hidden."
)
CAP_NOTICE = (
    "You have exceeded the maximum discount limit. Your overall discount has been capped."
)


def order_to_dict(order: Order) -> dict[str, Any]:
    """
    Convert an Order to the payload posted to the payment/receipt side.

    Args:
        order: The placed order.

    Returns:
        Dictionary representation.
    """
    return order.to_dict()


def write_order_doc(order: Order, path: str | Path) -> None:
    """Write the order payload as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(order_to_dict(order), f, indent=2)
        f.write("\n")


def _item_lines(item: OrderItem, show_breakdown: bool) -> list[str]:
    priced = item.item
    lines = [
        f"- **{priced.name}** ({priced.sku}): {priced.quantity} × "
        f"{format_money(priced.unit_price)} = {format_money(priced.final_line_total)}"
    ]
    has_discount = priced.final_line_total < priced.original_line_total
    if show_breakdown and has_discount:
        lines.append(f"  - Original: {format_money(priced.original_line_total)}")
        for discount in priced.discounts:
            lines.append(f"  - {discount.label}: -{format_money(discount.amount)}")
    return lines


def _store_total_lines(quote: StoreQuote, show_breakdown: bool) -> list[str]:
    totals = quote.totals
    lines = [
        f"### {quote.store_name or quote.store_id}: {format_money(totals.store_total)}",
        "",
        f"- Items subtotal: {format_money(totals.items_subtotal)}",
        f"- Items discounts: -{format_money(totals.items_discount)}",
    ]
    if show_breakdown:
        lines.extend([
            f"- Items net: {format_money(totals.items_net)}",
            f"- Shipping (base): {format_money(totals.shipping_base)}",
            f"- Shipping discounts: -{format_money(totals.shipping_discount)}",
            f"- Shipping net: {format_money(totals.shipping_net)}",
        ])
    else:
        lines.append(f"- Shipping: {format_money(totals.shipping_net)}")
    lines.extend([f"- GST: {format_money(totals.gst)}", ""])
    return lines


def render_receipt(order: Order) -> str:
    """
    Render a human-readable markdown receipt.

    Per-item discounts and shipping breakdowns are hidden when the order has
    breakdown_suppressed set; totals are always shown.
    """
    show_breakdown = not order.breakdown_suppressed
    by_sku = {i.item.sku: i.item for i in order.items}

    lines = [
        "# Receipt",
        "",
        f"**Order:** `{order.id}`",
        f"**Name:** {order.buyer.name}",
        f"**Class:** {order.buyer.class_name}",
        f"**Created:** {order.created_at}",
        "",
    ]

    if order.breakdown_suppressed:
        lines.extend([f"> {SUPPRESSED_NOTICE}", ""])

    if order.buyer.justifications:
        lines.extend(["## Your Justified Picks", ""])
        for j in order.buyer.justifications:
            ref = by_sku.get(j.sku)
            label = ref.name if ref else j.sku
            cost = f" ({format_money(ref.final_line_total)})" if ref else ""
            lines.append(f"- **{label}**{cost}: {j.text}")
        lines.append("")

    lines.extend(["## Items", ""])
    for store, items in order.items_by_store.items():
        lines.extend([f"### {store}", ""])
        for item in items:
            lines.extend(_item_lines(item, show_breakdown))
        lines.append("")

    if order.per_store_totals:
        lines.extend(["## Store Totals", ""])
        for quote in order.per_store_totals:
            lines.extend(_store_total_lines(quote, show_breakdown))

    overall = order.overall_discounts
    if overall is not None:
        lines.extend([
            "## Overall Discounts",
            "",
            f"- Grand total before discount vouchers: "
            f"{format_money(overall.grand_total_before_discounts)}",
        ])
        if overall.percent_discount_amount > 0:
            lines.append(
                f"- Discount voucher percentage discounts: "
                f"-{format_money(overall.percent_discount_amount)}"
            )
        if overall.absolute_discount_amount > 0:
            lines.append(f"- Discount voucher: -{format_money(overall.absolute_discount_amount)}")
        if overall.applied_codes:
            codes = ", ".join(f"`{c.code}`" for c in overall.applied_codes)
            lines.append(f"- Codes: {codes}")
        if overall.cap_applied:
            lines.extend(["", f"> {CAP_NOTICE}"])
        lines.append("")

    payment = order.payment_info
    lines.extend([
        f"## Grand Total: {format_money(order.grand_total)}",
        "",
        "## Payment",
        "",
        f"- Gift card: ****{payment.gift_card_number[-4:]}",
        f"- Balance before: {format_money(payment.balance_before)}",
        f"- Charged: {format_money(payment.charge_amount)}",
        f"- Balance after: {format_money(payment.balance_after)}",
        "",
    ])

    return "\n".join(lines)


def write_receipt(order: Order, path: str | Path) -> None:
    """
    Write a markdown receipt.

    Args:
        order: The placed order.
        path: Path to write the receipt.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(render_receipt(order))
