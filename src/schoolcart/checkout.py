"""Checkout flow: quote a cart, validate the buyer, redeem a gift card, place the order."""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from .catalog_store import CatalogStore
from .discounts import apply_codes, resolve_codes
from .errors import (
    EmptyCartError,
    GiftCardNotFoundError,
    InsufficientBalanceError,
    InvalidBuyerError,
    InvalidCardNumberError,
    StoreNotFoundError,
)
from .log import get_logger
from .models import (
    Buyer,
    Cart,
    CartLine,
    Justification,
    Order,
    OrderItem,
    OverallDiscountsSummary,
    PaymentInfo,
    SiteIndex,
    Store,
    StoreQuote,
    _generate_id,
)
from .order_history import OrderHistory
from .pricing import price_store
from .utils import format_money, money_to_json, round2

logger = get_logger(__name__)

MAX_JUSTIFICATIONS = 3
CARD_NUMBER_RE = re.compile(r"^\d{6,24}$")


@dataclass
class Quote:
    """Priced cart: per-store totals plus the discount code summary."""

    store_quotes: list[StoreQuote]
    summary: OverallDiscountsSummary

    @property
    def grand_total(self) -> Decimal:
        return self.summary.grand_total_after_discounts

    @property
    def is_empty(self) -> bool:
        return not self.store_quotes

    @property
    def items(self) -> list[OrderItem]:
        return [
            OrderItem(store_id=q.store_id, store_name=q.store_name, item=item)
            for q in self.store_quotes
            for item in q.totals.per_item
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "stores": [q.to_dict(include_items=True) for q in self.store_quotes],
            "overallDiscounts": self.summary.to_dict(),
            "grandTotal": money_to_json(self.grand_total),
        }


def price_store_lines(store: Store, lines: Sequence[CartLine], gst_rate: Decimal) -> StoreQuote:
    """Run the pricing engine for one store's lines."""
    totals = price_store(
        store.products_by_sku,
        lines,
        store.discounts,
        store.shipping_base_fee,
        gst_rate,
    )
    return StoreQuote(store_id=store.id, store_name=store.name, totals=totals)


class Checkout:
    """Orchestrates quoting and placing orders against a catalog."""

    def __init__(self, catalog: CatalogStore, history: OrderHistory | None = None):
        self.catalog = catalog
        self.history = history or OrderHistory(catalog.data_dir)

    def quote(self, cart: Cart, applied_codes: Sequence[str] = ()) -> Quote:
        """
        Price every non-empty store in the cart and stack the applied codes.

        Stores missing from the catalog, and stores where no line matches a
        product, are left out of the quote.
        """
        index = self.catalog.load_index()
        return self._quote(cart, applied_codes, index)

    def _quote(self, cart: Cart, applied_codes: Sequence[str], index: SiteIndex) -> Quote:
        store_quotes = []
        for store_id in cart.non_empty_store_ids():
            try:
                store = self.catalog.get_store(store_id)
            except StoreNotFoundError:
                logger.warning("cart_store_missing", store_id=store_id, cart_id=cart.id)
                continue

            quote = price_store_lines(store, cart.store_lines(store_id), index.gst_rate)
            if quote.totals.per_item:
                store_quotes.append(quote)

        codes = resolve_codes(applied_codes, index.discount_codes)
        summary = apply_codes([q.totals for q in store_quotes], codes, index.discount_cap)
        return Quote(store_quotes=store_quotes, summary=summary)

    def validate_buyer(self, buyer: Buyer, quote: Quote, classes: Sequence[str] = ()) -> Buyer:
        """
        Check buyer details and return them with justifications compacted.

        Between one and min(3, distinct items) justifications are required,
        each naming a sku in the cart with a non-blank reason.

        Raises:
            InvalidBuyerError: On the first invalid field.
        """
        name = buyer.name.strip()
        class_name = buyer.class_name.strip()
        if not name:
            raise InvalidBuyerError("name", "Required")
        if not class_name:
            raise InvalidBuyerError("className", "Required")
        if classes and class_name not in classes:
            raise InvalidBuyerError("className", f"Unknown class {class_name!r}")

        skus_in_cart = {i.item.sku for i in quote.items}
        distinct_items = {(i.store_id, i.item.sku) for i in quote.items}
        justify_count = min(MAX_JUSTIFICATIONS, len(distinct_items))

        justifications = []
        seen: set[str] = set()
        for j in buyer.justifications:
            sku, text = j.sku.strip(), j.text.strip()
            if not sku or not text:
                continue
            if sku not in skus_in_cart:
                raise InvalidBuyerError("justifications", f"{sku} is not in the cart")
            if sku in seen:
                raise InvalidBuyerError("justifications", f"{sku} is justified twice")
            seen.add(sku)
            justifications.append(Justification(sku=sku, text=text))

        if justify_count > 0 and not justifications:
            raise InvalidBuyerError("justifications", "Pick at least one item to justify")
        if len(justifications) > justify_count:
            raise InvalidBuyerError("justifications", f"At most {justify_count} justifications")

        return Buyer(name=name, class_name=class_name, justifications=justifications)

    def redeem_gift_card(self, card_number: str, amount: Decimal) -> PaymentInfo:
        """
        Simulate a gift card charge: look the card up and check its balance.

        Nothing is written back to the card list.

        Raises:
            InvalidCardNumberError: If the number isn't 6-24 digits.
            GiftCardNotFoundError: If the card isn't known.
            InsufficientBalanceError: If the balance is below the amount.
        """
        number = re.sub(r"\s+", "", card_number)
        if not CARD_NUMBER_RE.match(number):
            raise InvalidCardNumberError(card_number)

        card = next((c for c in self.catalog.gift_cards() if c.number == number), None)
        if card is None:
            logger.info("gift_card_declined", reason="not_found")
            raise GiftCardNotFoundError(number)

        amount = round2(amount)
        if card.balance < amount:
            logger.info("gift_card_declined", reason="insufficient_balance")
            raise InsufficientBalanceError(format_money(card.balance), format_money(amount))

        return PaymentInfo(
            gift_card_number=number,
            balance_before=card.balance,
            charge_amount=amount,
            balance_after=round2(card.balance - amount),
        )

    def place_order(
        self,
        cart: Cart,
        applied_codes: Sequence[str],
        buyer: Buyer,
        card_number: str,
        breakdown_suppressed: bool = False,
        idempotency_key: str | None = None,
    ) -> Order:
        """
        Quote the cart, validate the buyer, charge the gift card and record the order.

        A repeated idempotency key returns the order already recorded for it.

        Raises:
            EmptyCartError: If nothing in the cart can be priced.
            InvalidBuyerError, InvalidCardNumberError, GiftCardNotFoundError,
            InsufficientBalanceError: From validation and redemption.
        """
        if idempotency_key:
            existing = self.history.find_by_idempotency_key(idempotency_key)
            if existing is not None:
                return existing

        index = self.catalog.load_index()
        quote = self._quote(cart, applied_codes, index)
        if quote.is_empty:
            raise EmptyCartError()

        buyer = self.validate_buyer(buyer, quote, index.classes)
        payment = self.redeem_gift_card(card_number, quote.grand_total)

        order = Order(
            id=_generate_id(),
            buyer=buyer,
            items=quote.items,
            per_store_totals=quote.store_quotes,
            grand_total=quote.grand_total,
            payment_info=payment,
            overall_discounts=quote.summary if quote.summary.has_discounts else None,
            breakdown_suppressed=breakdown_suppressed,
            idempotency_key=idempotency_key or _generate_id(),
        )
        order = self.history.save_order(order)

        logger.info(
            "order_placed",
            order_id=order.id,
            stores=len(order.per_store_totals),
            grand_total=str(order.grand_total),
        )
        return order
