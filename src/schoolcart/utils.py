"""Utility functions for schoolcart."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

from .errors import InvalidLineSpecError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
CURRENCY_SYMBOL = "S$"


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a JSON-ish number to Decimal.

    Floats go through their shortest repr so 9.99 becomes Decimal("9.99"),
    not the binary expansion. Anything unparsable or non-finite becomes 0.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        return Decimal(0)
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal(0)

    if not result.is_finite():
        return Decimal(0)
    return result


def round2(value: Any) -> Decimal:
    """
    Round to currency precision (2 places, half away from zero).

    Never raises: garbage in gives 0.00 out. Precision grows with the
    magnitude so large amounts keep every digit.
    """
    amount = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        try:
            return amount.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return ZERO


def number_to_json(value: Any) -> float | int:
    """Render a plain number (percentage, count or rate) without rounding."""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def money_to_json(value: Decimal) -> float | int:
    """Render a money amount as a JSON number (ints stay ints)."""
    return number_to_json(round2(value))


def format_money(value: Any) -> str:
    """Format an amount for display, e.g. 'S$12.30' or '-S$1.05'."""
    amount = round2(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def normalise_code(code: str) -> str:
    """Normalise a discount code for case-insensitive comparison."""
    return code.strip().lower()


def parse_line_spec(spec: str) -> tuple[str, int]:
    """
    Parse a cart line spec into (sku, qty).

    Formats:
    - "SKU-1=3" (explicit quantity)
    - "SKU-1" (quantity 1)

    Raises:
        InvalidLineSpecError: If the spec is malformed.
    """
    match = re.match(r"^\s*([^=\s]+)\s*(?:=\s*(-?\d+)\s*)?$", spec)
    if not match:
        raise InvalidLineSpecError(spec, "expected 'sku=qty'")

    sku = match.group(1)
    qty = int(match.group(2)) if match.group(2) is not None else 1
    return sku, qty


def parse_justification_spec(spec: str) -> tuple[str, str]:
    """
    Parse a justification spec 'sku=reason text' into (sku, text).

    Raises:
        InvalidLineSpecError: If there's no sku or no text.
    """
    if "=" not in spec:
        raise InvalidLineSpecError(spec, "expected 'sku=reason'")
    sku, text = spec.split("=", 1)
    sku = sku.strip()
    text = text.strip()
    if not sku or not text:
        raise InvalidLineSpecError(spec, "expected 'sku=reason'")
    return sku, text
