"""Checkout-level discount codes: validation on apply, and capped stacking."""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from .errors import (
    CodeAlreadyAppliedError,
    CodeNotRecognisedError,
    EmptyCodeError,
    PercentCodeLimitError,
    SchoolCartError,
)
from .log import get_logger
from .models import (
    PERCENT,
    DiscountCap,
    DiscountCode,
    OverallDiscountsSummary,
    StoreTotals,
)
from .utils import ZERO, normalise_code, round2

logger = get_logger(__name__)

HUNDRED = Decimal(100)


def find_code(code: str, catalog_codes: Iterable[DiscountCode]) -> DiscountCode | None:
    """Look up a code case-insensitively."""
    wanted = normalise_code(code)
    for candidate in catalog_codes:
        if normalise_code(candidate.code) == wanted:
            return candidate
    return None


def resolve_codes(
    applied: Iterable[str], catalog_codes: Sequence[DiscountCode]
) -> list[DiscountCode]:
    """Map applied code strings to DiscountCode objects, dropping unknown ones."""
    resolved = []
    for code in applied:
        match = find_code(code, catalog_codes)
        if match is not None:
            resolved.append(match)
    return resolved


def apply_code(
    raw: str, applied: Sequence[str], catalog_codes: Sequence[DiscountCode]
) -> list[str]:
    """
    Validate a code entered by the shopper and add it to the applied set.

    Args:
        raw: The code as typed.
        applied: Codes already applied.
        catalog_codes: The site's discount code list.

    Returns:
        A new applied list with the canonical spelling of the code appended.

    Raises:
        EmptyCodeError: If the code is blank.
        CodeNotRecognisedError: If the code isn't in the site's list.
        CodeAlreadyAppliedError: If the code is already applied.
        PercentCodeLimitError: If a percent code is already applied.
    """
    try:
        match = _validate_code(raw, applied, catalog_codes)
    except SchoolCartError as e:
        logger.info("discount_code_rejected", code=raw.strip(), reason=str(e))
        raise

    logger.info("discount_code_applied", code=match.code, kind=match.kind)
    return [*applied, match.code]


def validate_codes(codes: Iterable[str], catalog_codes: Sequence[DiscountCode]) -> list[str]:
    """Apply codes one at a time, so the first invalid one raises."""
    applied: list[str] = []
    for code in codes:
        applied = apply_code(code, applied, catalog_codes)
    return applied


def _validate_code(
    raw: str, applied: Sequence[str], catalog_codes: Sequence[DiscountCode]
) -> DiscountCode:
    code = raw.strip()
    if not code:
        raise EmptyCodeError()

    match = find_code(code, catalog_codes)
    if match is None:
        raise CodeNotRecognisedError(code)

    if any(normalise_code(c) == normalise_code(match.code) for c in applied):
        raise CodeAlreadyAppliedError(match.code)

    if match.kind == PERCENT:
        for existing in resolve_codes(applied, catalog_codes):
            if existing.kind == PERCENT:
                raise PercentCodeLimitError(match.code, existing.code)

    return match


def remove_code(code: str, applied: Sequence[str]) -> list[str]:
    """Return the applied list without the given code (case-insensitive)."""
    wanted = normalise_code(code)
    return [c for c in applied if normalise_code(c) != wanted]


def cap_ceiling(grand_before: Decimal, cap: DiscountCap | None) -> Decimal:
    """The most the codes may take off: min(grand total, absolute cap, percent cap)."""
    ceiling = grand_before
    if cap is None:
        return ceiling
    if cap.absolute_max is not None:
        ceiling = min(ceiling, max(ZERO, cap.absolute_max))
    if cap.percent_max is not None:
        ceiling = min(ceiling, max(ZERO, grand_before * cap.percent_max / HUNDRED))
    return ceiling


def apply_codes(
    per_store_totals: Iterable[StoreTotals],
    applied_codes: Iterable[DiscountCode],
    cap: DiscountCap | None = None,
) -> OverallDiscountsSummary:
    """
    Stack the applied discount codes on top of the summed store totals.

    At most one percent code is expected (apply_code enforces that); any
    number of absolute codes may stack. When the combined discount exceeds
    the cap, the percent discount is used in full first and the absolute
    codes get whatever headroom is left.

    Args:
        per_store_totals: Totals of every non-empty store.
        applied_codes: Resolved codes the shopper applied.
        cap: Optional ceiling on the combined discount. None means no cap.

    Returns:
        OverallDiscountsSummary with the grand total before and after codes.
    """
    codes = list(applied_codes)
    grand_before = round2(sum((t.store_total for t in per_store_totals), ZERO))

    percent_code: DiscountCode | None = None
    absolute_codes: list[DiscountCode] = []
    for code in codes:
        if code.kind == PERCENT:
            percent_code = code
        else:
            absolute_codes.append(code)

    if grand_before <= 0 or not codes:
        return OverallDiscountsSummary(
            grand_total_before_discounts=grand_before,
            grand_total_after_discounts=grand_before,
            applied_codes=codes,
            configured_cap=cap,
            percent_code=percent_code,
        )

    raw_percent = ZERO
    if percent_code is not None and percent_code.amount > 0:
        raw_percent = round2(grand_before * percent_code.amount / HUNDRED)
    raw_absolute = sum((max(ZERO, c.amount) for c in absolute_codes), ZERO)

    max_allowed = cap_ceiling(grand_before, cap)

    used_percent = raw_percent
    used_absolute = raw_absolute
    cap_applied = False
    if raw_percent + raw_absolute > max_allowed:
        cap_applied = True
        used_percent = min(raw_percent, max_allowed)
        used_absolute = min(raw_absolute, max(ZERO, max_allowed - used_percent))

    used_percent = round2(used_percent)
    used_absolute = round2(used_absolute)
    grand_after = round2(max(ZERO, grand_before - used_percent - used_absolute))

    if cap_applied:
        logger.info(
            "discount_cap_applied",
            grand_before=str(grand_before),
            max_allowed=str(max_allowed),
        )

    return OverallDiscountsSummary(
        grand_total_before_discounts=grand_before,
        grand_total_after_discounts=grand_after,
        percent_discount_amount=used_percent,
        absolute_discount_amount=used_absolute,
        applied_codes=codes,
        cap_applied=cap_applied,
        configured_cap=cap,
        percent_code=percent_code,
    )
