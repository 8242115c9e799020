"""Bill allocation engine.

Pure functions that turn a receipt snapshot (receipt + items + claims) into
per-participant obligations. Nothing here performs I/O or keeps state, so
every caller can simply recompute from the latest snapshot.

Preconditions: prices are non-negative integers. Validation happens at the
ingestion boundary (``billsplit.ingestion.ParsedReceipt``), not here.

Rounding is round-half-up on the float quotient. Equal splits are *not*
reconciled: an item of 100 cents claimed by three people yields 33 + 33 + 33.
"""

import math
from collections.abc import Iterable, Sequence

from billsplit.config import DEFAULT_TOTALS_TOLERANCE_CENTS
from billsplit.models import (
    ItemShare,
    ParticipantShare,
    Receipt,
    ReceiptItem,
    ReceiptSummary,
)
from billsplit.runtime import get_logger

logger = get_logger(__name__)

TIP_PROMPT_MERCHANT_TYPES = frozenset({"restaurant", "services", "travel", "entertainment"})
UNKNOWN_MERCHANT_TYPES = frozenset({"", "unknown"})


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def item_total_cents(item: ReceiptItem) -> int:
    """Item price plus all modifier prices, missing prices counting as 0."""
    modifiers_cents = sum(modifier.price_cents or 0 for modifier in item.modifiers)
    return (item.price_cents or 0) + modifiers_cents


def receipt_subtotal_cents(items: Iterable[ReceiptItem]) -> int:
    """Sum of item totals.

    This is the subtotal that drives apportionment. It is never derived from
    ``total - tax - tip``; see ``billed_subtotal_cents`` for that display value.
    """
    return sum(item_total_cents(item) for item in items)


def per_participant_share_of_item(item: ReceiptItem, participant_id: str) -> int:
    """Equal share of ``item`` owed by ``participant_id`` (0 if not a claimant)."""
    if participant_id not in item.claimed_by:
        return 0
    return round_half_up(item_total_cents(item) / len(item.claimed_by))


def participant_subtotal_cents(items: Iterable[ReceiptItem], participant_id: str) -> int:
    return sum(per_participant_share_of_item(item, participant_id) for item in items)


def participant_proportion(items: Sequence[ReceiptItem], participant_id: str) -> float:
    """Fraction of the receipt subtotal the participant claimed, 0 for an empty bill."""
    subtotal = receipt_subtotal_cents(items)
    if subtotal == 0:
        return 0.0
    return participant_subtotal_cents(items, participant_id) / subtotal


def apportion(
    receipt: Receipt, items: Sequence[ReceiptItem], participant_id: str
) -> ParticipantShare:
    """Compute a participant's subtotal, tax, tip and total.

    Tax and tip are allocated in proportion to the participant's share of the
    item subtotal: claiming nothing owes nothing, claiming everything owes the
    full tax and tip.

    Args:
        receipt: Receipt carrying the tax and tip amounts
        items: All items on the receipt
        participant_id: Participant to compute the share for

    Returns:
        ParticipantShare with all amounts in cents
    """
    subtotal = participant_subtotal_cents(items, participant_id)
    proportion = participant_proportion(items, participant_id)
    tax = round_half_up((receipt.tax_cents or 0) * proportion)
    tip = round_half_up((receipt.tip_cents or 0) * proportion)
    return ParticipantShare(
        participant_id=participant_id,
        subtotal_cents=subtotal,
        tax_cents=tax,
        tip_cents=tip,
        total_cents=subtotal + tax + tip,
    )


def claimed_amount_cents(items: Iterable[ReceiptItem]) -> int:
    """Full cost of every item with at least one claimant.

    A partially split item counts as 100% claimed: the open question is who
    pays, not whether the cost is accounted for.
    """
    return sum(item_total_cents(item) for item in items if item.claimed_by)


def unclaimed_amount_cents(items: Sequence[ReceiptItem]) -> int:
    return receipt_subtotal_cents(items) - claimed_amount_cents(items)


def progress_percentage(claimed: int, total: int) -> float:
    """Claimed share of ``total`` as a percentage clamped to [0, 100]."""
    if total <= 0:
        return 0.0
    return min(100.0, max(0.0, claimed / total * 100))


def should_prompt_tip_confirmation(receipt: Receipt) -> bool:
    """Decide whether the host should be asked to confirm the tip.

    Errs toward asking: tipping merchants, a non-zero tip, and an unknown
    merchant type all prompt. Only a confirmed tip or a known non-tipping
    merchant with no tip skips the prompt.
    """
    if receipt.tip_confirmed:
        return False

    merchant_type = (receipt.merchant_type or "").strip().lower()
    if merchant_type in TIP_PROMPT_MERCHANT_TYPES:
        return True
    if (receipt.tip_cents or 0) > 0:
        return True
    return merchant_type in UNKNOWN_MERCHANT_TYPES


def billed_subtotal_cents(receipt: Receipt) -> int | None:
    """Subtotal as printed on the bill, ``total - tax - tip``.

    Display only. Returns None unless both total and tax are known.
    """
    if receipt.total_cents is None or receipt.tax_cents is None:
        return None
    return receipt.total_cents - receipt.tax_cents - (receipt.tip_cents or 0)


def totals_discrepancy_cents(receipt: Receipt, items: Sequence[ReceiptItem]) -> int | None:
    """Stated total minus ``subtotal + tax + tip``; None if no total was parsed."""
    if receipt.total_cents is None:
        return None
    expected = receipt_subtotal_cents(items) + (receipt.tax_cents or 0) + (receipt.tip_cents or 0)
    return receipt.total_cents - expected


def totals_consistent(
    receipt: Receipt,
    items: Sequence[ReceiptItem],
    tolerance_cents: int = DEFAULT_TOTALS_TOLERANCE_CENTS,
) -> bool:
    """Check the parser's ``total ≈ subtotal + tax + tip`` expectation."""
    discrepancy = totals_discrepancy_cents(receipt, items)
    if discrepancy is None:
        return True
    return abs(discrepancy) <= tolerance_cents


def split_drift_cents(item: ReceiptItem) -> int:
    """Sum of the equal shares minus the item total.

    Bounded by ``len(claimed_by) / 2`` in absolute value (each share rounds off
    by at most half a cent); 0 for unclaimed items.
    """
    if not item.claimed_by:
        return 0
    shares = sum(per_participant_share_of_item(item, pid) for pid in item.claimed_by)
    return shares - item_total_cents(item)


def participant_items(items: Iterable[ReceiptItem], participant_id: str) -> list[ItemShare]:
    """Lines of a participant's personal statement, in receipt order."""
    return [
        ItemShare(
            item=item,
            share_cents=per_participant_share_of_item(item, participant_id),
            claimant_count=len(item.claimed_by),
            item_total_cents=item_total_cents(item),
        )
        for item in items
        if participant_id in item.claimed_by
    ]


def participant_ids(receipt: Receipt, items: Iterable[ReceiptItem]) -> list[str]:
    """Roster participants first, then claimants missing from the roster."""
    ordered = [participant.id for participant in receipt.participants]
    for item in items:
        ordered.extend(item.claimed_by)
    return list(dict.fromkeys(ordered))


def summarize_receipt(
    receipt: Receipt,
    items: Sequence[ReceiptItem],
    tolerance_cents: int = DEFAULT_TOTALS_TOLERANCE_CENTS,
) -> ReceiptSummary:
    """Build the full breakdown for a receipt snapshot."""
    subtotal = receipt_subtotal_cents(items)
    claimed = claimed_amount_cents(items)
    consistent = totals_consistent(receipt, items, tolerance_cents)
    if not consistent:
        logger.warning(
            "Receipt %s totals off by %s cents (tolerance %s)",
            receipt.id,
            totals_discrepancy_cents(receipt, items),
            tolerance_cents,
        )

    return ReceiptSummary(
        receipt_id=receipt.id,
        currency=receipt.currency,
        subtotal_cents=subtotal,
        billed_subtotal_cents=billed_subtotal_cents(receipt),
        claimed_cents=claimed,
        unclaimed_cents=subtotal - claimed,
        progress_percentage=progress_percentage(claimed, subtotal),
        prompt_tip_confirmation=should_prompt_tip_confirmation(receipt),
        totals_consistent=consistent,
        shares=[apportion(receipt, items, pid) for pid in participant_ids(receipt, items)],
    )
