"""Participant claim actions on receipt items.

Items are immutable snapshots; every action returns an updated copy so
concurrent toggles from different participants stay independent.
"""

from collections.abc import Iterable

from billsplit.models import ReceiptItem


def claim_item(item: ReceiptItem, participant_id: str) -> ReceiptItem:
    """Add ``participant_id`` as a claimant. Claiming twice is a no-op."""
    if participant_id in item.claimed_by:
        return item
    return item.model_copy(update={"claimed_by": [*item.claimed_by, participant_id]})


def unclaim_item(item: ReceiptItem, participant_id: str) -> ReceiptItem:
    if participant_id not in item.claimed_by:
        return item
    remaining = [pid for pid in item.claimed_by if pid != participant_id]
    return item.model_copy(update={"claimed_by": remaining})


def toggle_claim(item: ReceiptItem, participant_id: str) -> ReceiptItem:
    if participant_id in item.claimed_by:
        return unclaim_item(item, participant_id)
    return claim_item(item, participant_id)


def assign_item(item: ReceiptItem, participant_ids: Iterable[str]) -> ReceiptItem:
    """Replace the claimant set, e.g. when the host assigns an item to guests."""
    # model_copy skips validation, so dedupe here
    return item.model_copy(update={"claimed_by": list(dict.fromkeys(participant_ids))})


def clear_claims(item: ReceiptItem) -> ReceiptItem:
    return assign_item(item, [])
