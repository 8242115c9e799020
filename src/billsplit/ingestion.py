"""Receipt lifecycle and the ingestion boundary for parsed receipts.

The external vision model produces a ``ParsedReceipt``. Validating it here is
what lets the allocation engine assume non-negative integer amounts.

Lifecycle::

    draft ──start_parsing──> parsing ──apply_parsed_receipt──> parsed
                               │                                  │
                               └──fail_parsing──> error           │
    parsed/error ──start_parsing (host re-parse)──> parsing <─────┘
"""

import uuid
from collections.abc import Callable

from pydantic import BaseModel, Field

from billsplit.models import (
    Modifier,
    Participant,
    Receipt,
    ReceiptItem,
    ReceiptStatus,
)
from billsplit.runtime import get_logger

logger = get_logger(__name__)


class BillSplitError(Exception):
    """Base exception for billsplit domain errors."""


class ReceiptStateError(BillSplitError):
    """Raised when a lifecycle transition is not allowed from the current status."""


class NotHostError(BillSplitError):
    """Raised when a host-only action is attempted by another participant."""


class ParsedModifier(BaseModel):
    name: str
    price_cents: int | None = Field(None, ge=0)


class ParsedItem(BaseModel):
    """Line item as returned by the parser; ``price_cents`` is the line total."""

    name: str
    quantity: int = Field(..., ge=1)
    price_cents: int | None = Field(None, ge=0)
    modifiers: list[ParsedModifier] = Field(default_factory=list)


class ParsedReceipt(BaseModel):
    """Structured receipt data produced by the external parsing collaborator."""

    merchant_name: str | None = None
    merchant_type: str | None = None
    date: str | None = None
    total_cents: int | None = Field(None, ge=0)
    tax_cents: int | None = Field(None, ge=0)
    tip_cents: int | None = Field(None, ge=0)
    items: list[ParsedItem] = Field(default_factory=list)


def _new_item_id(receipt_id: str, index: int) -> str:
    # Random suffix keeps ids from a re-parse distinct from the replaced items
    return f"{receipt_id}-{index}-{uuid.uuid4().hex[:8]}"


def ensure_host(receipt: Receipt, actor_id: str) -> None:
    """Raise NotHostError unless ``actor_id`` owns the receipt."""
    if actor_id != receipt.host_user_id:
        raise NotHostError(f"Only the host of receipt {receipt.id} can do that")


def new_receipt(
    receipt_id: str,
    host: Participant,
    *,
    merchant_type: str | None = None,
    currency: str = "USD",
) -> Receipt:
    """Create a draft receipt with the host as its first participant."""
    host_entry = host.model_copy(update={"is_host": True, "is_guest": False})
    return Receipt(
        id=receipt_id,
        host_user_id=host.id,
        merchant_type=merchant_type,
        currency=currency,
        participants=[host_entry],
    )


def start_parsing(receipt: Receipt, actor_id: str) -> Receipt:
    """Move a receipt to ``parsing``. Only the host may (re)parse."""
    ensure_host(receipt, actor_id)
    logger.info("Receipt %s: %s -> parsing", receipt.id, receipt.status.value)
    return receipt.model_copy(update={"status": ReceiptStatus.PARSING, "error_message": None})


def apply_parsed_receipt(
    receipt: Receipt,
    parsed: ParsedReceipt,
    *,
    item_id_factory: Callable[[str, int], str] | None = None,
) -> tuple[Receipt, list[ReceiptItem]]:
    """Store parser output on a receipt and build a fresh item list.

    The returned items fully replace any previous ones, including their
    claims. A merchant type already set on the receipt is kept when the
    parser did not report one.

    Args:
        receipt: Receipt in ``draft`` or ``parsing`` status
        parsed: Validated parser output
        item_id_factory: Optional ``(receipt_id, index) -> item_id`` callable

    Returns:
        Tuple of (parsed receipt, new items)

    Raises:
        ReceiptStateError: If the receipt is already parsed or failed
    """
    if receipt.status not in (ReceiptStatus.DRAFT, ReceiptStatus.PARSING):
        raise ReceiptStateError(
            f"Cannot apply parse results to receipt {receipt.id} in status "
            f"'{receipt.status.value}'; start a re-parse first"
        )

    make_id = item_id_factory or _new_item_id
    items = [
        ReceiptItem(
            id=make_id(receipt.id, index),
            receipt_id=receipt.id,
            name=parsed_item.name,
            quantity=parsed_item.quantity,
            price_cents=parsed_item.price_cents,
            modifiers=[
                Modifier(name=modifier.name, price_cents=modifier.price_cents)
                for modifier in parsed_item.modifiers
            ],
        )
        for index, parsed_item in enumerate(parsed.items)
    ]

    updated = receipt.model_copy(
        update={
            "status": ReceiptStatus.PARSED,
            "merchant_name": parsed.merchant_name,
            "merchant_type": parsed.merchant_type or receipt.merchant_type,
            "date": parsed.date,
            "total_cents": parsed.total_cents,
            "tax_cents": parsed.tax_cents,
            "tip_cents": parsed.tip_cents,
            "tip_confirmed": False,
            "error_message": None,
        }
    )
    logger.info("Receipt %s: parsed with %d items", receipt.id, len(items))
    return updated, items


def fail_parsing(receipt: Receipt, message: str) -> Receipt:
    if receipt.status is not ReceiptStatus.PARSING:
        raise ReceiptStateError(
            f"Receipt {receipt.id} is not being parsed (status '{receipt.status.value}')"
        )
    logger.info("Receipt %s: parsing -> error (%s)", receipt.id, message)
    return receipt.model_copy(update={"status": ReceiptStatus.ERROR, "error_message": message})


def add_participant(receipt: Receipt, participant: Participant) -> Receipt:
    """Add a participant to the roster; re-adding an existing id is a no-op."""
    if receipt.participant(participant.id) is not None:
        return receipt
    return receipt.model_copy(update={"participants": [*receipt.participants, participant]})


def set_tip(receipt: Receipt, actor_id: str, tip_cents: int) -> Receipt:
    """Host edit of the tip amount. Editing clears any earlier confirmation."""
    ensure_host(receipt, actor_id)
    if tip_cents < 0:
        raise ValueError("tip_cents must be non-negative")
    return receipt.model_copy(update={"tip_cents": tip_cents, "tip_confirmed": False})


def confirm_tip(receipt: Receipt, actor_id: str, tip_cents: int | None = None) -> Receipt:
    """Host confirmation that the tip is final, optionally setting it first."""
    if tip_cents is not None:
        receipt = set_tip(receipt, actor_id, tip_cents)
    else:
        ensure_host(receipt, actor_id)
    return receipt.model_copy(update={"tip_confirmed": True})
