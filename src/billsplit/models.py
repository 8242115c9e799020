"""Data models for receipts, line items, participants and share codes.

All monetary fields are integer minor-currency units (cents). Optional
amounts mean "unknown" and are read as 0 by the allocation engine.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator


class ReceiptStatus(StrEnum):
    """Lifecycle status of an uploaded receipt."""

    DRAFT = "draft"
    PARSING = "parsing"
    PARSED = "parsed"
    ERROR = "error"


class Modifier(BaseModel):
    """Extra or customization attached to a line item."""

    model_config = ConfigDict(frozen=True)

    name: str
    price_cents: int | None = None


class Participant(BaseModel):
    """A user or guest taking part in a split."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    is_host: bool = False
    is_guest: bool = False


class ReceiptItem(BaseModel):
    """Single line item on a receipt.

    ``price_cents`` is already the line total; ``quantity`` is display
    metadata and never multiplied in. The cost of a claimed item is split
    equally among ``claimed_by``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    receipt_id: str
    name: str
    quantity: int = 1
    price_cents: int | None = None
    modifiers: list[Modifier] = Field(default_factory=list)
    claimed_by: list[str] = Field(default_factory=list)

    @field_validator("claimed_by")
    @classmethod
    def _dedupe_claimants(cls, value: list[str]) -> list[str]:
        # Claimants behave as a set, first claim wins the position
        return list(dict.fromkeys(value))


class Receipt(BaseModel):
    """Receipt-level data: merchant info, totals and participants."""

    model_config = ConfigDict(frozen=True)

    id: str
    host_user_id: str
    status: ReceiptStatus = ReceiptStatus.DRAFT
    merchant_name: str | None = None
    merchant_type: str | None = None
    date: str | None = None
    total_cents: int | None = None
    tax_cents: int | None = None
    tip_cents: int | None = None
    currency: str = "USD"
    tip_confirmed: bool = False
    participants: list[Participant] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def participant(self, participant_id: str) -> Participant | None:
        """Return the roster entry for ``participant_id`` if present."""
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None


class ShareCode(BaseModel):
    """Short join code mapped to a receipt until ``expires_at``."""

    model_config = ConfigDict(frozen=True)

    code: str
    receipt_id: str
    expires_at: AwareDatetime

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now


class ParticipantShare(BaseModel):
    """What one participant owes for a receipt."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    subtotal_cents: int = 0
    tax_cents: int = 0
    tip_cents: int = 0
    total_cents: int = 0


class ItemShare(BaseModel):
    """One line of a participant's personal statement."""

    model_config = ConfigDict(frozen=True)

    item: ReceiptItem
    share_cents: int
    claimant_count: int
    item_total_cents: int


class ReceiptSummary(BaseModel):
    """Aggregate view of a receipt and every participant's obligations."""

    receipt_id: str
    currency: str
    subtotal_cents: int
    billed_subtotal_cents: int | None = None
    claimed_cents: int
    unclaimed_cents: int
    progress_percentage: float = Field(ge=0.0, le=100.0)
    prompt_tip_confirmation: bool
    totals_consistent: bool
    shares: list[ParticipantShare] = Field(default_factory=list)


class ReceiptSnapshot(BaseModel):
    """Receipt plus its items, the unit the CLI reads and writes."""

    receipt: Receipt
    items: list[ReceiptItem] = Field(default_factory=list)
