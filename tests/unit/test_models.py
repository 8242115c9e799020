"""Unit tests for data models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from billsplit.models import (
    Modifier,
    Participant,
    Receipt,
    ReceiptItem,
    ReceiptSnapshot,
    ReceiptStatus,
    ShareCode,
)

pytestmark = pytest.mark.unit


class TestReceiptItem:
    """Test cases for ReceiptItem model."""

    def test_create_item_minimal(self):
        item = ReceiptItem(id="i1", receipt_id="r1", name="Coffee")
        assert item.quantity == 1
        assert item.price_cents is None
        assert item.modifiers == []
        assert item.claimed_by == []

    def test_claimants_are_deduplicated_in_order(self):
        item = ReceiptItem(
            id="i1", receipt_id="r1", name="Fries", claimed_by=["bob", "alice", "bob"]
        )
        assert item.claimed_by == ["bob", "alice"]

    def test_item_is_frozen(self):
        item = ReceiptItem(id="i1", receipt_id="r1", name="Coffee", price_cents=350)
        with pytest.raises(ValidationError):
            item.price_cents = 0  # type: ignore[misc]

    def test_modifiers(self):
        item = ReceiptItem(
            id="i1",
            receipt_id="r1",
            name="Latte",
            price_cents=450,
            modifiers=[Modifier(name="Oat milk", price_cents=75), Modifier(name="No foam")],
        )
        assert item.modifiers[0].price_cents == 75
        assert item.modifiers[1].price_cents is None


class TestReceipt:
    """Test cases for Receipt model."""

    def test_defaults(self):
        receipt = Receipt(id="r1", host_user_id="h")
        assert receipt.status is ReceiptStatus.DRAFT
        assert receipt.currency == "USD"
        assert receipt.tip_confirmed is False
        assert receipt.total_cents is None
        assert receipt.participants == []
        assert isinstance(receipt.created_at, datetime)

    def test_status_from_string(self):
        receipt = Receipt(id="r1", host_user_id="h", status="parsed")
        assert receipt.status is ReceiptStatus.PARSED

    def test_invalid_status(self):
        with pytest.raises(ValidationError) as exc_info:
            Receipt(id="r1", host_user_id="h", status="paid")
        assert "status" in str(exc_info.value)

    def test_participant_lookup(self):
        receipt = Receipt(
            id="r1",
            host_user_id="h",
            participants=[
                Participant(id="h", display_name="Hana", is_host=True),
                Participant(id="g1", display_name="Guest 1", is_guest=True),
            ],
        )
        assert receipt.participant("g1").display_name == "Guest 1"
        assert receipt.participant("missing") is None


class TestShareCode:
    def test_is_active_before_expiry(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        code = ShareCode(code="TACO", receipt_id="r1", expires_at=now + timedelta(minutes=30))
        assert code.is_active(now)
        assert code.is_active(now + timedelta(minutes=29, seconds=59))

    def test_is_inactive_at_and_after_expiry(self):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        code = ShareCode(code="TACO", receipt_id="r1", expires_at=now)
        assert not code.is_active(now)
        assert not code.is_active(now + timedelta(seconds=1))

    def test_expiry_must_be_timezone_aware(self):
        with pytest.raises(ValidationError) as exc_info:
            ShareCode(code="TACO", receipt_id="r1", expires_at=datetime(2026, 1, 1, 12, 0))
        assert "expires_at" in str(exc_info.value)


class TestReceiptSnapshot:
    def test_json_round_trip(self):
        snapshot = ReceiptSnapshot(
            receipt=Receipt(id="r1", host_user_id="h", status="parsed", tax_cents=80),
            items=[ReceiptItem(id="i1", receipt_id="r1", name="Tea", claimed_by=["h"])],
        )
        loaded = ReceiptSnapshot.model_validate_json(snapshot.model_dump_json())
        assert loaded == snapshot
