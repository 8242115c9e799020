"""Unit tests for local CSV export functionality."""

import csv
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from billsplit.integrations.local_export import CSV_HEADER, LocalExporter, breakdown_to_row
from billsplit.models import Participant, ParticipantShare, Receipt

pytestmark = pytest.mark.unit


@pytest.fixture
def sample_receipt() -> Receipt:
    """Create a sample receipt with a host and one guest."""
    return Receipt(
        id="r1",
        host_user_id="h",
        status="parsed",
        merchant_name="Test Diner",
        total_cents=1300,
        tax_cents=100,
        tip_cents=200,
        participants=[
            Participant(id="h", display_name="Hana", is_host=True),
            Participant(id="g1", display_name="Guest 1", is_guest=True),
        ],
    )


@pytest.fixture
def sample_breakdowns(sample_receipt: Receipt) -> list[tuple[Receipt, ParticipantShare]]:
    return [
        (
            sample_receipt,
            ParticipantShare(
                participant_id="h", subtotal_cents=600, tax_cents=60, tip_cents=120, total_cents=780
            ),
        ),
        (
            sample_receipt,
            ParticipantShare(
                participant_id="g1", subtotal_cents=400, tax_cents=40, tip_cents=80, total_cents=520
            ),
        ),
    ]


def read_rows(path: Path) -> list[list[str]]:
    with open(path, encoding="utf-8-sig") as f:
        return list(csv.reader(f))


def test_breakdown_to_row_uses_display_name(sample_breakdowns) -> None:
    receipt, share = sample_breakdowns[1]
    assert breakdown_to_row(receipt, share) == [
        "r1", "Test Diner", "Guest 1", 400, 40, 80, 520, "USD"
    ]  # fmt: skip


def test_breakdown_to_row_falls_back_to_id(sample_receipt: Receipt) -> None:
    share = ParticipantShare(participant_id="stranger", subtotal_cents=50, total_cents=50)
    row = breakdown_to_row(sample_receipt, share)
    assert row[2] == "stranger"


def test_export_creates_file(tmp_path: Path, sample_breakdowns) -> None:
    """Verify that calling export creates the file if it doesn't exist."""
    export_path = tmp_path / "splits.csv"

    assert not export_path.exists()
    LocalExporter().export(sample_breakdowns, export_path)

    assert export_path.is_file()
    # BOM keeps spreadsheet apps on UTF-8
    assert export_path.read_bytes().startswith(b"\xef\xbb\xbf")


def test_export_content(tmp_path: Path, sample_breakdowns) -> None:
    export_path = tmp_path / "splits.csv"
    LocalExporter().export(sample_breakdowns, export_path)

    rows = read_rows(export_path)
    assert rows[0] == CSV_HEADER
    assert rows[1] == ["r1", "Test Diner", "Hana", "600", "60", "120", "780", "USD"]
    assert rows[2] == ["r1", "Test Diner", "Guest 1", "400", "40", "80", "520", "USD"]


def test_export_appends_to_existing(tmp_path: Path, sample_breakdowns) -> None:
    """Verify that subsequent calls append data instead of overwriting."""
    export_path = tmp_path / "splits.csv"
    exporter = LocalExporter()

    exporter.export(sample_breakdowns[:1], export_path)
    exporter.export(sample_breakdowns[1:], export_path)

    rows = read_rows(export_path)
    assert len(rows) == 3
    assert rows[0] == CSV_HEADER
    assert rows[1][2] == "Hana"
    assert rows[2][2] == "Guest 1"


def test_export_unicode_names(tmp_path: Path, sample_receipt: Receipt) -> None:
    receipt = sample_receipt.model_copy(update={"merchant_name": "全聯福利中心"})
    export_path = tmp_path / "splits.csv"

    LocalExporter().export([(receipt, ParticipantShare(participant_id="h"))], export_path)

    assert read_rows(export_path)[1][1] == "全聯福利中心"


def test_export_empty_data(tmp_path: Path) -> None:
    export_path = tmp_path / "splits.csv"
    LocalExporter().export([], export_path)
    assert not export_path.exists()


def test_export_error_handling(tmp_path: Path, sample_breakdowns) -> None:
    """Verify parent directories are created and invalid paths raise."""
    export_path = tmp_path / "subdir" / "splits.csv"
    exporter = LocalExporter()

    exporter.export(sample_breakdowns, export_path)
    assert export_path.exists()

    # On Unix systems, /dev/null cannot be used as a directory
    with pytest.raises(OSError):
        exporter.export(sample_breakdowns, Path("/dev/null/splits.csv"))


def test_export_concurrent_writes(tmp_path: Path, sample_receipt: Receipt) -> None:
    """Verify that concurrent writes do not corrupt the file."""
    export_path = tmp_path / "splits.csv"
    exporter = LocalExporter()

    batches = [
        [(sample_receipt, ParticipantShare(participant_id=f"p{i}", subtotal_cents=i))]
        for i in range(10)
    ]

    with ThreadPoolExecutor(max_workers=5) as executor:
        list(executor.map(lambda batch: exporter.export(batch, export_path), batches))

    rows = read_rows(export_path)
    assert len(rows) == 11
    assert rows[0] == CSV_HEADER
    assert {row[2] for row in rows[1:]} == {f"p{i}" for i in range(10)}
