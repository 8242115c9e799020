"""Local CSV export of per-participant receipt breakdowns."""

import csv
import fcntl
import os
from pathlib import Path
from typing import Any

from billsplit.models import ParticipantShare, Receipt

CSV_HEADER = [
    "receipt_id",
    "merchant",
    "participant",
    "subtotal_cents",
    "tax_cents",
    "tip_cents",
    "total_cents",
    "currency",
]


def breakdown_to_row(receipt: Receipt, share: ParticipantShare) -> list[Any]:
    """Convert one participant's share of a receipt into a CSV row.

    The participant column uses the roster display name when known and falls
    back to the participant id. Amounts stay in integer cents.

    Args:
        receipt: Receipt the share belongs to
        share: Result of ``apportion`` for one participant

    Returns:
        A list of 8 values in CSV_HEADER order
    """
    participant = receipt.participant(share.participant_id)
    name = participant.display_name if participant else share.participant_id
    return [
        receipt.id,
        receipt.merchant_name or "",
        name,
        share.subtotal_cents,
        share.tax_cents,
        share.tip_cents,
        share.total_cents,
        receipt.currency,
    ]


class LocalExporter:
    """Exporter for appending participant breakdowns to local CSV files.

    Several processes may export to the same file, so writes happen under an
    exclusive ``fcntl`` lock and the header is only written to an empty file.
    """

    def export(
        self, breakdowns: list[tuple[Receipt, ParticipantShare]], path: Path
    ) -> None:
        """Export breakdown rows to a local CSV file.

        If the file doesn't exist, it will be created with headers.
        If the file exists, data will be appended to it.

        Args:
            breakdowns: (receipt, share) pairs to write, one row each
            path: Path to the CSV file to write/append to

        Raises:
            PermissionError: If the file cannot be written due to permissions
            OSError: If there are filesystem-related errors
        """
        if not breakdowns:
            return

        path.parent.mkdir(parents=True, exist_ok=True)

        # BOM is written by hand so appends never put one mid-file
        with open(path, mode="a", encoding="utf-8", newline="") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                # Size must be read after the lock is held
                is_new_file = os.fstat(f.fileno()).st_size == 0

                if is_new_file:
                    f.write("\ufeff")  # UTF-8 BOM

                writer = csv.writer(f)

                if is_new_file:
                    writer.writerow(CSV_HEADER)

                for receipt, share in breakdowns:
                    writer.writerow(breakdown_to_row(receipt, share))
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
