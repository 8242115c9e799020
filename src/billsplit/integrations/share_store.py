"""JSON file persistence for share codes.

Lets separate CLI invocations (or processes on one host) share the same set of
active codes. Every operation holds an ``fcntl`` lock on the file for its
whole read or read-modify-write.
"""

import fcntl
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import IO

from pydantic import TypeAdapter

from billsplit.models import ShareCode

_share_codes_adapter = TypeAdapter(list[ShareCode])


class JsonFileShareCodeStore:
    """``ShareCodeStore`` backed by a JSON array of share-code records."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @contextmanager
    def _locked(self, exclusive: bool) -> Iterator[IO[str]]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # a+ creates the file if missing without truncating it
        with open(self.path, mode="a+", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
            try:
                yield f
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    @staticmethod
    def _read(f: IO[str]) -> list[ShareCode]:
        f.seek(0)
        content = f.read()
        if not content.strip():
            return []
        return _share_codes_adapter.validate_json(content)

    @staticmethod
    def _write(f: IO[str], codes: list[ShareCode]) -> None:
        f.seek(0)
        f.truncate()
        f.write(_share_codes_adapter.dump_json(codes, indent=2).decode("utf-8"))
        f.flush()

    def all_codes(self) -> list[ShareCode]:
        with self._locked(exclusive=False) as f:
            return self._read(f)

    def find_active_for_receipt(self, receipt_id: str, now: datetime) -> ShareCode | None:
        for share_code in self.all_codes():
            if share_code.receipt_id == receipt_id and share_code.is_active(now):
                return share_code
        return None

    def find_active_by_code(self, code: str, now: datetime) -> ShareCode | None:
        for share_code in self.all_codes():
            if share_code.code == code and share_code.is_active(now):
                return share_code
        return None

    def insert(self, share_code: ShareCode) -> None:
        with self._locked(exclusive=True) as f:
            codes = self._read(f)
            codes.append(share_code)
            self._write(f, codes)

    def purge_expired(self, now: datetime) -> int:
        with self._locked(exclusive=True) as f:
            codes = self._read(f)
            active = [code for code in codes if code.is_active(now)]
            if len(active) != len(codes):
                self._write(f, active)
            return len(codes) - len(active)
