"""Short, speakable join codes for sharing a receipt.

A code is a four-letter food word mapped to a receipt id until it expires.
Expiry is checked lazily at read time (``expires_at > now``); purging old
records is optional cleanup.

The look-up-then-insert in ``get_or_create_code`` is not transactional. Two
concurrent callers may both insert a code for the same receipt; both codes
resolve to that receipt, which is accepted.
"""

import random
import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt

from billsplit.config import (
    DEFAULT_SHARE_CODE_MAX_REDRAWS,
    DEFAULT_SHARE_CODE_TTL_MINUTES,
    Settings,
)
from billsplit.models import ShareCode
from billsplit.runtime import get_logger
from billsplit.utils.join_url import JoinCodeError, parse_join_code

logger = get_logger(__name__)

FOOD_WORDS: tuple[str, ...] = (
    "TACO", "CAKE", "TOFU", "PEAR", "BEAN", "RICE", "MEAT", "FISH", "SOUP", "KALE",
    "CORN", "OKRA", "MINT", "LIME", "SALT", "DILL", "SAGE", "BEER", "WINE", "MILK",
    "EGGS", "PORK", "BEEF", "LAMB", "VEAL", "DUCK", "GOAT", "CRAB", "CLAM", "TUNA",
    "SOLE", "BASS", "KIWI", "PLUM", "DATE", "GOJI", "CHIA", "HEMP", "FLAX", "OATS",
    "BRAN", "SODA", "TEAS", "PEAS", "LEEK", "BEET", "PATE", "BAKE", "STEW", "BOIL",
)  # fmt: skip

DEFAULT_TTL = timedelta(minutes=DEFAULT_SHARE_CODE_TTL_MINUTES)


class ShareCodeStore(Protocol):
    """Persistence the generator needs; any backing store will do."""

    def find_active_for_receipt(self, receipt_id: str, now: datetime) -> ShareCode | None: ...

    def find_active_by_code(self, code: str, now: datetime) -> ShareCode | None: ...

    def insert(self, share_code: ShareCode) -> None: ...

    def purge_expired(self, now: datetime) -> int: ...


class InMemoryShareCodeStore:
    """Thread-safe in-process store, used by tests and single-process apps."""

    def __init__(self) -> None:
        self._codes: list[ShareCode] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._codes)

    def find_active_for_receipt(self, receipt_id: str, now: datetime) -> ShareCode | None:
        with self._lock:
            for share_code in self._codes:
                if share_code.receipt_id == receipt_id and share_code.is_active(now):
                    return share_code
        return None

    def find_active_by_code(self, code: str, now: datetime) -> ShareCode | None:
        with self._lock:
            for share_code in self._codes:
                if share_code.code == code and share_code.is_active(now):
                    return share_code
        return None

    def insert(self, share_code: ShareCode) -> None:
        with self._lock:
            self._codes.append(share_code)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            before = len(self._codes)
            self._codes = [code for code in self._codes if code.is_active(now)]
            return before - len(self._codes)


def _as_utc(now: datetime | None) -> datetime:
    """Current time by default; naive datetimes are taken to be UTC."""
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def _accept_last_draw(retry_state: RetryCallState) -> str:
    """Out of redraws: keep the final (colliding) word instead of failing."""
    code = retry_state.outcome.result()  # type: ignore[union-attr]
    logger.warning(
        "Share code %s still collides after %d draws; accepting it",
        code,
        retry_state.attempt_number,
    )
    return code


class ShareCodeGenerator:
    """
    Issues and resolves share codes backed by a ``ShareCodeStore``.

    Args:
        store: Where share codes are persisted
        ttl: Lifetime of a freshly issued code (default: 30 minutes)
        max_redraws: Extra draws allowed when a word is taken (default: 5)
        rng: Random source for draws (default: a new ``random.Random``)
        vocabulary: Words to draw from (default: FOOD_WORDS)
    """

    def __init__(
        self,
        store: ShareCodeStore,
        ttl: timedelta = DEFAULT_TTL,
        max_redraws: int = DEFAULT_SHARE_CODE_MAX_REDRAWS,
        rng: random.Random | None = None,
        vocabulary: tuple[str, ...] = FOOD_WORDS,
    ) -> None:
        if not vocabulary:
            raise ValueError("vocabulary must not be empty")
        if max_redraws < 0:
            raise ValueError("max_redraws must be non-negative")
        self.store = store
        self.ttl = ttl
        self.max_redraws = max_redraws
        self.rng = rng or random.Random()
        self.vocabulary = tuple(word.upper() for word in vocabulary)

    @classmethod
    def from_settings(
        cls, store: ShareCodeStore, settings: Settings, rng: random.Random | None = None
    ) -> "ShareCodeGenerator":
        return cls(
            store,
            ttl=settings.share_code_ttl,
            max_redraws=settings.share_code_max_redraws,
            rng=rng,
        )

    def _draw(self) -> str:
        return self.rng.choice(self.vocabulary)

    def _draw_code(self, now: datetime) -> str:
        """Draw a word not active for any receipt, within the redraw budget."""
        retryer = Retrying(
            stop=stop_after_attempt(self.max_redraws + 1),
            retry=retry_if_result(lambda code: self.store.find_active_by_code(code, now) is not None),
            retry_error_callback=_accept_last_draw,
        )
        return retryer(self._draw)

    def get_or_create_code(self, receipt_id: str, now: datetime | None = None) -> str:
        """Return the receipt's active code, issuing a new one if there is none.

        Repeated calls inside the active window return the same code.

        Args:
            receipt_id: Receipt the code should resolve to
            now: Current time (default: ``datetime.now(UTC)``); naive values are
                taken to be UTC

        Returns:
            The upper-case share code
        """
        now = _as_utc(now)

        existing = self.store.find_active_for_receipt(receipt_id, now)
        if existing is not None:
            logger.debug("Reusing share code %s for receipt %s", existing.code, receipt_id)
            return existing.code

        code = self._draw_code(now)
        share_code = ShareCode(code=code, receipt_id=receipt_id, expires_at=now + self.ttl)
        self.store.insert(share_code)
        logger.info(
            "Issued share code %s for receipt %s (expires %s)",
            code,
            receipt_id,
            share_code.expires_at.isoformat(),
        )
        return code

    def resolve_code(self, code: str, now: datetime | None = None) -> str | None:
        """Look up the receipt id for ``code`` (or a join URL).

        Expired, unknown and malformed codes all return None.
        """
        now = _as_utc(now)
        try:
            normalized = parse_join_code(code)
        except JoinCodeError as e:
            logger.debug("Rejected share code input %r: %s", code, e)
            return None

        share_code = self.store.find_active_by_code(normalized, now)
        return share_code.receipt_id if share_code else None

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop expired codes from the store. Never needed for correctness."""
        removed = self.store.purge_expired(_as_utc(now))
        if removed:
            logger.info("Purged %d expired share codes", removed)
        return removed
