"""Environment-driven settings for billsplit."""

import os
from collections.abc import Mapping
from datetime import timedelta

from pydantic import BaseModel, Field

DEFAULT_SHARE_CODE_TTL_MINUTES = 30
DEFAULT_SHARE_CODE_MAX_REDRAWS = 5
DEFAULT_TOTALS_TOLERANCE_CENTS = 5
DEFAULT_JOIN_BASE_URL = "http://localhost:3000"


class Settings(BaseModel):
    """Tunable constants, usually read from the environment or a .env file."""

    share_code_ttl_minutes: int = Field(DEFAULT_SHARE_CODE_TTL_MINUTES, gt=0)
    share_code_max_redraws: int = Field(DEFAULT_SHARE_CODE_MAX_REDRAWS, ge=0)
    totals_tolerance_cents: int = Field(DEFAULT_TOTALS_TOLERANCE_CENTS, ge=0)
    join_base_url: str = DEFAULT_JOIN_BASE_URL
    log_level: str = "INFO"

    @property
    def share_code_ttl(self) -> timedelta:
        return timedelta(minutes=self.share_code_ttl_minutes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``BILLSPLIT_*`` variables.

        Unset variables keep their defaults. Values are validated by pydantic,
        so a non-numeric TTL raises ``ValidationError``.

        Args:
            environ: Mapping to read from (default: ``os.environ``)
        """
        env = os.environ if environ is None else environ
        fields = {
            "share_code_ttl_minutes": "BILLSPLIT_SHARE_CODE_TTL_MINUTES",
            "share_code_max_redraws": "BILLSPLIT_SHARE_CODE_MAX_REDRAWS",
            "totals_tolerance_cents": "BILLSPLIT_TOTALS_TOLERANCE_CENTS",
            "join_base_url": "BILLSPLIT_JOIN_BASE_URL",
            "log_level": "BILLSPLIT_LOG_LEVEL",
        }
        values = {
            field: env[var] for field, var in fields.items() if env.get(var, "").strip()
        }
        return cls.model_validate(values)
