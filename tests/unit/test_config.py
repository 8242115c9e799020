"""Unit tests for environment-driven settings."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from billsplit.config import Settings

pytestmark = pytest.mark.unit


def test_defaults():
    settings = Settings.from_env({})
    assert settings.share_code_ttl == timedelta(minutes=30)
    assert settings.share_code_max_redraws == 5
    assert settings.totals_tolerance_cents == 5
    assert settings.log_level == "INFO"


def test_reads_environment():
    settings = Settings.from_env(
        {
            "BILLSPLIT_SHARE_CODE_TTL_MINUTES": "10",
            "BILLSPLIT_SHARE_CODE_MAX_REDRAWS": "0",
            "BILLSPLIT_TOTALS_TOLERANCE_CENTS": "25",
            "BILLSPLIT_JOIN_BASE_URL": "https://split.example.com",
            "BILLSPLIT_LOG_LEVEL": "debug",
            "UNRELATED": "x",
        }
    )
    assert settings.share_code_ttl == timedelta(minutes=10)
    assert settings.share_code_max_redraws == 0
    assert settings.totals_tolerance_cents == 25
    assert settings.join_base_url == "https://split.example.com"
    assert settings.log_level == "debug"


def test_blank_values_keep_defaults():
    settings = Settings.from_env({"BILLSPLIT_SHARE_CODE_TTL_MINUTES": "  "})
    assert settings.share_code_ttl_minutes == 30


def test_reads_os_environ(monkeypatch):
    monkeypatch.setenv("BILLSPLIT_SHARE_CODE_MAX_REDRAWS", "2")
    assert Settings.from_env().share_code_max_redraws == 2


@pytest.mark.parametrize(
    "environ",
    [
        {"BILLSPLIT_SHARE_CODE_TTL_MINUTES": "soon"},
        {"BILLSPLIT_SHARE_CODE_TTL_MINUTES": "0"},
        {"BILLSPLIT_SHARE_CODE_MAX_REDRAWS": "-1"},
        {"BILLSPLIT_TOTALS_TOLERANCE_CENTS": "-5"},
    ],
)
def test_invalid_values(environ):
    with pytest.raises(ValidationError):
        Settings.from_env(environ)
