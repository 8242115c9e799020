import logging

import pytest

from billsplit.runtime import configure_logging, get_logger, parse_log_level, set_log_level
from billsplit.runtime.logging import LOG_FORMAT, LOG_FORMAT_DEBUG, LOGGER_NAMESPACE

pytestmark = pytest.mark.unit


def own_handlers(logger: logging.Logger) -> list[logging.Handler]:
    # pytest attaches its own capture handlers (StreamHandler subclasses)
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("DEBUG", logging.DEBUG),
        (" warn ", logging.WARNING),
        ("error", logging.ERROR),
        (None, logging.INFO),
        ("", logging.INFO),
        ("chatty", logging.INFO),
    ],
)
def test_parse_log_level(value, expected):
    assert parse_log_level(value) == expected


def test_get_logger_namespacing():
    assert get_logger("billsplit.share_codes").name == "billsplit.share_codes"
    assert get_logger("scripts.import").name == "billsplit.scripts.import"


def test_namespace_has_single_handler():
    root = logging.getLogger(LOGGER_NAMESPACE)
    get_logger("a")
    before = list(root.handlers)

    configure_logging()
    get_logger("b")

    assert root.handlers == before
    assert len(own_handlers(root)) == 1
    assert root.propagate is False


def test_set_log_level_switches_format():
    root = logging.getLogger(LOGGER_NAMESPACE)
    (handler,) = own_handlers(root)
    original = root.level
    try:
        set_log_level(logging.DEBUG)
        assert root.level == logging.DEBUG
        assert handler.formatter._fmt == LOG_FORMAT_DEBUG
    finally:
        set_log_level(original)
    assert handler.formatter._fmt == (
        LOG_FORMAT_DEBUG if original == logging.DEBUG else LOG_FORMAT
    )
