"""setup_logging wiring: root level, handler, and noisy library loggers."""

from __future__ import annotations

import logging
import re

import pytest

from portal.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging

QUIETED = ("uvicorn", "uvicorn.access", "httpx", "sqlalchemy.engine")


def _record(level: int, msg: str = "quota checked", lineno: int = 1) -> logging.LogRecord:
    return logging.LogRecord(
        name="portal.services.quota_service",
        level=level,
        pathname="quota_service.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.mark.parametrize(
    ("level_name", "expected"),
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("verbose", logging.INFO)],
)
def test_setup_logging_root_level(level_name: str, expected: int) -> None:
    setup_logging(level_name)
    assert logging.getLogger().level == expected


@pytest.mark.parametrize("name", QUIETED)
def test_library_loggers_held_at_warning_during_debug(name: str) -> None:
    setup_logging("debug")
    assert logging.getLogger(name).level == logging.WARNING


def test_sql_echo_follows_stricter_root_level() -> None:
    setup_logging("error")
    assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR


def test_repeated_setup_keeps_a_single_handler() -> None:
    setup_logging("info")
    setup_logging("info")
    assert len(logging.getLogger().handlers) == 1


def test_json_flag_selects_json_formatter() -> None:
    setup_logging("info", json_format=True)
    [handler] = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)

    setup_logging("info")
    [handler] = logging.getLogger().handlers
    assert isinstance(handler.formatter, _ContainerFormatter)


def test_container_timestamp_carries_millis_before_offset() -> None:
    output = _ContainerFormatter().format(_record(logging.INFO))
    stamp = output.split(" ", 1)[0]
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}[+-]\d{4}", stamp)


def test_container_location_only_from_warning_up() -> None:
    fmt = _ContainerFormatter()
    assert "[quota_service.py:" not in fmt.format(_record(logging.INFO))

    output = fmt.format(_record(logging.WARNING, "Project quota reached", lineno=80))
    assert "Project quota reached" in output
    assert output.endswith("[quota_service.py:80]")

    # Switching back must not leave the suffix behind.
    assert "[quota_service.py:" not in fmt.format(_record(logging.INFO))
