# tests/test_logging_setup.py

from __future__ import annotations

import logging

from crewtasks.logging_setup import _ConsoleNoiseFilter


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_levels() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("crewtasks.sync.engine", logging.DEBUG))
    assert not f.filter(_record("crewtasks.gateways.sqlite_gateway", logging.INFO))
    assert f.filter(_record("crewtasks.gateways.sqlite_gateway", logging.WARNING))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("httpx", logging.WARNING))
    assert f.filter(_record("httpx", logging.ERROR))
