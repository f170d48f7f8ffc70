"""Tests for structured log output."""

from __future__ import annotations

import io
import logging

import orjson

from stencil_broker.core.logging import ContextFormatter, JsonFormatter, configure_logging, log_context


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("stencil_broker.build", logging.INFO, __file__, 1, "Build %s done", ("b1",), None)
    record.__dict__.update(extra)
    return record


def test_log_context_skips_unset_values() -> None:
    assert log_context(generation=3, tag=None) == {"ctx_generation": 3}


def test_json_formatter_emits_context_fields() -> None:
    payload = orjson.loads(JsonFormatter().format(_record(**log_context(generation=3, build_id="build_1"))))
    assert payload["message"] == "Build b1 done"
    assert payload["generation"] == 3
    assert payload["build_id"] == "build_1"


def test_context_formatter_appends_pairs() -> None:
    line = ContextFormatter().format(_record(**log_context(generation=3, tag="my-el")))
    assert line.endswith("Build b1 done [generation=3 tag=my-el]")
    assert ContextFormatter().format(_record()).endswith("Build b1 done")


def test_configure_logging_writes_json_and_quiets_watchdog() -> None:
    stream = io.StringIO()
    configure_logging("INFO", use_json=True, stream=stream)
    try:
        logging.getLogger("stencil_broker.test").info("hello", extra=log_context(tag="my-el"))
        assert orjson.loads(stream.getvalue().splitlines()[-1])["tag"] == "my-el"
        assert logging.getLogger("watchdog").level == logging.WARNING
    finally:
        configure_logging("INFO", use_json=False)
