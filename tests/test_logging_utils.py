# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for the JSON log formatter."""

from __future__ import annotations

import datetime
import io
import json
import logging
import sys

import pyarrow as pa

from flightsql_client.flight import FlightConnectionError, FlightError, ServiceUnavailableError, TransportSecurity
from flightsql_client.logging_utils import FlightJsonFormatter
from flightsql_client.sql import ACTION_CREATE_PREPARED_STATEMENT
from tests.flight_fixture import FlightScript, run_client


def _record(msg: str = "test message", *args: object) -> logging.LogRecord:
    return logging.LogRecord(
        name="flightsql_client.sql",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestFlightJsonFormatter:
    """Tests for FlightJsonFormatter."""

    def test_standard_fields(self) -> None:
        """Output is one JSON object with the standard keys."""
        parsed = json.loads(FlightJsonFormatter().format(_record("rows=%d", 3)))
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "flightsql_client.sql"
        assert parsed["message"] == "rows=3"
        assert "timestamp" in parsed

    def test_single_line(self) -> None:
        """Multi-line messages still render on one line."""
        output = FlightJsonFormatter().format(_record("SELECT 1\nFROM t"))
        assert "\n" not in output

    def test_extra_fields(self) -> None:
        """Attributes attached through ``extra`` become top-level keys."""
        record = _record()
        record.target = "localhost:31337"
        record.method = "DoGet"
        parsed = json.loads(FlightJsonFormatter().format(record))
        assert parsed["target"] == "localhost:31337"
        assert parsed["method"] == "DoGet"

    def test_standard_attrs_not_emitted(self) -> None:
        """Default LogRecord attributes are left out."""
        parsed = json.loads(FlightJsonFormatter().format(_record()))
        assert "lineno" not in parsed
        assert "args" not in parsed

    def test_reserved_keys_not_overwritten(self) -> None:
        """An extra named like a standard key does not replace it."""
        record = _record()
        record.level = "FAKE"
        assert json.loads(FlightJsonFormatter().format(record))["level"] == "INFO"

    def test_bytes_as_hex(self) -> None:
        """Tickets and handles render as hex."""
        record = _record()
        record.ticket = b"\x01\x02\xff"
        assert json.loads(FlightJsonFormatter().format(record))["ticket"] == "0102ff"

    def test_schema_and_enum(self) -> None:
        """Schemas render as their field list and enums by value."""
        record = _record()
        record.dataset_schema = pa.schema([pa.field("id", pa.int64())])
        record.security = TransportSecurity.TLS_SKIP_VERIFY
        parsed = json.loads(FlightJsonFormatter().format(record))
        assert parsed["dataset_schema"] == "(id: int64)"
        assert parsed["security"] == "tls_skip_verify"

    def test_other_values_use_str(self) -> None:
        """Any other value JSON cannot encode is rendered with str()."""
        record = _record()
        record.when = datetime.date(2026, 1, 2)
        assert json.loads(FlightJsonFormatter().format(record))["when"] == "2026-01-02"

    def test_exception_info(self) -> None:
        """Exception tracebacks appear under ``exception``."""
        try:
            raise ValueError("bad frame")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, "", 0, "failed", (), sys.exc_info())
        parsed = json.loads(FlightJsonFormatter().format(record))
        assert "ValueError: bad frame" in parsed["exception"]
        assert "error" not in parsed

    def test_flight_error_fields(self) -> None:
        """A FlightError adds its class and status code under ``error``."""
        try:
            raise ServiceUnavailableError()
        except FlightError:
            record = logging.LogRecord("x", logging.ERROR, "", 0, "failed", (), sys.exc_info())
        parsed = json.loads(FlightJsonFormatter().format(record))
        assert parsed["error"] == {"type": "ServiceUnavailableError", "code": "UNAVAILABLE"}
        assert "Service unavailable" in parsed["exception"]

    def test_connection_error_cause(self) -> None:
        """A FlightConnectionError also names the failure beneath it."""
        try:
            raise FlightConnectionError("cannot connect", ConnectionRefusedError(111, "refused"))
        except FlightError:
            record = logging.LogRecord("x", logging.ERROR, "", 0, "failed", (), sys.exc_info())
        error = json.loads(FlightJsonFormatter().format(record))["error"]
        assert error["type"] == "FlightConnectionError"
        assert error["code"] is None
        assert error["original_error"].startswith("ConnectionRefusedError(")

    def test_with_handler(self) -> None:
        """Works as a handler formatter with ``extra``."""
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(FlightJsonFormatter())
        logger = logging.getLogger("flightsql_client.test_json")
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        try:
            logger.info("connected", extra={"security": "plaintext"})
        finally:
            logger.removeHandler(handler)
        parsed = json.loads(stream.getvalue())
        assert parsed["security"] == "plaintext"

    def test_prepared_statement_records(self) -> None:
        """The client's prepared-statement records carry the handle as hex."""
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(FlightJsonFormatter())
        logger = logging.getLogger("flightsql_client.sql")
        previous = logger.level
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        script = FlightScript(action_results={ACTION_CREATE_PREPARED_STATEMENT: [b"\xca\xfe"]})
        try:
            run_client(script, lambda c: c.prepare("SELECT 1"))
        finally:
            logger.removeHandler(handler)
            logger.setLevel(previous)
        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        prepared = [r for r in records if r["message"].startswith("Prepared statement:")]
        assert prepared[0]["prepared_handle"] == "cafe"
        assert prepared[0]["dataset_schema"] is None
