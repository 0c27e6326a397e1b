# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Single-line JSON rendering of ``flightsql_client`` log records.

:class:`FlightJsonFormatter` serializes every record as one JSON object.
Fields attached through ``extra`` become top-level keys.  The package
attaches some of its own (``target``, ``security``, ``prepared_handle``),
and values of Flight-specific types are rendered readably:

- ``bytes`` (tickets, prepared-statement handles) as lowercase hex
- ``pyarrow.Schema`` as ``(name: type, ...)``
- enums (``TransportSecurity``, ``CommandKind``) by value

When the record carries a :class:`~flightsql_client.flight.FlightError`,
its class and status code are emitted under ``error`` next to the
traceback.

Not imported by ``flightsql_client`` itself; attach it explicitly::

    handler = logging.StreamHandler()
    handler.setFormatter(FlightJsonFormatter())
    logging.getLogger("flightsql_client").addHandler(handler)
"""

from __future__ import annotations

import json
import logging
from enum import Enum

import pyarrow as pa

from flightsql_client.flight._common import FlightConnectionError, FlightError
from flightsql_client.flight._debug import fmt_schema

__all__ = ["FlightJsonFormatter"]

# Attributes present on every LogRecord; anything else came from ``extra``.
_STANDARD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}

_OUTPUT_KEYS: frozenset[str] = frozenset(
    {"timestamp", "level", "logger", "message", "error", "exception", "stack_info"}
)


def _json_default(value: object) -> object:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).hex()
    if isinstance(value, pa.Schema):
        return fmt_schema(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _error_fields(error: FlightError) -> dict[str, object]:
    fields: dict[str, object] = {"type": type(error).__name__, "code": error.code}
    if isinstance(error, FlightConnectionError) and error.original_error is not None:
        fields["original_error"] = repr(error.original_error)
    return fields


class FlightJsonFormatter(logging.Formatter):
    """Format records as JSON with ``timestamp``, ``level``, ``logger`` and ``message``.

    Extra fields never overwrite the reserved keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single-line JSON string."""
        record.message = record.getMessage()
        payload: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in _OUTPUT_KEYS:
                payload[key] = value
        if record.exc_info and record.exc_info[1]:
            if isinstance(record.exc_info[1], FlightError):
                payload["error"] = _error_fields(record.exc_info[1])
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=_json_default)
