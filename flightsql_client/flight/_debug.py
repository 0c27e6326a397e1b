"""Debug logging infrastructure for Flight wire diagnostics.

Provides logger instances under the ``flightsql_client.wire.*`` hierarchy
and formatting helpers for frames and call metadata.  Enabling
``logging.getLogger("flightsql_client.wire").setLevel(logging.DEBUG)`` shows
every gRPC call, every received frame and the handshake exchange.

All formatting helpers return ``str`` and never log directly.
They are designed to be called inside ``isEnabledFor`` guards so
there is zero overhead when debug logging is disabled.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import pyarrow as pa

if TYPE_CHECKING:
    from flightsql_client.flight._reassembly import Frame

# ---------------------------------------------------------------------------
# Logger hierarchy: flightsql_client.wire.*
# ---------------------------------------------------------------------------

wire_call_logger = logging.getLogger("flightsql_client.wire.call")
"""Primitive call start / completion."""

wire_frame_logger = logging.getLogger("flightsql_client.wire.frames")
"""DoGet / DoPut frames and stream reassembly."""

wire_handshake_logger = logging.getLogger("flightsql_client.wire.handshake")
"""Handshake exchange and authorization-token replacement."""

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 80
"""Maximum length of a single metadata value in fmt_metadata."""

_REDACTED_KEYS = frozenset({"authorization"})


def fmt_schema(schema: pa.Schema) -> str:
    """Format an Arrow schema compactly.

    Returns:
        ``"(a: int64, b: string)"`` or ``"(empty)"`` for zero-field schemas.

    """
    if len(schema) == 0:
        return "(empty)"
    fields = ", ".join(f"{f.name}: {f.type}" for f in schema)
    return f"({fields})"


def fmt_metadata(metadata: Iterable[tuple[str, str | bytes]] | None) -> str:
    """Format gRPC call metadata, redacting credentials.

    Returns:
        ``"{authorization=<redacted>, x-request-id='abc'}"`` or ``"None"``.

    """
    if metadata is None:
        return "None"
    parts: list[str] = []
    for key, value in metadata:
        if key.lower() in _REDACTED_KEYS:
            parts.append(f"{key}=<redacted>")
            continue
        val = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        if len(val) > _MAX_VALUE_LEN:
            val = val[:_MAX_VALUE_LEN] + "..."
        parts.append(f"{key}={val!r}")
    return "{" + ", ".join(parts) + "}"


def fmt_frame(frame: Frame) -> str:
    """Format a frame summary.

    Returns:
        ``"Frame(header=120, body=64)"``; a missing header shows as ``None``.

    """
    header = None if frame.header is None else len(frame.header)
    return f"Frame(header={header}, body={len(frame.body)})"
