# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Arrow Flight transport session over ``grpc.aio``.

Owns one gRPC channel, negotiates credentials, and exposes the primitive
Flight calls as single awaitables.

Calls
-----
- **Unary**: ``GetFlightInfo``, ``GetSchema``
- **Server streaming**: ``DoGet`` (60 s deadline), ``DoAction``,
  ``ListFlights``, ``ListActions``; responses are buffered in arrival order
- **Client streaming**: ``DoPut``; frames are sent in order, then the
  request side is half-closed
- **Handshake**: one empty ``HandshakeRequest`` when a credential is
  configured; an ``authorization`` header in the response replaces the
  session token

Every call carries the current ``authorization`` metadata.

DoGet Reassembly
----------------
``FlightData`` messages carry IPC message headers and bodies without stream
framing.  They are rebuilt into an IPC stream as::

    [0xFFFFFFFF][len(header) u32 LE][header][0-7 zero bytes][body]  (per frame)

and handed to ``pyarrow.ipc.open_stream``.  Headerless frames are skipped.

Errors
------
- status 16 (UNAUTHENTICATED) and handshake failures → ``AuthenticationError``
- status 14 (UNAVAILABLE) → ``ServiceUnavailableError``
- any other status → ``FlightError`` with ``code`` set to the numeric status
- channel construction → ``FlightConnectionError``
- invalid configuration → ``ConfigurationError``
"""

from flightsql_client.flight._common import (
    CHANNEL_OPTIONS,
    DO_GET_TIMEOUT_SECONDS,
    MAX_MESSAGE_BYTES,
    AuthenticationError,
    ConfigurationError,
    FlightConnectionError,
    FlightError,
    ProtocolError,
    ServiceUnavailableError,
    SQLCommandError,
    map_rpc_error,
    status_code_number,
)
from flightsql_client.flight._config import AuthState, CredentialMode, SessionConfig, TransportSecurity
from flightsql_client.flight._proto import descriptor_for_command, descriptor_for_path
from flightsql_client.flight._reassembly import (
    CONTINUATION_MARKER,
    Frame,
    ReassembledStream,
    frames_from_table,
    message_block,
    padding_for,
    reassemble,
)
from flightsql_client.flight._session import FlightSession, decode_schema

__all__ = [
    "CHANNEL_OPTIONS",
    "CONTINUATION_MARKER",
    "DO_GET_TIMEOUT_SECONDS",
    "MAX_MESSAGE_BYTES",
    "AuthState",
    "AuthenticationError",
    "ConfigurationError",
    "CredentialMode",
    "FlightConnectionError",
    "FlightError",
    "FlightSession",
    "Frame",
    "ProtocolError",
    "ReassembledStream",
    "SQLCommandError",
    "ServiceUnavailableError",
    "SessionConfig",
    "TransportSecurity",
    "decode_schema",
    "descriptor_for_command",
    "descriptor_for_path",
    "frames_from_table",
    "map_rpc_error",
    "message_block",
    "padding_for",
    "reassemble",
    "status_code_number",
]
