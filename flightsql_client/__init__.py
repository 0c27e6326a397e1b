# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Arrow Flight SQL client over ``grpc.aio``, decoding results with ``pyarrow``."""

import contextlib
import logging

from flightsql_client.flight import (
    AuthenticationError,
    ConfigurationError,
    FlightConnectionError,
    FlightError,
    FlightSession,
    Frame,
    ProtocolError,
    ReassembledStream,
    ServiceUnavailableError,
    SessionConfig,
    SQLCommandError,
    TransportSecurity,
    descriptor_for_command,
    descriptor_for_path,
    frames_from_table,
    reassemble,
)
from flightsql_client.sql import (
    DbSchema,
    FlightSqlClient,
    ForeignKey,
    PreparedStatement,
    PrimaryKey,
    TableInfo,
)

# OpenTelemetry instrumentation (optional, requires `pip install flightsql-client[otel]`)
with contextlib.suppress(ImportError):
    from flightsql_client.otel import OtelConfig, instrument_session

__all__ = [
    # Session
    "FlightSession",
    "SessionConfig",
    "TransportSecurity",
    "descriptor_for_command",
    "descriptor_for_path",
    # Frames
    "Frame",
    "ReassembledStream",
    "frames_from_table",
    "reassemble",
    # SQL
    "FlightSqlClient",
    "PreparedStatement",
    "DbSchema",
    "TableInfo",
    "PrimaryKey",
    "ForeignKey",
    # Errors
    "FlightError",
    "ConfigurationError",
    "AuthenticationError",
    "FlightConnectionError",
    "ProtocolError",
    "ServiceUnavailableError",
    "SQLCommandError",
]

if "OtelConfig" in dir():
    __all__ += ["OtelConfig", "instrument_session"]

# Attach NullHandler so library users don't get "No handler found" warnings.
logging.getLogger("flightsql_client").addHandler(logging.NullHandler())
