# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Constants, errors, and status-code mapping for the Flight transport."""

from __future__ import annotations

import logging
from typing import Final

import grpc

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_logger = logging.getLogger("flightsql_client.flight")

MAX_MESSAGE_BYTES: Final = 100 * 1024 * 1024
"""Inbound and outbound gRPC message-size ceiling."""

DO_GET_TIMEOUT_SECONDS: Final = 60.0
"""Deadline applied to every ``DoGet`` call, measured from call start."""

AUTHORIZATION_KEY: Final = "authorization"

CHANNEL_OPTIONS: Final[tuple[tuple[str, int], ...]] = (
    ("grpc.max_receive_message_length", MAX_MESSAGE_BYTES),
    ("grpc.max_send_message_length", MAX_MESSAGE_BYTES),
    ("grpc.keepalive_time_ms", 30_000),
    ("grpc.keepalive_timeout_ms", 5_000),
    ("grpc.keepalive_permit_without_calls", 1),
    ("grpc.http2.max_pings_without_data", 0),
    # Idle pings no more than every 5 minutes, otherwise servers answer
    # with GOAWAY "too_many_pings".
    ("grpc.http2.min_ping_interval_without_data_ms", 300_000),
)

_STATUS_UNAUTHENTICATED: Final = 16
_STATUS_UNAVAILABLE: Final = 14


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FlightError(Exception):
    """Base class for every error raised by this package.

    Attributes:
        message: Human-readable description.
        code: Status code or symbolic code, if the error originated from
            the server; ``None`` for purely client-side failures.

    """

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize with a message and optional status code."""
        self.message = message
        self.code = code
        super().__init__(message)


class ConfigurationError(FlightError):
    """Raised at construction when the session configuration is invalid."""


class AuthenticationError(FlightError):
    """Raised when the handshake fails or the server reports UNAUTHENTICATED."""

    def __init__(self, message: str = "Authentication failed") -> None:
        """Initialize with a message; the code is always ``UNAUTHENTICATED``."""
        super().__init__(message, "UNAUTHENTICATED")


class FlightConnectionError(FlightError):
    """Raised when the gRPC channel cannot be constructed.

    Attributes:
        original_error: The exception that caused the failure, if any.

    """

    def __init__(self, message: str, original_error: BaseException | None = None) -> None:
        """Initialize with a message and the underlying failure."""
        self.original_error = original_error
        super().__init__(message)


class ProtocolError(FlightError):
    """Raised when a server response violates the Flight SQL choreography."""


class ServiceUnavailableError(FlightError):
    """Raised when the server reports UNAVAILABLE."""

    def __init__(self, message: str = "Service unavailable") -> None:
        """Initialize with a message; the code is always ``UNAVAILABLE``."""
        super().__init__(message, "UNAVAILABLE")


class SQLCommandError(FlightError):
    """Catch-all for failures surfaced while executing a SQL command."""


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


def status_code_number(code: grpc.StatusCode | int | None) -> int | None:
    """Return the numeric value of a gRPC status code."""
    if code is None:
        return None
    if isinstance(code, grpc.StatusCode):
        return int(code.value[0])
    return int(code)


def map_rpc_error(error: grpc.RpcError) -> FlightError:
    """Translate a gRPC error into the typed error taxonomy.

    Status 16 becomes :class:`AuthenticationError`, status 14 becomes
    :class:`ServiceUnavailableError`; every other status becomes a plain
    :class:`FlightError` whose ``code`` is the numeric status as a string.

    Args:
        error: Error raised by a ``grpc.aio`` call.

    Returns:
        The mapped error (not raised).

    """
    code_fn = getattr(error, "code", None)
    details_fn = getattr(error, "details", None)
    number = status_code_number(code_fn() if callable(code_fn) else None)
    details = details_fn() if callable(details_fn) else None
    if number == _STATUS_UNAUTHENTICATED:
        return AuthenticationError(f"Authentication failed: {details}" if details else "Authentication failed")
    if number == _STATUS_UNAVAILABLE:
        return ServiceUnavailableError(f"Service unavailable: {details}" if details else "Service unavailable")
    return FlightError(details or str(error) or "Unknown error", None if number is None else str(number))
