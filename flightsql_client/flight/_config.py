# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Session configuration and authorization state."""

from __future__ import annotations

import base64
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Final
from urllib.parse import unquote, urlsplit

from flightsql_client.flight._common import ConfigurationError

__all__ = ["AuthState", "CredentialMode", "SessionConfig", "TransportSecurity"]

_PLAINTEXT_SCHEMES: Final = frozenset({"grpc", "grpc+tcp"})
_TLS_SCHEMES: Final = frozenset({"grpc+tls"})


class TransportSecurity(Enum):
    """Channel security mode."""

    PLAINTEXT = "plaintext"
    TLS = "tls"
    TLS_SKIP_VERIFY = "tls_skip_verify"


class CredentialMode(Enum):
    """Which credential, if any, seeds the ``authorization`` header."""

    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"


@dataclass(frozen=True)
class SessionConfig:
    """Connection parameters for a :class:`FlightSession`.

    When several security flags are set, ``plaintext`` wins over
    ``tls_skip_verify``, which wins over verified TLS.  When several
    credentials are set, ``token`` wins over ``username``/``password``.

    Attributes:
        host: Server host name or address.
        port: Server port, strictly positive.
        plaintext: Use an insecure channel.
        tls_skip_verify: Use TLS but trust whatever certificate the server
            presents.
        username: Basic-auth user name (needs ``password``).
        password: Basic-auth password (needs ``username``).
        token: Bearer token.
        root_certificates: PEM root certificates for verified TLS; the
            system trust store is used when ``None``.

    Raises:
        ConfigurationError: If *host* is empty or *port* is not a positive
            integer.

    """

    host: str
    port: int
    plaintext: bool = False
    tls_skip_verify: bool = False
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    token: str | None = field(default=None, repr=False)
    root_certificates: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate host and port."""
        if not self.host:
            raise ConfigurationError("Host is required")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or self.port <= 0:
            raise ConfigurationError(f"Valid port number is required, got {self.port!r}")

    @classmethod
    def from_uri(cls, uri: str, **kwargs: object) -> SessionConfig:
        """Build a config from a Flight location URI.

        ``grpc://`` and ``grpc+tcp://`` select plaintext, ``grpc+tls://``
        selects verified TLS.  User info in the URI becomes basic-auth
        credentials.  Extra keyword arguments are passed to the constructor.

        Raises:
            ConfigurationError: On an unsupported scheme or missing port.

        """
        parts = urlsplit(uri)
        scheme = parts.scheme.lower()
        if scheme not in _PLAINTEXT_SCHEMES | _TLS_SCHEMES:
            raise ConfigurationError(f"Unsupported Flight URI scheme: {parts.scheme!r}")
        try:
            port = parts.port
        except ValueError as exc:
            raise ConfigurationError(f"Invalid port in URI {uri!r}") from exc
        if port is None:
            raise ConfigurationError(f"Valid port number is required in URI {uri!r}")
        params: dict[str, object] = {"plaintext": scheme in _PLAINTEXT_SCHEMES}
        if parts.username is not None:
            params["username"] = unquote(parts.username)
        if parts.password is not None:
            params["password"] = unquote(parts.password)
        params.update(kwargs)
        return cls(parts.hostname or "", port, **params)  # type: ignore[arg-type]

    @property
    def target(self) -> str:
        """The ``host:port`` dial target."""
        return f"{self.host}:{self.port}"

    @property
    def transport_security(self) -> TransportSecurity:
        """Resolved security mode."""
        if self.plaintext:
            return TransportSecurity.PLAINTEXT
        if self.tls_skip_verify:
            return TransportSecurity.TLS_SKIP_VERIFY
        return TransportSecurity.TLS

    @property
    def credential_mode(self) -> CredentialMode:
        """Resolved credential mode."""
        if self.token:
            return CredentialMode.BEARER
        if self.username and self.password:
            return CredentialMode.BASIC
        return CredentialMode.NONE

    def authorization_header(self) -> str | None:
        """Initial ``authorization`` value derived from the credentials."""
        mode = self.credential_mode
        if mode is CredentialMode.BEARER:
            return f"Bearer {self.token}"
        if mode is CredentialMode.BASIC:
            raw = f"{self.username}:{self.password}".encode()
            return f"Basic {base64.b64encode(raw).decode('ascii')}"
        return None


class AuthState:
    """Versioned cell holding the session's ``authorization`` header.

    Calls read the value with :meth:`snapshot` and never keep a reference to
    the cell.  The handshake replaces the value through
    :meth:`compare_and_set`, which only succeeds against the version it read.
    """

    __slots__ = ("_lock", "_value", "_version")

    def __init__(self, value: str | None) -> None:
        """Initialize with the config-derived header value (version 0)."""
        self._lock = threading.Lock()
        self._value = value
        self._version = 0

    @property
    def value(self) -> str | None:
        """Current header value."""
        return self._value

    @property
    def version(self) -> int:
        """Number of successful replacements so far."""
        return self._version

    def snapshot(self) -> tuple[int, str | None]:
        """Return ``(version, value)`` read atomically."""
        with self._lock:
            return self._version, self._value

    def compare_and_set(self, expected_version: int, value: str) -> bool:
        """Replace the value if the version is still *expected_version*.

        Returns:
            ``True`` if the value was replaced.

        """
        with self._lock:
            if self._version != expected_version:
                return False
            self._value = value
            self._version += 1
            return True

    def metadata(self) -> tuple[tuple[str, str], ...]:
        """Per-call gRPC metadata carrying the current value."""
        _, value = self.snapshot()
        if value is None:
            return ()
        return (("authorization", value),)
