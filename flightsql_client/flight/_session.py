# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flight transport session: channel, handshake and primitive calls."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
import ssl
import time
from collections.abc import AsyncIterable, AsyncIterator, Iterable, MutableSequence
from types import TracebackType
from typing import Any, Protocol

import grpc
import pyarrow as pa
from pyarrow import ipc

from flightsql_client.flight import _proto as pb
from flightsql_client.flight._common import (
    AUTHORIZATION_KEY,
    CHANNEL_OPTIONS,
    DO_GET_TIMEOUT_SECONDS,
    AuthenticationError,
    FlightConnectionError,
    FlightError,
    ProtocolError,
    _logger,
    map_rpc_error,
)
from flightsql_client.flight._config import AuthState, CredentialMode, SessionConfig, TransportSecurity
from flightsql_client.flight._debug import (
    fmt_frame,
    fmt_metadata,
    wire_call_logger,
    wire_frame_logger,
    wire_handshake_logger,
)
from flightsql_client.flight._reassembly import Frame, ReassembledStream, reassemble

__all__ = ["FlightSession", "decode_schema"]

type CallMetadata = tuple[tuple[str, str], ...]
type HookToken = object
"""Opaque token returned by ``_CallHook.on_call_start``."""


class _CallHook(Protocol):
    """Internal protocol for observability hooks called around every primitive call."""

    def on_call_start(self, method: str, target: str, metadata: MutableSequence[tuple[str, str]]) -> HookToken:
        """Start observability for a call; may append entries to *metadata*."""
        ...

    def on_call_end(self, token: HookToken, error: BaseException | None) -> None:
        """Finalize observability after the call (success or failure)."""
        ...


def _method_path(name: str) -> str:
    return f"/{pb.FLIGHT_SERVICE}/{name}"


def _metadata_value(metadata: Iterable[tuple[str, str | bytes]] | None, key: str) -> str | None:
    """Return the first value for *key* in gRPC metadata, or ``None``."""
    if metadata is None:
        return None
    for k, v in metadata:
        if k.lower() == key:
            return v.decode("utf-8") if isinstance(v, bytes) else v
    return None


async def _aiter[T](items: Iterable[T] | AsyncIterable[T]) -> AsyncIterator[T]:
    """Iterate a sync or async iterable asynchronously."""
    if isinstance(items, AsyncIterable):
        async for item in items:
            yield item
    else:
        for item in items:
            yield item


def _frame_from_data(data: Any) -> Frame:
    header = data.data_header if data.HasField("data_header") else None
    return Frame(header, data.data_body, data.app_metadata)


def _certificate_name(cert: dict[str, Any]) -> str | None:
    """Return the first DNS subject-alternative name of *cert*, else its common name."""
    for kind, value in cert.get("subjectAltName", ()):
        if kind == "DNS":
            return str(value)
    for rdn in cert.get("subject", ()):
        for key, value in rdn:
            if key == "commonName":
                return str(value)
    return None


def _fetch_server_certificate(host: str, port: int) -> tuple[str, str | None]:
    """Fetch the server's PEM certificate and the host name it was issued for.

    ``ssl`` only decodes a certificate from a verified handshake, so a second
    handshake verifies the certificate against itself.  That succeeds for
    self-signed certificates only; for any other the name is ``None``.
    """
    pem = ssl.get_server_certificate((host, port))
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.set_alpn_protocols(["h2"])
    context.load_verify_locations(cadata=pem)
    try:
        with socket.create_connection((host, port)) as sock, context.wrap_socket(sock) as tls:
            cert: dict[str, Any] = dict(tls.getpeercert() or {})
    except ssl.SSLCertVerificationError as exc:
        _logger.debug("Server certificate is not self-signed (%s); keeping host name %s", exc.verify_message, host)
        return pem, None
    return pem, _certificate_name(cert)


class FlightSession:
    """One gRPC channel to a Flight server plus its authorization state.

    The channel is created lazily by the first call (or :meth:`connect`).
    When a credential is configured, a handshake runs right after the
    channel is created and may replace the ``authorization`` header.

    Every primitive awaits the complete response: streaming calls are
    buffered in arrival order and returned at once.  gRPC errors are mapped
    to the :class:`~flightsql_client.flight.FlightError` taxonomy here and
    nowhere else.  No call is ever retried.

    Usage::

        async with FlightSession(SessionConfig("localhost", 31337, plaintext=True)) as session:
            info = await session.get_flight_info(descriptor_for_path("trips"))
            stream = await session.do_get(info.endpoint[0].ticket)
            table = stream.to_table()

    """

    __slots__ = ("_auth", "_call_hooks", "_channel", "_config", "_connect_lock")

    def __init__(self, config: SessionConfig) -> None:
        """Initialize with a validated configuration; does not connect."""
        self._config = config
        self._auth = AuthState(config.authorization_header())
        self._channel: grpc.aio.Channel | None = None
        self._connect_lock = asyncio.Lock()
        self._call_hooks: list[_CallHook] = []

    @classmethod
    def from_options(cls, host: str, port: int, **options: Any) -> FlightSession:
        """Build a session from keyword options (see :class:`SessionConfig`).

        Raises:
            ConfigurationError: If *host* or *port* is invalid.

        """
        return cls(SessionConfig(host, port, **options))

    @property
    def config(self) -> SessionConfig:
        """The immutable session configuration."""
        return self._config

    @property
    def auth(self) -> AuthState:
        """The authorization-state cell."""
        return self._auth

    @property
    def connected(self) -> bool:
        """Whether a channel currently exists."""
        return self._channel is not None

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Create the channel (and run the handshake) if not done yet.

        Raises:
            FlightConnectionError: If the channel cannot be built.
            AuthenticationError: If the handshake fails.

        """
        await self._ensure_channel()

    async def _ensure_channel(self) -> grpc.aio.Channel:
        if self._channel is not None:
            return self._channel
        async with self._connect_lock:
            if self._channel is None:
                channel = await self._create_channel()
                if self._config.credential_mode is not CredentialMode.NONE:
                    try:
                        await self._handshake(channel)
                    except BaseException:
                        await channel.close()
                        raise
                self._channel = channel
            return self._channel

    async def _create_channel(self) -> grpc.aio.Channel:
        config = self._config
        security = config.transport_security
        _logger.debug(
            "Connecting to %s (security=%s)",
            config.target,
            security.value,
            extra={"target": config.target, "security": security},
        )
        try:
            if security is TransportSecurity.PLAINTEXT:
                return grpc.aio.insecure_channel(config.target, options=CHANNEL_OPTIONS)
            options: tuple[tuple[str, Any], ...] = CHANNEL_OPTIONS
            if security is TransportSecurity.TLS_SKIP_VERIFY:
                # Trust whatever certificate the server presents, under whatever name it carries.
                pem, name = await asyncio.to_thread(_fetch_server_certificate, config.host, config.port)
                credentials = grpc.ssl_channel_credentials(root_certificates=pem.encode("ascii"))
                if name is not None and name != config.host:
                    options = (*options, ("grpc.ssl_target_name_override", name))
            else:
                credentials = grpc.ssl_channel_credentials(root_certificates=config.root_certificates)
            return grpc.aio.secure_channel(config.target, credentials, options=options)
        except Exception as exc:
            raise FlightConnectionError(f"Failed to connect to {config.target}: {exc}", exc) from exc

    async def _handshake(self, channel: grpc.aio.Channel) -> None:
        """Send one empty handshake request and adopt a returned token.

        Waits for whichever comes first: response headers carrying
        ``authorization``, the first response message, or the end of the
        stream (trailers are checked then).  No token is not an error.
        """
        version, _ = self._auth.snapshot()
        metadata = self._auth.metadata()
        if wire_handshake_logger.isEnabledFor(logging.DEBUG):
            wire_handshake_logger.debug("Handshake start: metadata=%s", fmt_metadata(metadata))
        call = channel.stream_stream(
            _method_path("Handshake"),
            request_serializer=pb.HandshakeRequest.SerializeToString,
            response_deserializer=pb.HandshakeResponse.FromString,
        )(metadata=metadata)
        try:
            await call.write(pb.HandshakeRequest())
            await call.done_writing()
            token = _metadata_value(await call.initial_metadata(), AUTHORIZATION_KEY)
            if token is None:
                response = await call.read()
                if response is grpc.aio.EOF:
                    token = _metadata_value(await call.trailing_metadata(), AUTHORIZATION_KEY)
        except grpc.RpcError as exc:
            raise AuthenticationError(f"Handshake failed: {map_rpc_error(exc).message}") from exc
        finally:
            if not call.done():
                call.cancel()

        if token is None:
            _logger.debug("Handshake completed without a replacement token")
            return
        if self._auth.compare_and_set(version, token):
            _logger.debug("Handshake replaced authorization token")
        if wire_handshake_logger.isEnabledFor(logging.DEBUG):
            wire_handshake_logger.debug("Handshake end: auth_version=%d", self._auth.version)

    async def close(self) -> None:
        """Close the channel.  Safe to call repeatedly or before connecting."""
        channel, self._channel = self._channel, None
        if channel is None:
            return
        _logger.debug("Closing channel to %s", self._config.target)
        await channel.close()

    async def __aenter__(self) -> FlightSession:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the channel."""
        await self.close()

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _call(self, method: str) -> AsyncIterator[tuple[grpc.aio.Channel, CallMetadata]]:
        """Provide the channel and per-call metadata; map gRPC errors on the way out."""
        channel = await self._ensure_channel()
        metadata: list[tuple[str, str]] = list(self._auth.metadata())
        tokens = [(hook, hook.on_call_start(method, self._config.target, metadata)) for hook in self._call_hooks]
        if wire_call_logger.isEnabledFor(logging.DEBUG):
            wire_call_logger.debug("Call start: method=%s, metadata=%s", method, fmt_metadata(metadata))
        start = time.monotonic()
        error: BaseException | None = None
        try:
            yield channel, tuple(metadata)
        except grpc.RpcError as exc:
            error = map_rpc_error(exc)
            raise error from exc
        except BaseException as exc:
            error = exc
            raise
        finally:
            for hook, token in tokens:
                hook.on_call_end(token, error)
            if wire_call_logger.isEnabledFor(logging.DEBUG):
                wire_call_logger.debug(
                    "Call end: method=%s, elapsed_ms=%.1f, error=%s",
                    method,
                    (time.monotonic() - start) * 1000,
                    type(error).__name__ if error is not None else None,
                )

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    async def get_flight_info(self, descriptor: Any) -> Any:
        """Resolve a descriptor to a ``FlightInfo`` (endpoints and tickets)."""
        async with self._call("GetFlightInfo") as (channel, metadata):
            return await channel.unary_unary(
                _method_path("GetFlightInfo"),
                request_serializer=pb.FlightDescriptor.SerializeToString,
                response_deserializer=pb.FlightInfo.FromString,
            )(descriptor, metadata=metadata)

    async def do_get(self, ticket: Any) -> ReassembledStream:
        """Stream a ticket's data and reassemble it into an IPC stream.

        The call has a fixed 60 second deadline from issuance.  Frames are
        buffered in arrival order; on error the buffer is discarded.

        Args:
            ticket: A ``Ticket`` message or raw ticket bytes.

        Returns:
            The reassembled stream, empty when the server sent no messages.

        """
        if isinstance(ticket, bytes):
            ticket = pb.Ticket(ticket=ticket)
        frames: list[Frame] = []
        async with self._call("DoGet") as (channel, metadata):
            call = channel.unary_stream(
                _method_path("DoGet"),
                request_serializer=pb.Ticket.SerializeToString,
                response_deserializer=pb.FlightData.FromString,
            )(ticket, metadata=metadata, timeout=DO_GET_TIMEOUT_SECONDS)
            async for data in call:
                frame = _frame_from_data(data)
                if wire_frame_logger.isEnabledFor(logging.DEBUG):
                    wire_frame_logger.debug("DoGet received: %s", fmt_frame(frame))
                frames.append(frame)
        return reassemble(frames)

    async def do_put(self, frames: Iterable[Frame] | AsyncIterable[Frame], *, descriptor: Any | None = None) -> None:
        """Upload frames in order, half-close, and wait for the server to finish.

        Args:
            frames: Frames to send (sync or async iterable).
            descriptor: Descriptor attached to the first message, as the
                Flight protocol requires for uploads.

        Raises:
            FlightError: If *frames* raises while being consumed; the call
                is cancelled and the source error is chained.

        """
        source_error: Exception | None = None

        async def requests() -> AsyncIterator[Any]:
            nonlocal source_error
            first = True
            try:
                async for frame in _aiter(frames):
                    data = pb.FlightData(data_body=frame.body, app_metadata=frame.app_metadata)
                    if frame.header is not None:
                        data.data_header = frame.header
                    if first and descriptor is not None:
                        data.flight_descriptor.CopyFrom(descriptor)
                    first = False
                    if wire_frame_logger.isEnabledFor(logging.DEBUG):
                        wire_frame_logger.debug("DoPut send: %s", fmt_frame(frame))
                    yield data
            except Exception as exc:
                source_error = exc
                raise

        async with self._call("DoPut") as (channel, metadata):
            call = channel.stream_stream(
                _method_path("DoPut"),
                request_serializer=pb.FlightData.SerializeToString,
                response_deserializer=pb.PutResult.FromString,
            )(requests(), metadata=metadata)
            acks = 0
            try:
                async for _ in call:
                    acks += 1
            except (asyncio.CancelledError, grpc.RpcError):
                # grpc.aio cancels the call when the request iterator fails.
                if source_error is None:
                    raise
            if source_error is not None:
                raise FlightError(f"Failed to write data: {source_error}") from source_error
        if wire_frame_logger.isEnabledFor(logging.DEBUG):
            wire_frame_logger.debug("DoPut complete: acks=%d", acks)

    async def do_action(self, action: Any, body: bytes = b"") -> list[Any]:
        """Run an action and return all of its ``Result`` messages in order.

        Args:
            action: An ``Action`` message, or an action type name combined
                with *body*.
            body: Action body when *action* is a type name.

        """
        if isinstance(action, str):
            action = pb.Action(type=action, body=body)
        async with self._call("DoAction") as (channel, metadata):
            call = channel.unary_stream(
                _method_path("DoAction"),
                request_serializer=pb.Action.SerializeToString,
                response_deserializer=pb.Result.FromString,
            )(action, metadata=metadata)
            return [result async for result in call]

    async def list_flights(self, criteria: bytes = b"") -> list[Any]:
        """List available flights matching an opaque criteria expression."""
        async with self._call("ListFlights") as (channel, metadata):
            call = channel.unary_stream(
                _method_path("ListFlights"),
                request_serializer=pb.Criteria.SerializeToString,
                response_deserializer=pb.FlightInfo.FromString,
            )(pb.Criteria(expression=criteria), metadata=metadata)
            return [info async for info in call]

    async def list_actions(self) -> list[Any]:
        """List the action types the server supports."""
        async with self._call("ListActions") as (channel, metadata):
            call = channel.unary_stream(
                _method_path("ListActions"),
                request_serializer=pb.Empty.SerializeToString,
                response_deserializer=pb.ActionType.FromString,
            )(pb.Empty(), metadata=metadata)
            return [action_type async for action_type in call]

    async def get_schema(self, descriptor: Any) -> pa.Schema:
        """Fetch the Arrow schema of the dataset a descriptor addresses.

        Raises:
            ProtocolError: If the returned schema bytes cannot be decoded.

        """
        async with self._call("GetSchema") as (channel, metadata):
            result = await channel.unary_unary(
                _method_path("GetSchema"),
                request_serializer=pb.FlightDescriptor.SerializeToString,
                response_deserializer=pb.SchemaResult.FromString,
            )(descriptor, metadata=metadata)
        return decode_schema(result.schema)


def decode_schema(data: bytes) -> pa.Schema:
    """Decode an IPC-encapsulated schema message.

    Raises:
        ProtocolError: If *data* is not a schema message.

    """
    try:
        return ipc.read_schema(pa.py_buffer(data))
    except pa.ArrowException as exc:
        raise ProtocolError(f"Failed to decode schema: {exc}") from exc
