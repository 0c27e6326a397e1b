# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""OpenTelemetry client instrumentation for Flight sessions.

Provides ``OtelConfig`` and ``instrument_session()``, which wrap every
primitive Flight call in a CLIENT span, count calls, record their duration
and propagate W3C trace context to the server in the call metadata.

Requires ``pip install flightsql-client[otel]`` (opentelemetry-api + opentelemetry-sdk).

Usage::

    from flightsql_client.otel import instrument_session

    session = FlightSession(SessionConfig("localhost", 31337, plaintext=True))
    instrument_session(session)  # uses global TracerProvider / MeterProvider
"""

from __future__ import annotations

import time
from collections.abc import Mapping, MutableSequence
from dataclasses import dataclass, field

from opentelemetry import propagate, trace
from opentelemetry.metrics import Counter, Histogram, MeterProvider, get_meter_provider
from opentelemetry.trace import SpanKind, StatusCode, Tracer, TracerProvider, get_tracer_provider

from flightsql_client.flight import FlightError, FlightSession
from flightsql_client.flight import _proto as pb
from flightsql_client.flight._session import HookToken

__all__ = ["OtelConfig", "instrument_session"]

_INSTRUMENTATION_NAME = "flightsql_client"
_INSTRUMENTATION_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OtelConfig:
    """Configuration for OpenTelemetry instrumentation.

    Attributes:
        tracer_provider: Custom ``TracerProvider``; uses the global provider when ``None``.
        meter_provider: Custom ``MeterProvider``; uses the global provider when ``None``.
        enable_tracing: Enable span creation (default ``True``).
        enable_metrics: Enable counter/histogram recording (default ``True``).
        record_exceptions: Record exceptions on error spans (default ``True``).
        propagate_context: Inject ``traceparent``/``tracestate`` into call metadata.
        custom_attributes: Extra span/metric attributes merged into every call.

    """

    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None
    enable_tracing: bool = True
    enable_metrics: bool = True
    record_exceptions: bool = True
    propagate_context: bool = True
    custom_attributes: Mapping[str, str] = field(default_factory=dict)


def instrument_session(session: FlightSession, config: OtelConfig | None = None) -> FlightSession:
    """Attach OpenTelemetry tracing and metrics to a session.

    Call before the session is shared between tasks.  The handshake is not
    instrumented; it runs outside the per-call plumbing.

    Args:
        session: The session to instrument.
        config: Optional configuration; uses global providers and defaults when ``None``.

    Returns:
        The same *session* instance (for chaining).

    """
    if config is None:
        config = OtelConfig()
    session._call_hooks.append(_OtelCallHook(config))
    return session


# ---------------------------------------------------------------------------
# Internal call hook
# ---------------------------------------------------------------------------


@dataclass
class _OtelHookToken:
    """Span and timing carried from ``on_call_start`` to ``on_call_end``."""

    span: trace.Span | None
    start_time: float
    method: str
    target: str


class _OtelCallHook:
    """Implements ``_CallHook`` with OpenTelemetry spans and metrics."""

    __slots__ = ("_config", "_counter", "_histogram", "_tracer")

    def __init__(self, config: OtelConfig) -> None:
        self._config = config

        tp = config.tracer_provider or get_tracer_provider()
        self._tracer: Tracer = tp.get_tracer(_INSTRUMENTATION_NAME, _INSTRUMENTATION_VERSION)

        mp: MeterProvider = config.meter_provider or get_meter_provider()
        meter = mp.get_meter(_INSTRUMENTATION_NAME, _INSTRUMENTATION_VERSION)
        self._counter: Counter = meter.create_counter(
            "rpc.client.requests",
            unit="{request}",
            description="Number of Flight calls issued",
        )
        self._histogram: Histogram = meter.create_histogram(
            "rpc.client.duration",
            unit="s",
            description="Duration of Flight calls",
        )

    def _attributes(self, method: str, target: str) -> dict[str, str]:
        attrs = {
            "rpc.system": "grpc",
            "rpc.service": pb.FLIGHT_SERVICE,
            "rpc.method": method,
            "server.address": target,
        }
        attrs.update(self._config.custom_attributes)
        return attrs

    def on_call_start(self, method: str, target: str, metadata: MutableSequence[tuple[str, str]]) -> HookToken:
        """Start a CLIENT span and inject its context into *metadata*."""
        span: trace.Span | None = None
        if self._config.enable_tracing:
            span = self._tracer.start_span(
                f"{pb.FLIGHT_SERVICE}/{method}",
                kind=SpanKind.CLIENT,
                attributes=self._attributes(method, target),
            )
            if self._config.propagate_context:
                carrier: dict[str, str] = {}
                propagate.inject(carrier, context=trace.set_span_in_context(span))
                metadata.extend((key.lower(), value) for key, value in carrier.items())
        return _OtelHookToken(span=span, start_time=time.monotonic(), method=method, target=target)

    def on_call_end(self, token: HookToken, error: BaseException | None) -> None:
        """End the span and record metrics."""
        if not isinstance(token, _OtelHookToken):
            return

        duration = time.monotonic() - token.start_time
        if token.span is not None:
            if error is not None:
                token.span.set_status(StatusCode.ERROR, str(error))
                token.span.set_attribute("error.type", type(error).__name__)
                if isinstance(error, FlightError) and error.code is not None:
                    token.span.set_attribute("rpc.grpc.status_code", error.code)
                if self._config.record_exceptions:
                    token.span.record_exception(error)
            else:
                token.span.set_status(StatusCode.OK)
            token.span.end()

        if self._config.enable_metrics:
            metric_attrs = self._attributes(token.method, token.target)
            metric_attrs["status"] = "error" if error is not None else "ok"
            self._counter.add(1, metric_attrs)
            self._histogram.record(duration, metric_attrs)
