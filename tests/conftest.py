"""Shared test fixtures for flightsql-client tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from tests.flight_fixture import FlightScript


@pytest.fixture()
def script() -> FlightScript:
    """Return a fresh scripted server configuration."""
    return FlightScript()


@pytest.fixture()
def wire_debug() -> Iterator[None]:
    """Enable DEBUG on the ``flightsql_client`` logger hierarchy for one test."""
    logger = logging.getLogger("flightsql_client")
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    yield
    logger.setLevel(previous)
