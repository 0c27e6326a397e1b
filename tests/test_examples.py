"""Tests that the examples/ scripts run against the in-process Flight server."""

from __future__ import annotations

import asyncio

import pyarrow as pa
import pytest

from tests.flight_fixture import FlightScript, serve_flight


class TestQueryExample:
    """examples/query.py."""

    def test_run(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Metadata, query and prepared statement all print."""
        from examples.query import run

        tables = pa.table(
            {
                "catalog_name": ["main"],
                "db_schema_name": ["public"],
                "table_name": ["trips"],
                "table_type": ["TABLE"],
            }
        )
        script = FlightScript(
            route_by_command=True,
            tables={
                b"CommandGetCatalogs": pa.table({"catalog_name": ["main"]}),
                b"CommandGetTables": tables,
                b"CommandStatementQuery": pa.table({"answer": [42]}),
                b"CommandPreparedStatementQuery": pa.table({"answer": [42]}),
            },
            action_results={"CreatePreparedStatement": [b"example-handle"]},
        )

        async def scenario() -> None:
            async with serve_flight(script) as port:
                await run(f"grpc://127.0.0.1:{port}", "SELECT 42 AS answer")

        asyncio.run(scenario())
        out = capsys.readouterr().out
        assert "Catalogs: ['main']" in out
        assert "public.trips [TABLE]" in out
        assert "Rows: 1, schema: ['answer']" in out
        assert "Prepared rows: 1" in out
        assert [a.type for a in script.requests("DoAction")] == ["CreatePreparedStatement", "ClosePreparedStatement"]
