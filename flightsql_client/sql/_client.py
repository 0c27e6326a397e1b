# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flight SQL command layer over a :class:`FlightSession`."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import pyarrow as pa

from flightsql_client.flight import (
    FlightError,
    FlightSession,
    ProtocolError,
    SessionConfig,
    SQLCommandError,
    decode_schema,
)
from flightsql_client.sql._commands import (
    catalogs_descriptor,
    close_prepared_statement_action,
    create_prepared_statement_action,
    db_schemas_descriptor,
    imported_keys_descriptor,
    prepared_statement_query_descriptor,
    primary_keys_descriptor,
    statement_query_descriptor,
    table_types_descriptor,
    tables_descriptor,
    unpack_prepared_statement_result,
)
from flightsql_client.sql._rows import DbSchema, ForeignKey, PrimaryKey, TableInfo, project_rows

__all__ = ["FlightSqlClient", "PreparedStatement"]

_logger = logging.getLogger("flightsql_client.sql")


@dataclass(frozen=True)
class PreparedStatement:
    """A server-side prepared statement.

    The client never tracks whether the statement has been closed; executing
    a closed handle is rejected by the server, if at all.

    Attributes:
        handle: Opaque server handle, echoed back verbatim.
        dataset_schema: Schema of the result set, when the server sent one.
        parameter_schema: Schema of the bind parameters, when the server
            sent one.

    """

    handle: bytes
    dataset_schema: pa.Schema | None = field(default=None, compare=False)
    parameter_schema: pa.Schema | None = field(default=None, compare=False)


@contextlib.contextmanager
def _command_errors(operation: str) -> Iterator[None]:
    """Re-raise non-``FlightError`` failures of *operation* as ``SQLCommandError``."""
    try:
        yield
    except FlightError:
        raise
    except Exception as exc:
        raise SQLCommandError(f"Failed to {operation}: {exc}") from exc


def _handle_of(statement: PreparedStatement | bytes) -> bytes:
    return statement.handle if isinstance(statement, PreparedStatement) else statement


def _optional_schema(data: bytes) -> pa.Schema | None:
    return decode_schema(data) if data else None


class FlightSqlClient:
    """Issues Flight SQL commands through one :class:`FlightSession`.

    Query methods (:meth:`execute`, :meth:`execute_prepared`) treat a
    ``FlightInfo`` without endpoints or without a ticket as a server fault
    and raise :class:`~flightsql_client.flight.ProtocolError`.  Metadata
    methods treat the same situation as an empty result.

    Only the first endpoint of a ``FlightInfo`` is fetched.

    Usage::

        async with FlightSqlClient.from_options("localhost", 31337, plaintext=True) as client:
            table = await client.execute("SELECT 1")
            tables = await client.get_tables(table_types=["TABLE"])

    """

    __slots__ = ("_session",)

    def __init__(self, session: FlightSession | SessionConfig) -> None:
        """Wrap an existing session, or open a new one for a config."""
        self._session = session if isinstance(session, FlightSession) else FlightSession(session)

    @classmethod
    def from_options(cls, host: str, port: int, **options: Any) -> FlightSqlClient:
        """Build a client from keyword options (see :class:`SessionConfig`).

        Raises:
            ConfigurationError: If *host* or *port* is invalid.

        """
        return cls(FlightSession.from_options(host, port, **options))

    @property
    def session(self) -> FlightSession:
        """The underlying transport session."""
        return self._session

    async def close(self) -> None:
        """Close the underlying session."""
        await self._session.close()

    async def __aenter__(self) -> FlightSqlClient:
        """Enter the async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the underlying session."""
        await self.close()

    # ------------------------------------------------------------------
    # Ticket, then stream
    # ------------------------------------------------------------------

    async def _fetch(self, descriptor: Any, *, required: bool) -> pa.Table | None:
        """Resolve *descriptor* to a ticket and read its stream.

        Returns ``None`` when the server offered nothing to read and
        *required* is false.
        """
        info = await self._session.get_flight_info(descriptor)
        if not info.endpoint:
            if required:
                raise ProtocolError("Server returned no endpoints for the command")
            _logger.debug("No endpoints; returning an empty result")
            return None
        endpoint = info.endpoint[0]
        if not endpoint.HasField("ticket"):
            if required:
                raise ProtocolError("Server returned an endpoint with no ticket")
            _logger.debug("Endpoint has no ticket; returning an empty result")
            return None
        stream = await self._session.do_get(endpoint.ticket)
        return stream.to_table()

    async def _query(self, descriptor: Any) -> pa.Table:
        table = await self._fetch(descriptor, required=True)
        assert table is not None
        return table

    async def _metadata[R](self, descriptor: Any, row_type: type[R]) -> list[R]:
        table = await self._fetch(descriptor, required=False)
        if table is None:
            return []
        return project_rows(table, row_type)

    async def _metadata_column(self, descriptor: Any, column: str) -> list[str]:
        table = await self._fetch(descriptor, required=False)
        if table is None or (table.num_columns == 0 and table.num_rows == 0):
            return []
        if column not in table.column_names:
            raise ProtocolError(f"Result is missing required column '{column}' (columns: {table.column_names})")
        return table.column(column).to_pylist()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def execute(self, query: str, *, transaction_id: bytes | None = None) -> pa.Table:
        """Run an ad-hoc SQL statement and return its full result.

        Raises:
            ProtocolError: If the server offers no endpoint or no ticket.
            SQLCommandError: On any failure not already typed.

        """
        _logger.debug("Execute: %s", query)
        with _command_errors("execute query"):
            return await self._query(statement_query_descriptor(query, transaction_id=transaction_id))

    async def execute_prepared(self, statement: PreparedStatement | bytes) -> pa.Table:
        """Execute a prepared statement (or raw handle) and return its result.

        Raises:
            ProtocolError: If the server offers no endpoint or no ticket.
            SQLCommandError: On any failure not already typed.

        """
        handle = _handle_of(statement)
        _logger.debug("Execute prepared statement: handle_bytes=%d", len(handle), extra={"prepared_handle": handle})
        with _command_errors("execute prepared statement"):
            return await self._query(prepared_statement_query_descriptor(handle))

    async def get_query_schema(self, query: str, *, transaction_id: bytes | None = None) -> pa.Schema:
        """Return the result schema of *query* without executing it."""
        with _command_errors("get query schema"):
            return await self._session.get_schema(statement_query_descriptor(query, transaction_id=transaction_id))

    # ------------------------------------------------------------------
    # Prepared statements
    # ------------------------------------------------------------------

    async def prepare(self, query: str, *, transaction_id: bytes | None = None) -> PreparedStatement:
        """Create a server-side prepared statement for *query*.

        The handle is taken from the first action result.  Servers that send
        an ``Any``-packed ``ActionCreatePreparedStatementResult`` also supply
        the dataset and parameter schemas; otherwise the result body is the
        handle itself.

        Raises:
            ProtocolError: If the server returns no result.
            SQLCommandError: On any failure not already typed.

        """
        _logger.debug("Prepare: %s", query)
        with _command_errors("prepare statement"):
            results = await self._session.do_action(
                create_prepared_statement_action(query, transaction_id=transaction_id)
            )
            if not results:
                raise ProtocolError("CreatePreparedStatement returned no results")
            body: bytes = results[0].body
            unpacked = unpack_prepared_statement_result(body)
            if unpacked is None:
                statement = PreparedStatement(body)
            else:
                statement = PreparedStatement(
                    unpacked.prepared_statement_handle,
                    _optional_schema(unpacked.dataset_schema),
                    _optional_schema(unpacked.parameter_schema),
                )
        _logger.debug(
            "Prepared statement: handle_bytes=%d",
            len(statement.handle),
            extra={"prepared_handle": statement.handle, "dataset_schema": statement.dataset_schema},
        )
        return statement

    async def close_prepared(self, statement: PreparedStatement | bytes) -> None:
        """Release a prepared statement on the server."""
        handle = _handle_of(statement)
        _logger.debug("Close prepared statement: handle_bytes=%d", len(handle), extra={"prepared_handle": handle})
        with _command_errors("close prepared statement"):
            await self._session.do_action(close_prepared_statement_action(handle))

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def get_catalogs(self) -> list[str]:
        """List catalog names."""
        with _command_errors("get catalogs"):
            return await self._metadata_column(catalogs_descriptor(), "catalog_name")

    async def get_db_schemas(
        self, catalog: str | None = None, db_schema_filter_pattern: str | None = None
    ) -> list[DbSchema]:
        """List database schemas, optionally within a catalog and matching a LIKE pattern."""
        with _command_errors("get database schemas"):
            return await self._metadata(db_schemas_descriptor(catalog, db_schema_filter_pattern), DbSchema)

    async def get_tables(
        self,
        catalog: str | None = None,
        db_schema_filter_pattern: str | None = None,
        table_name_filter_pattern: str | None = None,
        table_types: Sequence[str] | None = None,
    ) -> list[TableInfo]:
        """List tables matching the given filters.

        Args:
            catalog: Restrict to one catalog.
            db_schema_filter_pattern: SQL LIKE pattern on schema names.
            table_name_filter_pattern: SQL LIKE pattern on table names.
            table_types: Restrict to these table types (e.g. ``"TABLE"``).

        """
        with _command_errors("get tables"):
            descriptor = tables_descriptor(catalog, db_schema_filter_pattern, table_name_filter_pattern, table_types)
            return await self._metadata(descriptor, TableInfo)

    async def get_table_types(self) -> list[str]:
        """List the table types the server knows."""
        with _command_errors("get table types"):
            return await self._metadata_column(table_types_descriptor(), "table_type")

    async def get_primary_keys(
        self, table: str, *, catalog: str | None = None, db_schema: str | None = None
    ) -> list[PrimaryKey]:
        """List the primary key columns of *table*."""
        with _command_errors("get primary keys"):
            return await self._metadata(primary_keys_descriptor(table, catalog, db_schema), PrimaryKey)

    async def get_imported_keys(
        self, table: str, *, catalog: str | None = None, db_schema: str | None = None
    ) -> list[ForeignKey]:
        """List the foreign keys *table* imports (references it makes)."""
        with _command_errors("get foreign keys"):
            return await self._metadata(imported_keys_descriptor(table, catalog, db_schema), ForeignKey)

    get_foreign_keys = get_imported_keys
