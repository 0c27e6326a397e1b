# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flight SQL command catalog and ``Any`` envelope encoding."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, Final

from google.protobuf import any_pb2, message

from flightsql_client.flight import ProtocolError, descriptor_for_command
from flightsql_client.flight import _proto as pb

__all__ = [
    "ACTION_CLOSE_PREPARED_STATEMENT",
    "ACTION_CREATE_PREPARED_STATEMENT",
    "COMMAND_TYPE_URLS",
    "TYPE_URL_PREFIX",
    "CommandKind",
    "catalogs_descriptor",
    "close_prepared_statement_action",
    "create_prepared_statement_action",
    "db_schemas_descriptor",
    "imported_keys_descriptor",
    "pack_command",
    "prepared_statement_query_descriptor",
    "primary_keys_descriptor",
    "statement_query_descriptor",
    "table_types_descriptor",
    "tables_descriptor",
    "unpack_prepared_statement_result",
]

TYPE_URL_PREFIX: Final = "type.googleapis.com"

ACTION_CREATE_PREPARED_STATEMENT: Final = "CreatePreparedStatement"
ACTION_CLOSE_PREPARED_STATEMENT: Final = "ClosePreparedStatement"


class CommandKind(Enum):
    """Every Flight SQL command this client can send, keyed by message name."""

    STATEMENT_QUERY = "CommandStatementQuery"
    PREPARED_STATEMENT_QUERY = "CommandPreparedStatementQuery"
    GET_CATALOGS = "CommandGetCatalogs"
    GET_DB_SCHEMAS = "CommandGetDbSchemas"
    GET_TABLES = "CommandGetTables"
    GET_TABLE_TYPES = "CommandGetTableTypes"
    GET_PRIMARY_KEYS = "CommandGetPrimaryKeys"
    GET_IMPORTED_KEYS = "CommandGetImportedKeys"
    CREATE_PREPARED_STATEMENT = "ActionCreatePreparedStatementRequest"
    CLOSE_PREPARED_STATEMENT = "ActionClosePreparedStatementRequest"

    @property
    def type_url(self) -> str:
        """Stable type identifier carried in the ``Any`` envelope."""
        return f"{TYPE_URL_PREFIX}/{pb.FLIGHT_SQL_PACKAGE}.{self.value}"

    @classmethod
    def from_type_url(cls, type_url: str) -> CommandKind:
        """Look up a kind by its type URL.

        Raises:
            ProtocolError: If the URL names no known command.

        """
        kind = _KINDS_BY_URL.get(type_url)
        if kind is None:
            raise ProtocolError(f"Unknown Flight SQL command type URL: {type_url!r}")
        return kind


_KINDS_BY_URL: Final[dict[str, CommandKind]] = {kind.type_url: kind for kind in CommandKind}

COMMAND_TYPE_URLS: Final[frozenset[str]] = frozenset(_KINDS_BY_URL)
"""Every type URL a command envelope may carry."""


def pack_command(command: Any) -> bytes:
    """Wrap a Flight SQL command in a serialized ``google.protobuf.Any``.

    Raises:
        ProtocolError: If *command* is not a known Flight SQL command.

    """
    envelope = any_pb2.Any()
    envelope.Pack(command, type_url_prefix=TYPE_URL_PREFIX)
    CommandKind.from_type_url(envelope.type_url)
    return envelope.SerializeToString()


def _descriptor(command: Any) -> Any:
    return descriptor_for_command(pack_command(command))


# ---------------------------------------------------------------------------
# Query and metadata descriptors
# ---------------------------------------------------------------------------


def statement_query_descriptor(query: str, *, transaction_id: bytes | None = None) -> Any:
    """Descriptor for an ad-hoc SQL statement."""
    command = pb.CommandStatementQuery(query=query)
    if transaction_id is not None:
        command.transaction_id = transaction_id
    return _descriptor(command)


def prepared_statement_query_descriptor(handle: bytes) -> Any:
    """Descriptor executing a previously prepared statement."""
    return _descriptor(pb.CommandPreparedStatementQuery(prepared_statement_handle=handle))


def catalogs_descriptor() -> Any:
    """Descriptor listing catalogs."""
    return _descriptor(pb.CommandGetCatalogs())


def db_schemas_descriptor(catalog: str | None = None, db_schema_filter_pattern: str | None = None) -> Any:
    """Descriptor listing database schemas."""
    command = pb.CommandGetDbSchemas()
    if catalog is not None:
        command.catalog = catalog
    if db_schema_filter_pattern is not None:
        command.db_schema_filter_pattern = db_schema_filter_pattern
    return _descriptor(command)


def tables_descriptor(
    catalog: str | None = None,
    db_schema_filter_pattern: str | None = None,
    table_name_filter_pattern: str | None = None,
    table_types: Sequence[str] | None = None,
    *,
    include_schema: bool = False,
) -> Any:
    """Descriptor listing tables."""
    command = pb.CommandGetTables(include_schema=include_schema)
    if catalog is not None:
        command.catalog = catalog
    if db_schema_filter_pattern is not None:
        command.db_schema_filter_pattern = db_schema_filter_pattern
    if table_name_filter_pattern is not None:
        command.table_name_filter_pattern = table_name_filter_pattern
    if table_types:
        command.table_types.extend(table_types)
    return _descriptor(command)


def table_types_descriptor() -> Any:
    """Descriptor listing table types."""
    return _descriptor(pb.CommandGetTableTypes())


def _key_descriptor(message_type: Any, table: str, catalog: str | None, db_schema: str | None) -> Any:
    command = message_type(table=table)
    if catalog is not None:
        command.catalog = catalog
    if db_schema is not None:
        command.db_schema = db_schema
    return _descriptor(command)


def primary_keys_descriptor(table: str, catalog: str | None = None, db_schema: str | None = None) -> Any:
    """Descriptor listing the primary key columns of a table."""
    return _key_descriptor(pb.CommandGetPrimaryKeys, table, catalog, db_schema)


def imported_keys_descriptor(table: str, catalog: str | None = None, db_schema: str | None = None) -> Any:
    """Descriptor listing the foreign keys a table imports."""
    return _key_descriptor(pb.CommandGetImportedKeys, table, catalog, db_schema)


# ---------------------------------------------------------------------------
# Prepared statement actions
# ---------------------------------------------------------------------------


def create_prepared_statement_action(query: str, *, transaction_id: bytes | None = None) -> Any:
    """``CreatePreparedStatement`` action for *query*."""
    request = pb.ActionCreatePreparedStatementRequest(query=query)
    if transaction_id is not None:
        request.transaction_id = transaction_id
    return pb.Action(type=ACTION_CREATE_PREPARED_STATEMENT, body=pack_command(request))


def close_prepared_statement_action(handle: bytes) -> Any:
    """``ClosePreparedStatement`` action for *handle*."""
    request = pb.ActionClosePreparedStatementRequest(prepared_statement_handle=handle)
    return pb.Action(type=ACTION_CLOSE_PREPARED_STATEMENT, body=pack_command(request))


_RESULT_TYPE_URL: Final = f"{TYPE_URL_PREFIX}/{pb.FLIGHT_SQL_PACKAGE}.ActionCreatePreparedStatementResult"


def unpack_prepared_statement_result(body: bytes) -> Any | None:
    """Decode an ``Any``-packed ``ActionCreatePreparedStatementResult``.

    Returns:
        The result message, or ``None`` when *body* is not such an envelope
        (the body is then the handle itself).

    """
    envelope = any_pb2.Any()
    try:
        envelope.ParseFromString(body)
    except message.DecodeError:
        return None
    if envelope.type_url != _RESULT_TYPE_URL:
        return None
    result = pb.ActionCreatePreparedStatementResult()
    result.ParseFromString(envelope.value)
    return result
