# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for Flight SQL command encoding."""

from __future__ import annotations

import pyarrow as pa
import pytest
from google.protobuf import any_pb2

from flightsql_client.flight import ProtocolError
from flightsql_client.flight import _proto as pb
from flightsql_client.sql import (
    ACTION_CLOSE_PREPARED_STATEMENT,
    ACTION_CREATE_PREPARED_STATEMENT,
    COMMAND_TYPE_URLS,
    CommandKind,
    catalogs_descriptor,
    close_prepared_statement_action,
    create_prepared_statement_action,
    db_schemas_descriptor,
    imported_keys_descriptor,
    pack_command,
    prepared_statement_query_descriptor,
    primary_keys_descriptor,
    statement_query_descriptor,
    table_types_descriptor,
    tables_descriptor,
    unpack_prepared_statement_result,
)


def _envelope(data: bytes) -> any_pb2.Any:
    envelope = any_pb2.Any()
    envelope.ParseFromString(data)
    return envelope


class TestCommandKind:
    """The command catalog."""

    def test_ten_kinds(self) -> None:
        """Every command and action request has a kind."""
        assert len(CommandKind) == 10

    def test_type_urls_distinct(self) -> None:
        """Type URLs are unique and namespaced."""
        urls = [kind.type_url for kind in CommandKind]
        assert len(set(urls)) == len(urls)
        assert all(url.startswith("type.googleapis.com/arrow.flight.protocol.sql.") for url in urls)
        assert frozenset(urls) == COMMAND_TYPE_URLS

    def test_from_type_url(self) -> None:
        """Lookup by type URL round-trips."""
        for kind in CommandKind:
            assert CommandKind.from_type_url(kind.type_url) is kind

    def test_unknown_type_url(self) -> None:
        """Unknown URLs are protocol errors."""
        with pytest.raises(ProtocolError, match="Unknown"):
            CommandKind.from_type_url("type.googleapis.com/arrow.flight.protocol.sql.CommandGetSqlInfo")


class TestPackCommand:
    """Any envelope encoding."""

    def test_envelope(self) -> None:
        """The payload is the serialized command under its type URL."""
        command = pb.CommandStatementQuery(query="SELECT 1")
        envelope = _envelope(pack_command(command))
        assert envelope.type_url == CommandKind.STATEMENT_QUERY.type_url
        assert envelope.value == command.SerializeToString()

    def test_rejects_non_command(self) -> None:
        """Only catalog commands may be packed."""
        with pytest.raises(ProtocolError):
            pack_command(pb.Ticket(ticket=b"x"))


class TestDescriptors:
    """Descriptor builders wrap the right command kind."""

    @pytest.mark.parametrize(
        ("descriptor", "kind"),
        [
            (statement_query_descriptor("SELECT 1"), CommandKind.STATEMENT_QUERY),
            (prepared_statement_query_descriptor(b"h"), CommandKind.PREPARED_STATEMENT_QUERY),
            (catalogs_descriptor(), CommandKind.GET_CATALOGS),
            (db_schemas_descriptor(), CommandKind.GET_DB_SCHEMAS),
            (tables_descriptor(), CommandKind.GET_TABLES),
            (table_types_descriptor(), CommandKind.GET_TABLE_TYPES),
            (primary_keys_descriptor("t"), CommandKind.GET_PRIMARY_KEYS),
            (imported_keys_descriptor("t"), CommandKind.GET_IMPORTED_KEYS),
        ],
    )
    def test_kind(self, descriptor: object, kind: CommandKind) -> None:
        """Each descriptor is a CMD descriptor carrying its kind."""
        assert descriptor.type == pb.DESCRIPTOR_CMD  # type: ignore[attr-defined]
        assert _envelope(descriptor.cmd).type_url == kind.type_url  # type: ignore[attr-defined]

    def test_tables_include_schema(self) -> None:
        """include_schema is forwarded."""
        descriptor = tables_descriptor(include_schema=True)
        command = pb.CommandGetTables.FromString(_envelope(descriptor.cmd).value)
        assert command.include_schema is True

    def test_key_filters(self) -> None:
        """Catalog and schema scope key lookups only when given."""
        descriptor = imported_keys_descriptor("trips", catalog="main")
        command = pb.CommandGetImportedKeys.FromString(_envelope(descriptor.cmd).value)
        assert command.table == "trips"
        assert command.catalog == "main"
        assert not command.HasField("db_schema")


class TestActions:
    """Prepared statement actions."""

    def test_create(self) -> None:
        """CreatePreparedStatement carries the packed request."""
        action = create_prepared_statement_action("SELECT ?", transaction_id=b"tx")
        assert action.type == ACTION_CREATE_PREPARED_STATEMENT
        envelope = _envelope(action.body)
        assert envelope.type_url == CommandKind.CREATE_PREPARED_STATEMENT.type_url
        request = pb.ActionCreatePreparedStatementRequest.FromString(envelope.value)
        assert (request.query, request.transaction_id) == ("SELECT ?", b"tx")

    def test_close(self) -> None:
        """ClosePreparedStatement carries the handle."""
        action = close_prepared_statement_action(b"h")
        assert action.type == ACTION_CLOSE_PREPARED_STATEMENT
        envelope = _envelope(action.body)
        assert envelope.type_url == CommandKind.CLOSE_PREPARED_STATEMENT.type_url


class TestUnpackPreparedResult:
    """unpack_prepared_statement_result."""

    def test_packed(self) -> None:
        """A packed result is decoded."""
        schema = pa.schema([pa.field("p", pa.string())])
        result = pb.ActionCreatePreparedStatementResult(
            prepared_statement_handle=b"h", parameter_schema=schema.serialize().to_pybytes()
        )
        envelope = any_pb2.Any()
        envelope.Pack(result, type_url_prefix="type.googleapis.com")
        unpacked = unpack_prepared_statement_result(envelope.SerializeToString())
        assert unpacked is not None
        assert unpacked.prepared_statement_handle == b"h"
        assert unpacked.parameter_schema == result.parameter_schema

    def test_other_envelope(self) -> None:
        """An Any of another type is not a result."""
        assert unpack_prepared_statement_result(pack_command(pb.CommandGetCatalogs())) is None

    def test_raw_bytes(self) -> None:
        """Bytes that are not an Any at all are not a result."""
        assert unpack_prepared_statement_result(b"\xff\xff\xff") is None

    def test_empty(self) -> None:
        """An empty body is not a result."""
        assert unpack_prepared_statement_result(b"") is None
