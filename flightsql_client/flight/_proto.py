# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Protobuf bindings for ``Flight.proto`` and ``FlightSql.proto``.

Message classes are built at import time from descriptor definitions via
``google.protobuf.descriptor_pb2`` and ``message_factory`` instead of a
``protoc`` code-generation step.  Only the messages (and fields) this client
sends or reads are declared; unknown fields sent by a server are preserved by
the protobuf runtime and never inspected.

The files are declared with ``proto2`` syntax so that optional scalar fields
(e.g. ``CommandGetDbSchemas.catalog``) track presence, matching the
``optional`` keyword used by the upstream ``proto3`` definitions.  Both
syntaxes share the same wire encoding.

All classes live in a private ``DescriptorPool`` so they never collide with
``*_pb2`` modules a caller may have generated for the same package names.
"""

from __future__ import annotations

from typing import Any, Final

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

__all__ = [
    "DESCRIPTOR_CMD",
    "DESCRIPTOR_PATH",
    "DESCRIPTOR_UNKNOWN",
    "FLIGHT_PACKAGE",
    "FLIGHT_SERVICE",
    "FLIGHT_SQL_PACKAGE",
    "ActionClosePreparedStatementRequest",
    "ActionCreatePreparedStatementRequest",
    "ActionCreatePreparedStatementResult",
    "Action",
    "ActionType",
    "CommandGetCatalogs",
    "CommandGetDbSchemas",
    "CommandGetImportedKeys",
    "CommandGetPrimaryKeys",
    "CommandGetTableTypes",
    "CommandGetTables",
    "CommandPreparedStatementQuery",
    "CommandStatementQuery",
    "Criteria",
    "Empty",
    "FlightData",
    "FlightDescriptor",
    "FlightEndpoint",
    "FlightInfo",
    "HandshakeRequest",
    "HandshakeResponse",
    "Location",
    "PutResult",
    "Result",
    "SchemaResult",
    "Ticket",
    "descriptor_for_command",
    "descriptor_for_path",
]

FLIGHT_PACKAGE: Final = "arrow.flight.protocol"
FLIGHT_SQL_PACKAGE: Final = "arrow.flight.protocol.sql"
FLIGHT_SERVICE: Final = f"{FLIGHT_PACKAGE}.FlightService"

_F = descriptor_pb2.FieldDescriptorProto

_BYTES = _F.TYPE_BYTES
_STRING = _F.TYPE_STRING
_INT64 = _F.TYPE_INT64
_UINT64 = _F.TYPE_UINT64
_BOOL = _F.TYPE_BOOL
_MESSAGE = _F.TYPE_MESSAGE
_ENUM = _F.TYPE_ENUM


def _field(
    name: str,
    number: int,
    field_type: int,
    *,
    repeated: bool = False,
    type_name: str | None = None,
) -> descriptor_pb2.FieldDescriptorProto:
    """Build a field descriptor (optional unless *repeated*)."""
    fd = _F(
        name=name,
        number=number,
        type=field_type,  # type: ignore[arg-type]
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name is not None:
        fd.type_name = type_name
    return fd


def _flight_file() -> descriptor_pb2.FileDescriptorProto:
    """Describe the subset of ``Flight.proto`` used by the client."""
    pkg = f".{FLIGHT_PACKAGE}"
    fp = descriptor_pb2.FileDescriptorProto(name="Flight.proto", package=FLIGHT_PACKAGE, syntax="proto2")

    for name in ("HandshakeRequest", "HandshakeResponse"):
        fp.message_type.add(
            name=name,
            field=[_field("protocol_version", 1, _UINT64), _field("payload", 2, _BYTES)],
        )
    fp.message_type.add(name="Empty")
    fp.message_type.add(
        name="ActionType",
        field=[_field("type", 1, _STRING), _field("description", 2, _STRING)],
    )
    fp.message_type.add(name="Criteria", field=[_field("expression", 1, _BYTES)])
    fp.message_type.add(name="Action", field=[_field("type", 1, _STRING), _field("body", 2, _BYTES)])
    fp.message_type.add(name="Result", field=[_field("body", 1, _BYTES)])
    fp.message_type.add(name="SchemaResult", field=[_field("schema", 1, _BYTES)])

    descriptor = fp.message_type.add(
        name="FlightDescriptor",
        field=[
            _field("type", 1, _ENUM, type_name=f"{pkg}.FlightDescriptor.DescriptorType"),
            _field("cmd", 2, _BYTES),
            _field("path", 3, _STRING, repeated=True),
        ],
    )
    descriptor.enum_type.add(
        name="DescriptorType",
        value=[
            descriptor_pb2.EnumValueDescriptorProto(name="UNKNOWN", number=0),
            descriptor_pb2.EnumValueDescriptorProto(name="PATH", number=1),
            descriptor_pb2.EnumValueDescriptorProto(name="CMD", number=2),
        ],
    )

    fp.message_type.add(
        name="FlightInfo",
        field=[
            _field("schema", 1, _BYTES),
            _field("flight_descriptor", 2, _MESSAGE, type_name=f"{pkg}.FlightDescriptor"),
            _field("endpoint", 3, _MESSAGE, repeated=True, type_name=f"{pkg}.FlightEndpoint"),
            _field("total_records", 4, _INT64),
            _field("total_bytes", 5, _INT64),
            _field("ordered", 6, _BOOL),
            _field("app_metadata", 7, _BYTES),
        ],
    )
    fp.message_type.add(
        name="FlightEndpoint",
        field=[
            _field("ticket", 1, _MESSAGE, type_name=f"{pkg}.Ticket"),
            _field("location", 2, _MESSAGE, repeated=True, type_name=f"{pkg}.Location"),
            _field("app_metadata", 4, _BYTES),
        ],
    )
    fp.message_type.add(name="Location", field=[_field("uri", 1, _STRING)])
    fp.message_type.add(name="Ticket", field=[_field("ticket", 1, _BYTES)])
    fp.message_type.add(
        name="FlightData",
        field=[
            _field("flight_descriptor", 1, _MESSAGE, type_name=f"{pkg}.FlightDescriptor"),
            _field("data_header", 2, _BYTES),
            _field("app_metadata", 3, _BYTES),
            _field("data_body", 1000, _BYTES),
        ],
    )
    fp.message_type.add(name="PutResult", field=[_field("app_metadata", 1, _BYTES)])
    return fp


def _flight_sql_file() -> descriptor_pb2.FileDescriptorProto:
    """Describe the subset of ``FlightSql.proto`` used by the client."""
    fp = descriptor_pb2.FileDescriptorProto(name="FlightSql.proto", package=FLIGHT_SQL_PACKAGE, syntax="proto2")

    fp.message_type.add(
        name="CommandStatementQuery",
        field=[_field("query", 1, _STRING), _field("transaction_id", 2, _BYTES)],
    )
    fp.message_type.add(
        name="CommandPreparedStatementQuery",
        field=[_field("prepared_statement_handle", 1, _BYTES)],
    )
    fp.message_type.add(name="CommandGetCatalogs")
    fp.message_type.add(
        name="CommandGetDbSchemas",
        field=[_field("catalog", 1, _STRING), _field("db_schema_filter_pattern", 2, _STRING)],
    )
    fp.message_type.add(
        name="CommandGetTables",
        field=[
            _field("catalog", 1, _STRING),
            _field("db_schema_filter_pattern", 2, _STRING),
            _field("table_name_filter_pattern", 3, _STRING),
            _field("table_types", 4, _STRING, repeated=True),
            _field("include_schema", 5, _BOOL),
        ],
    )
    fp.message_type.add(name="CommandGetTableTypes")
    for name in ("CommandGetPrimaryKeys", "CommandGetImportedKeys"):
        fp.message_type.add(
            name=name,
            field=[_field("catalog", 1, _STRING), _field("db_schema", 2, _STRING), _field("table", 3, _STRING)],
        )
    fp.message_type.add(
        name="ActionCreatePreparedStatementRequest",
        field=[_field("query", 1, _STRING), _field("transaction_id", 2, _BYTES)],
    )
    fp.message_type.add(
        name="ActionCreatePreparedStatementResult",
        field=[
            _field("prepared_statement_handle", 1, _BYTES),
            _field("dataset_schema", 2, _BYTES),
            _field("parameter_schema", 3, _BYTES),
        ],
    )
    fp.message_type.add(
        name="ActionClosePreparedStatementRequest",
        field=[_field("prepared_statement_handle", 1, _BYTES)],
    )
    return fp


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_flight_file().SerializeToString())
_POOL.AddSerializedFile(_flight_sql_file().SerializeToString())


def _message_class(full_name: str) -> Any:
    """Return the generated message class for a fully-qualified message name."""
    return message_factory.GetMessageClass(_POOL.FindMessageTypeByName(full_name))


# Flight.proto
HandshakeRequest: Any = _message_class(f"{FLIGHT_PACKAGE}.HandshakeRequest")
HandshakeResponse: Any = _message_class(f"{FLIGHT_PACKAGE}.HandshakeResponse")
Empty: Any = _message_class(f"{FLIGHT_PACKAGE}.Empty")
ActionType: Any = _message_class(f"{FLIGHT_PACKAGE}.ActionType")
Criteria: Any = _message_class(f"{FLIGHT_PACKAGE}.Criteria")
Action: Any = _message_class(f"{FLIGHT_PACKAGE}.Action")
Result: Any = _message_class(f"{FLIGHT_PACKAGE}.Result")
SchemaResult: Any = _message_class(f"{FLIGHT_PACKAGE}.SchemaResult")
FlightDescriptor: Any = _message_class(f"{FLIGHT_PACKAGE}.FlightDescriptor")
FlightInfo: Any = _message_class(f"{FLIGHT_PACKAGE}.FlightInfo")
FlightEndpoint: Any = _message_class(f"{FLIGHT_PACKAGE}.FlightEndpoint")
Location: Any = _message_class(f"{FLIGHT_PACKAGE}.Location")
Ticket: Any = _message_class(f"{FLIGHT_PACKAGE}.Ticket")
FlightData: Any = _message_class(f"{FLIGHT_PACKAGE}.FlightData")
PutResult: Any = _message_class(f"{FLIGHT_PACKAGE}.PutResult")

# FlightSql.proto
CommandStatementQuery: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandStatementQuery")
CommandPreparedStatementQuery: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandPreparedStatementQuery")
CommandGetCatalogs: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetCatalogs")
CommandGetDbSchemas: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetDbSchemas")
CommandGetTables: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetTables")
CommandGetTableTypes: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetTableTypes")
CommandGetPrimaryKeys: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetPrimaryKeys")
CommandGetImportedKeys: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.CommandGetImportedKeys")
ActionCreatePreparedStatementRequest: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.ActionCreatePreparedStatementRequest")
ActionCreatePreparedStatementResult: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.ActionCreatePreparedStatementResult")
ActionClosePreparedStatementRequest: Any = _message_class(f"{FLIGHT_SQL_PACKAGE}.ActionClosePreparedStatementRequest")

# FlightDescriptor.DescriptorType values
DESCRIPTOR_UNKNOWN: Final = 0
DESCRIPTOR_PATH: Final = 1
DESCRIPTOR_CMD: Final = 2


def descriptor_for_command(command: bytes) -> Any:
    """Build a ``CMD`` FlightDescriptor carrying *command* (usually a packed ``Any``)."""
    return FlightDescriptor(type=DESCRIPTOR_CMD, cmd=command)


def descriptor_for_path(*path: str) -> Any:
    """Build a ``PATH`` FlightDescriptor addressing a named dataset."""
    return FlightDescriptor(type=DESCRIPTOR_PATH, path=list(path))
