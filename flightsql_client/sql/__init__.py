# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flight SQL command layer.

:class:`FlightSqlClient` encodes each Flight SQL command as an ``Any``
envelope inside a ``CMD`` descriptor and drives the two-step protocol:
``GetFlightInfo`` yields a ticket, ``DoGet`` streams the rows.

Commands
--------
- **Queries**: ``CommandStatementQuery``, ``CommandPreparedStatementQuery``
- **Metadata**: ``CommandGetCatalogs``, ``CommandGetDbSchemas``,
  ``CommandGetTables``, ``CommandGetTableTypes``, ``CommandGetPrimaryKeys``,
  ``CommandGetImportedKeys``
- **Actions**: ``CreatePreparedStatement``, ``ClosePreparedStatement``
"""

from flightsql_client.sql._client import FlightSqlClient, PreparedStatement
from flightsql_client.sql._commands import (
    ACTION_CLOSE_PREPARED_STATEMENT,
    ACTION_CREATE_PREPARED_STATEMENT,
    COMMAND_TYPE_URLS,
    TYPE_URL_PREFIX,
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
from flightsql_client.sql._rows import DbSchema, ForeignKey, PrimaryKey, TableInfo, project_rows

__all__ = [
    "ACTION_CLOSE_PREPARED_STATEMENT",
    "ACTION_CREATE_PREPARED_STATEMENT",
    "COMMAND_TYPE_URLS",
    "TYPE_URL_PREFIX",
    "CommandKind",
    "DbSchema",
    "FlightSqlClient",
    "ForeignKey",
    "PreparedStatement",
    "PrimaryKey",
    "TableInfo",
    "catalogs_descriptor",
    "close_prepared_statement_action",
    "create_prepared_statement_action",
    "db_schemas_descriptor",
    "imported_keys_descriptor",
    "pack_command",
    "prepared_statement_query_descriptor",
    "primary_keys_descriptor",
    "project_rows",
    "statement_query_descriptor",
    "table_types_descriptor",
    "tables_descriptor",
    "unpack_prepared_statement_result",
]
