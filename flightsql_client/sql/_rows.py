# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Typed rows for Flight SQL metadata results.

Field names equal the protocol-fixed column names, so a result table is
projected onto a row type by name.  Fields with a default are optional
columns; every other field must be present in the result schema.
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass
from dataclasses import fields as dataclass_fields
from typing import Any

import pyarrow as pa

from flightsql_client.flight import ProtocolError

__all__ = ["DbSchema", "ForeignKey", "PrimaryKey", "TableInfo", "project_rows"]


@dataclass(frozen=True)
class DbSchema:
    """One row of ``get_db_schemas``."""

    catalog_name: str | None
    db_schema_name: str


@dataclass(frozen=True)
class TableInfo:
    """One row of ``get_tables``."""

    catalog_name: str | None
    db_schema_name: str | None
    table_name: str
    table_type: str


@dataclass(frozen=True)
class PrimaryKey:
    """One column of a table's primary key."""

    catalog_name: str | None
    db_schema_name: str | None
    table_name: str
    column_name: str
    key_sequence: int
    key_name: str | None = None


@dataclass(frozen=True)
class ForeignKey:
    """One column pair of a foreign key a table imports.

    ``update_rule`` and ``delete_rule`` are the protocol's numeric referential
    action codes (0 cascade, 1 restrict, 2 set null, 3 no action,
    4 set default).
    """

    pk_catalog_name: str | None
    pk_db_schema_name: str | None
    pk_table_name: str
    pk_column_name: str
    fk_catalog_name: str | None
    fk_db_schema_name: str | None
    fk_table_name: str
    fk_column_name: str
    key_sequence: int | None = None
    fk_key_name: str | None = None
    pk_key_name: str | None = None
    update_rule: int | None = None
    delete_rule: int | None = None


def project_rows[R](table: pa.Table, row_type: type[R]) -> list[R]:
    """Map each row of *table* onto *row_type* by column name.

    Extra columns are ignored.  A table without columns and rows (an empty
    response) projects to an empty list.

    Args:
        table: Metadata result.
        row_type: Dataclass whose field names are column names.

    Returns:
        One instance per row, in table order.

    Raises:
        ProtocolError: If a required column is absent.

    """
    if table.num_columns == 0 and table.num_rows == 0:
        return []
    present = set(table.column_names)
    columns: dict[str, list[Any]] = {}
    for f in dataclass_fields(row_type):  # type: ignore[arg-type]
        if f.name in present:
            columns[f.name] = table.column(f.name).to_pylist()
        elif f.default is MISSING and f.default_factory is MISSING:
            raise ProtocolError(
                f"{row_type.__name__}: result is missing required column '{f.name}' (columns: {sorted(present)})"
            )
    return [row_type(**{name: values[i] for name, values in columns.items()}) for i in range(table.num_rows)]
