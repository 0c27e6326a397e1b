# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for metadata row projection."""

from __future__ import annotations

import pyarrow as pa
import pytest

from flightsql_client.flight import ProtocolError
from flightsql_client.sql import DbSchema, ForeignKey, PrimaryKey, TableInfo, project_rows


class TestProjectRows:
    """Tests for project_rows."""

    def test_by_name_not_position(self) -> None:
        """Columns are matched by name regardless of order."""
        table = pa.table({"db_schema_name": ["s1", "s2"], "catalog_name": ["c", None]})
        assert project_rows(table, DbSchema) == [DbSchema("c", "s1"), DbSchema(None, "s2")]

    def test_extra_columns_ignored(self) -> None:
        """Columns with no matching field are dropped."""
        table = pa.table(
            {
                "catalog_name": ["c"],
                "db_schema_name": ["s"],
                "table_name": ["t"],
                "table_type": ["VIEW"],
                "table_schema": [b"\x00"],
            }
        )
        assert project_rows(table, TableInfo) == [TableInfo("c", "s", "t", "VIEW")]

    def test_optional_column_absent(self) -> None:
        """Fields with defaults tolerate a missing column."""
        table = pa.table(
            {
                "catalog_name": [None],
                "db_schema_name": [None],
                "table_name": ["t"],
                "column_name": ["id"],
                "key_sequence": [1],
            }
        )
        (key,) = project_rows(table, PrimaryKey)
        assert key.key_name is None

    def test_required_column_absent(self) -> None:
        """A missing required column names the column."""
        table = pa.table({"pk_table_name": ["a"]})
        with pytest.raises(ProtocolError, match="ForeignKey.*pk_catalog_name"):
            project_rows(table, ForeignKey)

    def test_schemaless_empty(self) -> None:
        """An empty column-less table projects to no rows."""
        assert project_rows(pa.table({}), TableInfo) == []

    def test_schema_but_no_rows(self) -> None:
        """A typed but empty result projects to no rows."""
        table = pa.table({"catalog_name": pa.array([], pa.string()), "db_schema_name": pa.array([], pa.string())})
        assert project_rows(table, DbSchema) == []

    def test_rows_are_frozen(self) -> None:
        """Projected rows are immutable."""
        (row,) = project_rows(pa.table({"catalog_name": ["c"], "db_schema_name": ["s"]}), DbSchema)
        with pytest.raises(AttributeError):
            row.catalog_name = "x"  # type: ignore[misc]
