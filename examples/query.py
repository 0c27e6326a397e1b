"""Browse a Flight SQL server's metadata and run a query.

Connects to the server named by ``FLIGHT_URI`` (default
``grpc://localhost:31337``), lists its catalogs and tables, then runs
``FLIGHT_QUERY`` (default ``SELECT 1``) both directly and as a prepared
statement.  Set ``FLIGHT_TOKEN`` to authenticate with a bearer token.

Run::

    FLIGHT_URI=grpc://localhost:31337 python examples/query.py
"""

from __future__ import annotations

import asyncio
import logging
import os

from flightsql_client import FlightError, FlightSqlClient, SessionConfig
from flightsql_client.logging_utils import FlightJsonFormatter


async def run(uri: str, query: str, token: str | None = None) -> None:
    """Print catalogs, tables, and the result of *query*."""
    config = SessionConfig.from_uri(uri, token=token)
    async with FlightSqlClient(config) as client:
        # 1. Metadata: empty results are normal for servers without catalogs.
        catalogs = await client.get_catalogs()
        print(f"Catalogs: {catalogs or '(none)'}")
        for table in await client.get_tables(table_types=["TABLE", "VIEW"]):
            print(f"  {table.db_schema_name}.{table.table_name} [{table.table_type}]")

        # 2. Ad-hoc query.
        result = await client.execute(query)
        print(f"Rows: {result.num_rows}, schema: {result.schema.names}")

        # 3. Same query through a prepared statement.
        prepared = await client.prepare(query)
        try:
            again = await client.execute_prepared(prepared)
            print(f"Prepared rows: {again.num_rows}")
        finally:
            await client.close_prepared(prepared)


def main() -> None:
    """Run the example with JSON logs on stderr; exit with status 1 on a Flight error."""
    handler = logging.StreamHandler()
    handler.setFormatter(FlightJsonFormatter())
    logging.getLogger("flightsql_client").addHandler(handler)
    logging.getLogger("flightsql_client").setLevel(logging.INFO)
    try:
        asyncio.run(
            run(
                os.environ.get("FLIGHT_URI", "grpc://localhost:31337"),
                os.environ.get("FLIGHT_QUERY", "SELECT 1"),
                os.environ.get("FLIGHT_TOKEN"),
            )
        )
    except FlightError:
        logging.getLogger("flightsql_client.examples").exception("Query example failed")
        raise SystemExit(1) from None


if __name__ == "__main__":
    main()
