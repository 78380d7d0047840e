"""
Shapes command for CLI.

Reports the most frequent persisted query shapes.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import asyncio
from typing import Any, Dict, List, Optional

import click

from ...config import AdapterConfig
from ...constants import DEFAULT_TOP_SHAPES_LIMIT, QUERY_SHAPE_COLLECTION
from ...core.connection import ConnectionManager
from ...exceptions import InitializationError
from ...query_shapes import QueryShapeStore
from ..utils import format_shapes_output, load_config


async def fetch_shapes(
    config: AdapterConfig, limit: int, resource: Optional[str], grouped: bool
) -> List[Dict[str, Any]]:
    """Read counters from the database named by ``config``."""
    connection = ConnectionManager(
        mongo_uri=config.mongo_uri,
        db_name=config.db_name,
        debug=config.debug,
        mongos=config.mongos,
        connect_timeout_ms=config.connect_timeout_ms,
    )
    await connection.initialize()
    try:
        store = QueryShapeStore(connection.mongo_db[QUERY_SHAPE_COLLECTION])
        if grouped:
            return await store.group_by_sorted_key(limit=limit, name=resource)
        return await store.top_shapes(limit=limit, name=resource)
    finally:
        await connection.shutdown()


@click.command()
@click.option("--uri", envvar="MONGO_URI", help="MongoDB connection URI")
@click.option("--db", envvar="DB_NAME", help="Database name")
@click.option(
    "--limit",
    "-n",
    type=click.IntRange(min=1),
    default=DEFAULT_TOP_SHAPES_LIMIT,
    show_default=True,
    help="Number of shapes to show",
)
@click.option("--resource", "-r", help="Only shapes of this resource")
@click.option(
    "--grouped",
    "-g",
    is_flag=True,
    help="Sum counts per sorted key (one row per index need)",
)
@click.option(
    "--format",
    "format_type",
    type=click.Choice(["pretty", "json"]),
    default="pretty",
    show_default=True,
    help="Output format",
)
def shapes(
    uri: Optional[str],
    db: Optional[str],
    limit: int,
    resource: Optional[str],
    grouped: bool,
    format_type: str,
) -> None:
    """
    Show the most frequent query shapes.

    Examples:
        mdb-adapter shapes --limit 10
        mdb-adapter shapes --resource posts --grouped
    """
    config = load_config(uri, db)
    try:
        results = asyncio.run(fetch_shapes(config, limit, resource, grouped))
    except InitializationError as e:
        raise click.ClickException(e.message) from e

    click.echo(format_shapes_output(results, format_type))
