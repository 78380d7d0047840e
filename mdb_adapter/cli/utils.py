"""
Utility functions for CLI commands.

This module provides shared utilities for CLI operations.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import json
from typing import Any

import click

from ..config import AdapterConfig
from ..exceptions import ConfigurationError
from ..utils.mongo import clean_mongo_docs


def load_config(uri: str | None, db: str | None) -> AdapterConfig:
    """
    Build the connection config from options and the environment.

    Options win over ``MONGO_URI`` / ``DB_NAME``.

    Raises:
        click.ClickException: If the URI or database name is missing
    """
    config = AdapterConfig.from_env(mongo_uri=uri, db_name=db)
    try:
        config.validate_required()
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e
    return config


def format_shapes_output(shapes: list[dict[str, Any]], format_type: str) -> str:
    """
    Format query shape documents for output.

    Args:
        shapes: Counter documents (or grouped results)
        format_type: Output format ('json', 'pretty')

    Returns:
        Formatted string representation
    """
    cleaned = clean_mongo_docs(shapes)
    if format_type == "json":
        return json.dumps(cleaned, indent=2, ensure_ascii=False)

    if not cleaned:
        return "No query shapes recorded."

    lines = []
    for rank, shape in enumerate(cleaned, start=1):
        key = shape.get("sortedKey") if "variants" in shape else shape.get("orderedKey")
        line = f"{rank:>3}. {shape.get('occurrenceCount', 0):>8}  {shape.get('name', '')}  {key}"
        if "variants" in shape:
            line += f"  ({shape['variants']} variant(s))"
        lines.append(line)
    return "\n".join(lines)
