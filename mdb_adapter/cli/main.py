"""
Entry point for the ``mdb-adapter`` command.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import logging

import click

from .. import __version__
from .commands.shapes import shapes


@click.group()
@click.version_option(__version__, prog_name="mdb-adapter")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """MDB_ADAPTER operator tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(shapes)


if __name__ == "__main__":
    cli()
