"""
Command line interface for MDB_ADAPTER.
"""

from .main import cli

__all__ = ["cli"]
