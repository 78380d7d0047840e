"""
Core adapter components.

This module contains the AdapterEngine, the per-resource MongoAdapter and
the connection manager.
"""

from .adapter import MongoAdapter
from .connection import CommandLogger, ConnectionManager
from .engine import AdapterEngine
from .types import SYSTEM_ADMIN, Caller, CrudRequest

__all__ = [
    # Engine
    "AdapterEngine",
    "ConnectionManager",
    "CommandLogger",
    # CRUD
    "MongoAdapter",
    "CrudRequest",
    "Caller",
    "SYSTEM_ADMIN",
]
