"""
Utility functions for MDB_ADAPTER.
"""

from .mongo import clean_mongo_doc, clean_mongo_docs, new_object_id, to_object_id
from .tasks import create_managed_task

__all__ = [
    "clean_mongo_doc",
    "clean_mongo_docs",
    "new_object_id",
    "to_object_id",
    "create_managed_task",
]
