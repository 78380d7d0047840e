"""
CRUD adapter.

``MongoAdapter`` maps the generic resource-request protocol onto motor calls
for one resource: audit metadata on writes, soft deletion, active-status
filtering, pagination with optional counts, and query shape recording on
reads.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import asyncio
import functools
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument

from ..constants import (ACTIVE_STATUSES, CREATE_DATE_FIELD, ID_FIELD,
                         LEGACY_ID_FIELD, LEGACY_ID_MAX_LENGTH,
                         MODIFY_AUDIT_FIELDS, MODIFY_DATE_FIELD, STATUS_CREATED,
                         STATUS_DELETED, STATUS_FIELD, VERSION_FIELD)
from ..exceptions import AuditError, MissingConditionsError, MongoAdapterError
from ..observability import get_logger as get_contextual_logger
from ..observability import log_operation, operation_context, timed_operation
from ..query_shapes import QueryShapeTracker, normalize_sort
from ..resources import ResourceDescriptor, ResourceModel, ResourceRegistry
from ..utils.mongo import to_object_id
from .types import SYSTEM_ADMIN, Caller, CrudRequest

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

RequestLike = Union[CrudRequest, Mapping[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _projection(select: Any) -> Optional[Dict[str, Any]]:
    """Convert a select spec (list, space separated string, mapping) to a projection."""
    if not select:
        return None
    if isinstance(select, Mapping):
        return dict(select)
    if isinstance(select, str):
        select = select.split()
    projection: Dict[str, Any] = {}
    for field in select:
        if field.startswith("-"):
            projection[field[1:]] = 0
        else:
            projection[field] = 1
    return projection


def _sort_list(sort: Any) -> Optional[List[tuple]]:
    normalized = normalize_sort(sort)
    return list(normalized.items()) or None


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _parse_count(value: Any) -> int:
    """
    Leading integer of ``value`` ("10", 10.5, "10abc" -> 10), clamped at 0.

    Anything without a leading integer is 0, which means no limit / no skip.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def _resource_operation(operation: str) -> Callable:
    """Time an adapter call and run it inside the resource's logging context."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self: "MongoAdapter", *args: Any, **kwargs: Any) -> Any:
            with operation_context(self.name, operation):
                return await func(self, *args, **kwargs)

        return timed_operation(operation)(wrapper)

    return decorator


class MongoAdapter:
    """
    CRUD operations for one resource.

    Example:
        adapter = engine.adapter({"name": "posts", "fields": {...}})
        post = await adapter.create({"data": {"title": "Hi"}, "caller": caller})
        posts = await adapter.find({"where": {"title": "Hi"}, "limit": 10})
    """

    def __init__(
        self,
        resource: Union[Mapping[str, Any], ResourceDescriptor],
        registry: ResourceRegistry,
        tracker: Optional[QueryShapeTracker] = None,
        admin: Caller = SYSTEM_ADMIN,
    ) -> None:
        self.model: ResourceModel = registry.get_model(resource)
        self.resource: ResourceDescriptor = self.model.descriptor
        self.admin = admin
        self._tracker = tracker

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self.model.collection

    @property
    def name(self) -> str:
        return self.resource.name

    def _record_query_shape(self, where: Mapping[str, Any], sort: Any) -> None:
        """Query shape analytics must never fail the read that triggered them."""
        if self._tracker is None:
            return
        try:
            self._tracker.record(self.name, where, sort)
        except (MongoAdapterError, TypeError, ValueError) as e:
            contextual_logger.warning(f"Failed to record query shape: {e}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @_resource_operation("adapter.count")
    async def count(self, req: RequestLike) -> int:
        """Count documents matching ``where``."""
        req = CrudRequest.from_dict(req)
        return await self.collection.count_documents(req.where or {})

    @_resource_operation("adapter.find")
    async def find(self, req: RequestLike) -> Any:
        """
        Query the resource.

        Returns:
            A list of documents, or a single document (or None) when
            ``find_one`` is set
        """
        req = CrudRequest.from_dict(req)
        where = dict(req.where or {})
        projection = _projection(req.select)
        skip = _parse_count(req.skip)
        limit = _parse_count(req.limit)
        sort = _sort_list(req.sort)

        # Without an explicit status only active documents are returned
        if (
            not req.find_one
            and not req.all_statuses
            and self.resource.has_status
            and not where.get(STATUS_FIELD)
        ):
            where[STATUS_FIELD] = {"$in": list(ACTIVE_STATUSES)}

        self._record_query_shape(where, req.sort)
        logger.debug(
            f"[{self.name}] find where={where} skip={skip} limit={limit} sort={sort} "
            f"find_one={req.find_one}"
        )

        if req.find_one:
            query = self.collection.find_one(where, projection=projection, skip=skip, sort=sort)
        else:
            query = self.collection.find(
                where, projection=projection, skip=skip, limit=limit, sort=sort
            ).to_list(length=None)

        if not req.wants_count:
            return await query

        data, total = await asyncio.gather(
            query, self.collection.count_documents(where)
        )
        if isinstance(data, list):
            for i, doc in enumerate(data):
                doc["idx"] = i + skip
                doc["count"] = total
        return data

    @_resource_operation("adapter.find_by_id")
    async def find_by_id(self, req: RequestLike) -> Optional[Dict[str, Any]]:
        """
        Find one document by id.

        Short numeric ids are legacy identifiers and are looked up by
        ``legacyId``; anything else is an ObjectId.
        """
        req = CrudRequest.from_dict(req)
        id_str = str(req.id)
        if len(id_str) < LEGACY_ID_MAX_LENGTH and id_str.isdigit():
            where = {LEGACY_ID_FIELD: int(id_str)}
        else:
            where = {ID_FIELD: to_object_id(req.id)}
        return await self.find(CrudRequest(where=where, find_one=True, select=req.select))

    @_resource_operation("adapter.hydrate")
    async def hydrate(self, req: RequestLike) -> List[Dict[str, Any]]:
        """
        Load full documents for search results, keeping the search order.

        ``req.data`` is ``{"results": [{"_id": ...}, ...], "count": n}``.
        Results whose document no longer exists are dropped; the rest are
        stamped with ``count`` and their position ``idx``.
        """
        req = CrudRequest.from_dict(req)
        data = req.data or {}
        skip = _parse_count(req.skip)
        count = data.get("count") or 0
        doc_ids = [str(doc[ID_FIELD]) for doc in data.get("results") or []]

        if not doc_ids:
            return []

        hydrated = await self.find(
            CrudRequest(
                where={ID_FIELD: {"$in": [to_object_id(doc_id) for doc_id in doc_ids]}},
                select=req.select,
            )
        )
        lookup = {str(doc[ID_FIELD]): doc for doc in hydrated or []}

        docs = []
        for doc_id in doc_ids:
            doc = lookup.get(doc_id)
            if doc is None:
                continue
            doc["count"] = count
            doc["idx"] = len(docs) + skip
            docs.append(doc)
        return docs

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @_resource_operation("adapter.create")
    async def create(self, req: RequestLike) -> Dict[str, Any]:
        """Insert a new document and return it as stored."""
        req = CrudRequest.from_dict(req)
        self.set_created_by(req)
        self.set_modified_by(req)

        document = self.model.prepare_document(req.data or {})
        document[VERSION_FIELD] = 0
        result = await self.collection.insert_one(document)
        document[ID_FIELD] = result.inserted_id
        logger.debug(f"[{self.name}] Created document {result.inserted_id}")
        return document

    @_resource_operation("adapter.bulk_insert")
    async def bulk_insert(self, req: RequestLike) -> List[Any]:
        """Insert several documents; returns their ids."""
        req = CrudRequest.from_dict(req)
        documents = []
        for doc in req.data or []:
            document = self.model.prepare_document(doc)
            document[VERSION_FIELD] = 0
            documents.append(document)

        if not documents:
            return []

        result = await self.collection.insert_many(documents)
        logger.debug(f"[{self.name}] Bulk inserted {len(result.inserted_ids)} documents")
        return list(result.inserted_ids)

    async def _apply_update(
        self, req: CrudRequest, where: Dict[str, Any], update: Dict[str, Any]
    ) -> Any:
        if req.multi:
            result = await self.collection.update_many(where, update, upsert=req.upsert)
            return {
                "matched": result.matched_count,
                "modified": result.modified_count,
                "upserted_id": result.upserted_id,
            }
        return await self.collection.find_one_and_update(
            where,
            update,
            projection=_projection(req.select),
            upsert=req.upsert,
            sort=_sort_list(req.sort),
            return_document=ReturnDocument.AFTER,
        )

    @_resource_operation("adapter.update")
    async def update(self, req: RequestLike) -> Any:
        """
        Update one document (or all matches with ``multi``).

        Plain fields in ``data`` are set; update operators pass through.
        The version counter is always incremented.

        Returns:
            The updated document, or ``{matched, modified, upserted_id}``
            for multi updates
        """
        req = CrudRequest.from_dict(req)
        if not req.noaudit:
            self.set_modified_by(req)

        if req.id:
            req.where = {ID_FIELD: to_object_id(req.id)}

        data = dict(req.data or {})
        where = req.where or {}

        data.pop(VERSION_FIELD, None)
        update: Dict[str, Any] = {k: v for k, v in data.items() if k.startswith("$")}
        plain = {k: v for k, v in data.items() if not k.startswith("$")}
        if plain:
            update["$set"] = {**update.get("$set", {}), **plain}
        update["$inc"] = {**update.get("$inc", {}), VERSION_FIELD: 1}

        logger.debug(f"[{self.name}] update where={where} multi={req.multi}")
        return await self._apply_update(req, where, update)

    @_resource_operation("adapter.remove")
    async def remove(self, req: RequestLike) -> Any:
        """
        Soft delete: mark matching document(s) as deleted.

        Use remove_permanently() to actually delete.

        Raises:
            MissingConditionsError: If neither ``where`` nor an id is given
        """
        req = CrudRequest.from_dict(req)
        doc_id = req.id or (req.data or {}).get(ID_FIELD)
        self.set_modified_by(req)

        if not req.where and doc_id:
            req.where = {ID_FIELD: to_object_id(doc_id)}
        if not req.where:
            raise MissingConditionsError(
                "No conditions passed into remove", context={"resource": self.name}
            )

        # Only the deletion marker and the modify stamps are written
        data = req.data or {}
        changes = {k: data[k] for k in MODIFY_AUDIT_FIELDS if k in data}
        changes[STATUS_FIELD] = STATUS_DELETED
        return await self._apply_update(req, req.where, {"$set": changes})

    @_resource_operation("adapter.remove_permanently")
    async def remove_permanently(self, req: RequestLike) -> Any:
        """
        Permanently delete one document (or all matches with ``multi``).

        Returns:
            The removed document, or the number removed for multi deletes

        Raises:
            MissingConditionsError: If neither ``where`` nor an id is given
        """
        req = CrudRequest.from_dict(req)
        doc_id = req.id or (req.data or {}).get(ID_FIELD)
        if not req.where and doc_id:
            req.where = {ID_FIELD: to_object_id(doc_id)}
        if not req.where:
            raise MissingConditionsError(
                "No conditions passed into removePermanently", context={"resource": self.name}
            )

        log_operation(logger, "adapter.remove_permanently", multi=req.multi)
        if req.multi:
            result = await self.collection.delete_many(req.where)
            return result.deleted_count
        return await self.collection.find_one_and_delete(req.where)

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def check_starts_with_param(self, req: CrudRequest) -> None:
        """
        Translate ``starts_with`` (or ``query``) into a first-letter filter on ``name``.

        Only the first character counts. Letters match either case; any
        other value (or the literal "Other") matches names that do not
        start with a letter. Both params are always consumed.
        """
        req.where = req.where or {}
        starts_with = req.starts_with or req.query
        req.starts_with = None
        req.query = None

        if not starts_with or req.name:
            return

        if re.match(r"^[A-Za-z]", starts_with) and starts_with != "Other":
            upper, lower = starts_with[0].upper(), starts_with[0].lower()
            req.where["name"] = {"$regex": f"^({upper}|{lower})"}
        else:
            req.where["name"] = {"$regex": "^[^A-Za-z]"}

    def set_created_by(self, req: CrudRequest) -> None:
        """
        Stamp creation audit fields on ``req.data``.

        Raises:
            AuditError: If there is no caller, or ``noaudit`` is set without
                the creator fields already supplied
        """
        if not self.resource.supports_create_audit:
            return

        caller = req.caller
        if not caller:
            raise AuditError("No caller found for setCreatedBy")

        data = req.data if req.data is not None else {}
        data[STATUS_FIELD] = data.get(STATUS_FIELD) or STATUS_CREATED
        if not data.get(CREATE_DATE_FIELD):
            data[CREATE_DATE_FIELD] = _utcnow()

        if req.noaudit:
            if not (data.get("createUserId") and data.get("createUsername")):
                raise AuditError(
                    "If you use the noaudit parameter on create, you must supply "
                    "createUsername and other data"
                )
        elif caller.on_behalf_of:
            data["createUserId"] = caller.on_behalf_of.id
            data["createUsername"] = caller.on_behalf_of.name or ""
        else:
            data["createUserId"] = caller.id
            data["createUsername"] = caller.name or ""
            if caller.company_id:
                data["createUserCompanyId"] = caller.company_id

        req.data = data

    def set_modified_by(self, req: CrudRequest) -> None:
        """
        Stamp modification audit fields on ``req.data``.

        The system admin only leaves a ``sysadminDate`` so maintenance jobs
        don't look like user edits. Values already present in the data win.

        Raises:
            AuditError: If there is no caller
        """
        if not self.resource.supports_modify_audit:
            return

        caller = req.caller
        if not caller:
            raise AuditError("No caller found for setModifiedBy")

        data = req.data if req.data is not None else {}
        if caller.name == self.admin.name:
            data["sysadminDate"] = _utcnow()
        else:
            data[MODIFY_DATE_FIELD] = data.get(MODIFY_DATE_FIELD) or _utcnow()
            actor = caller.on_behalf_of or caller
            data["modifyUserId"] = data.get("modifyUserId") or actor.id
            data["modifyUsername"] = data.get("modifyUsername") or actor.name or ""

        req.data = data
