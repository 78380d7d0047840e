"""
Request and caller types for the CRUD adapter.

Requests arrive from the surrounding framework either as ``CrudRequest``
instances or as plain mappings using the wire names of the resource-request
protocol (``_id``, ``findOne``, ``includeCount``, ...), which
``CrudRequest.from_dict`` translates.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Union

from ..constants import SYSTEM_ADMIN_ID, SYSTEM_ADMIN_NAME

# Protocol wire names -> attribute names
_REQUEST_ALIASES: Dict[str, str] = {
    "_id": "id",
    "findOne": "find_one",
    "allStatuses": "all_statuses",
    "includeCount": "include_count",
    "startsWith": "starts_with",
}


@dataclass
class Caller:
    """The user (or system) on whose behalf a request runs."""

    id: Any = None
    name: Optional[str] = None
    type: Optional[str] = None
    role: Optional[str] = None
    on_behalf_of: Optional["Caller"] = None
    company_id: Any = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["Caller"]:
        if data is None:
            return None
        if isinstance(data, Caller):
            return data
        on_behalf_of = data.get("onBehalfOf", data.get("on_behalf_of"))
        user = data.get("user") or {}
        return cls(
            id=data.get("_id", data.get("id")),
            name=data.get("name"),
            type=data.get("type"),
            role=data.get("role"),
            on_behalf_of=cls.from_dict(on_behalf_of) if on_behalf_of else None,
            company_id=data.get("company_id", user.get("companyId")),
        )


SYSTEM_ADMIN = Caller(id=SYSTEM_ADMIN_ID, name=SYSTEM_ADMIN_NAME, type="user", role="admin")
"""Caller used for system maintenance; its updates only stamp ``sysadminDate``."""


@dataclass
class CrudRequest:
    """
    A generic resource request.

    Attributes:
        where: Query filter
        data: Document(s) for create/update/bulk insert, or search results
            for hydrate
        select: Fields to return (list, space separated string or projection)
        sort: Sort specification (mapping or list of (field, direction))
        skip: Documents to skip
        limit: Maximum documents to return
        find_one: Return a single document instead of a list
        all_statuses: Do not restrict find() to active statuses
        include_count: Stamp each result with the total count and its index
        multi: Update/remove every matching document
        upsert: Insert when an update matches nothing
        noaudit: Do not touch audit fields
        id: Target document id
        caller: Who is making the request
        starts_with: First-letter filter on ``name``
        query: Alias of ``starts_with`` used by search front ends
        name: Exact name filter; disables ``starts_with``
    """

    where: Optional[Dict[str, Any]] = None
    data: Any = None
    select: Union[List[str], str, Dict[str, Any], None] = None
    sort: Any = None
    skip: Union[int, str, None] = 0
    limit: Union[int, str, None] = None
    find_one: bool = False
    all_statuses: bool = False
    include_count: Union[bool, str] = False
    multi: bool = False
    upsert: bool = False
    noaudit: bool = False
    id: Any = None
    caller: Optional[Caller] = None
    starts_with: Optional[str] = None
    query: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Union["CrudRequest", Mapping[str, Any]]) -> "CrudRequest":
        """Build a request from a mapping; unknown keys are ignored."""
        if isinstance(data, CrudRequest):
            return data
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _REQUEST_ALIASES.get(key, key)
            if attr in known:
                values[attr] = value
        if "caller" in values:
            values["caller"] = Caller.from_dict(values["caller"])
        return cls(**values)

    @property
    def wants_count(self) -> bool:
        return str(self.include_count).lower() == "true"
