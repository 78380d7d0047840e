"""
Query shape canonicalization.

A query shape is the set of field names a filter references plus its sort
specification, for one resource. Values never matter: ``{"status": "x"}`` and
``{"status": "y"}`` are the same shape.

Two keys are derived from a shape:

- ``ordered_key`` keeps the field order the caller supplied, so distinct
  usage patterns stay distinct.
- ``sorted_key`` sorts field names alphabetically, so requests that need the
  same underlying index collapse together.

This module is part of MDB_ADAPTER - MongoDB CRUD adapter.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..constants import ID_FIELD

SortSpec = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


@dataclass(frozen=True)
class QueryShape:
    """Field names of a filter and the sort spec, for one resource."""

    name: str
    fields: Tuple[str, ...] = ()
    sort_fields: Tuple[Tuple[str, Any], ...] = ()

    @property
    def sorted_field_names(self) -> Tuple[str, ...]:
        return tuple(sorted(self.fields))


@dataclass(frozen=True)
class CanonicalShape:
    """A shape together with both of its serialized keys."""

    shape: QueryShape
    ordered_key: str
    sorted_key: str
    ordered_shape: Dict[str, Any]
    sorted_shape: Dict[str, Any]


def normalize_sort(sort: Optional[SortSpec]) -> Dict[str, Any]:
    """
    Normalize a sort spec to an insertion-ordered mapping.

    Accepts a mapping or pymongo's list of ``(field, direction)`` tuples.
    """
    if not sort:
        return {}
    if isinstance(sort, Mapping):
        return dict(sort)
    return {field: direction for field, direction in sort}


def is_identifier_lookup(where: Optional[Mapping[str, Any]]) -> bool:
    """
    True when the filter targets documents by primary identifier.

    Identifier lookups are always served by the ``_id`` index, so they are
    never recorded.
    """
    if not where:
        return False
    return bool(where.get(ID_FIELD))


def serialize_shape(shape: Mapping[str, Any]) -> str:
    """Compact, deterministic string form of a projection triple."""
    return json.dumps(shape, separators=(",", ":"), default=str)


def canonicalize(
    name: str,
    where: Optional[Mapping[str, Any]] = None,
    sort: Optional[SortSpec] = None,
) -> CanonicalShape:
    """
    Derive the query shape and both canonical keys for a query.

    Args:
        name: Resource (collection) name
        where: Query filter; only its keys are used
        sort: Sort specification; keys and directions are used

    Returns:
        CanonicalShape with the ordered and alphabetically sorted keys
    """
    where = where or {}
    sort_map = normalize_sort(sort)

    where_names: List[str] = list(where.keys())
    where_projection = {key: 1 for key in where_names}
    where_sorted = {key: 1 for key in sorted(where_names)}

    sort_projection = dict(sort_map)
    sort_sorted = {key: sort_map[key] for key in sorted(sort_map)}

    # Key order of the triple is fixed so equal shapes serialize identically
    ordered_shape = {"name": name, "where": where_projection, "sort": sort_projection}
    sorted_shape = {"name": name, "where": where_sorted, "sort": sort_sorted}

    return CanonicalShape(
        shape=QueryShape(
            name=name,
            fields=tuple(where_names),
            sort_fields=tuple(sort_map.items()),
        ),
        ordered_key=serialize_shape(ordered_shape),
        sorted_key=serialize_shape(sorted_shape),
        ordered_shape=ordered_shape,
        sorted_shape=sorted_shape,
    )
