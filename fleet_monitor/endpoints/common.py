"""Shared pieces of the endpoint modules: param base class and query encoding."""

from __future__ import annotations

from typing import Mapping, Optional

import httpx
from pydantic import BaseModel, ConfigDict


class QueryParams(BaseModel):
    """
    Base for endpoint parameter objects.

    Frozen so instances hash by value and can sit inside cache keys.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")


class PaginationParams(QueryParams):
    limit: Optional[int] = None
    offset: Optional[int] = None
    include: Optional[str] = None


class DetailParams(QueryParams):
    include: Optional[str] = None


def encode_query(params: Optional[QueryParams], names: Mapping[str, str]) -> str:
    """
    Encode ``params`` as a ``?``-prefixed query string.

    ``names`` maps model field names to their JSON:API bracket names
    (``"filter_route" -> "filter[route]"``). Fields set to None are omitted;
    an empty string is returned when nothing is set.
    """
    if params is None:
        return ""
    pairs = []
    for field, name in names.items():
        value = getattr(params, field, None)
        if value is None:
            continue
        pairs.append((name, str(value)))
    if not pairs:
        return ""
    return f"?{httpx.QueryParams(pairs)}"


def join_ids(ids) -> Optional[str]:
    """Comma-join an id list for a ``filter[...]`` param; None for an empty list."""
    if not ids:
        return None
    return ",".join(ids)


class ResourceKeys:
    """Cache key builders for one resource kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind

    @property
    def all(self) -> tuple:
        return (self.kind,)

    def list(self, params: Optional[QueryParams] = None) -> tuple:
        return (self.kind, "list", params)

    def get_by_id(self, resource_id: str, params: Optional[QueryParams] = None) -> tuple:
        return (self.kind, "getById", resource_id, params)

    def infinite(self, page_size: int, params: Optional[QueryParams] = None) -> tuple:
        return (self.kind, "infinite", page_size, params)
