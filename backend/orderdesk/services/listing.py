# Overview: Shared paging/sorting for the list endpoints.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

from ..errors import ValidationError


DEFAULT_LIMIT = 5
MAX_LIMIT = 100


@dataclass(frozen=True)
class ListParams:
    page: int
    limit: int
    sort: str
    descending: bool
    search: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _positive(value, name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if parsed < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return parsed


def parse_list_params(args: Mapping, sortable: Mapping[str, object], default_sort: str = "createdAt") -> ListParams:
    """
    Read page/limit/sort/order/search from query args.

    Defaults: page=1, limit=5, sort=createdAt, order=asc.
    """
    page = _positive(args.get("page"), "page", 1)
    limit = min(_positive(args.get("limit"), "limit", DEFAULT_LIMIT), MAX_LIMIT)

    sort = args.get("sort") or default_sort
    if sort not in sortable:
        raise ValidationError(f"Invalid sort field: {sort}")

    order = (args.get("order") or "asc").lower()
    if order not in {"asc", "desc"}:
        raise ValidationError("order must be asc or desc")

    return ListParams(
        page=page,
        limit=limit,
        sort=sort,
        descending=order == "desc",
        search=(args.get("search") or "").strip(),
    )


def apply_sort(query, params: ListParams, sortable: Mapping[str, object], tiebreak):
    column = sortable[params.sort]
    if params.descending:
        return query.order_by(column.desc(), tiebreak.desc())
    return query.order_by(column.asc(), tiebreak.asc())


def page_of(query, params: ListParams) -> tuple[list, int, int]:
    """Return (items, total, total_pages) for the requested page."""
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.limit).all()
    total_pages = math.ceil(total / params.limit) if total else 0
    return items, total, total_pages


def like_pattern(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
