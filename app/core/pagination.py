"""Pagination helpers shared by list endpoints.

Two families exist: page-based (``page``/``limit``, 1-indexed) used by the
browse endpoints, and offset-based (``offset``/``limit``) used by trending,
rankings and the glossary.
"""

import math
from typing import NamedTuple

from fastapi.encoders import jsonable_encoder

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PageParams(NamedTuple):
    page: int
    limit: int
    skip: int


def get_pagination_params(
    page: int | None = None,
    limit: int | None = None,
    max_limit: int = MAX_PAGE_SIZE,
) -> PageParams:
    """Clamp page/limit and compute the row offset."""
    page = max(1, page or 1)
    limit = min(max_limit, max(1, limit if limit is not None else DEFAULT_PAGE_SIZE))
    return PageParams(page=page, limit=limit, skip=(page - 1) * limit)


def page_meta(total: int, page: int, limit: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def offset_meta(total: int, limit: int, offset: int) -> dict:
    return {
        "total": total,
        "limit": limit,
        "offset": offset,
        "hasMore": offset + limit < total,
    }


def success(data=None, **extra) -> dict:
    """Wrap a payload in the success envelope."""
    body = {"success": True, "data": data}
    body.update(extra)
    return jsonable_encoder(body)


class Page:
    """A page of results with its total count."""

    def __init__(self, items: list, total: int, params: PageParams):
        self.items = items
        self.total = total
        self.params = params

    def to_response(self) -> dict:
        return success(
            self.items,
            pagination=page_meta(self.total, self.params.page, self.params.limit),
        )
