import math
from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from taskboard.schemas.base import CamelModel

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    limit: int


def pagination_params(default_limit: int):
    """Build a ``page``/``limit`` query dependency; ``limit`` is capped, never rejected."""

    def dependency(
        page: int = Query(default=1, ge=1),
        limit: Optional[int] = Query(default=None, ge=1),
    ) -> PageRequest:
        size = default_limit if limit is None else min(limit, MAX_PAGE_SIZE)
        return PageRequest(page=page, limit=size)

    return dependency


def build_pagination(page_request: PageRequest, total: int) -> Pagination:
    return Pagination(
        current_page=page_request.page,
        total_pages=math.ceil(total / page_request.limit),
        limit=page_request.limit,
    )
