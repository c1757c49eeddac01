"""Query options for collection lookups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Page size used when every element of a collection is wanted.
MAX_ELEMENTS_PER_PAGE = 9007199254740991


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SortOptions:
    field: str = "dc.title"
    direction: SortDirection = SortDirection.ASC

    def to_param(self) -> str:
        return f"{self.field},{self.direction.value}"


@dataclass(frozen=True)
class FindListOptions:
    """Pagination, sort and filter options for a collection request.

    Attributes:
        elements_per_page: Page size (None leaves it to the server)
        current_page: One-based page number
        sort: Optional sort specification
        filters: Additional query parameters, field name to value
    """

    elements_per_page: int | None = None
    current_page: int = 1
    sort: SortOptions | None = None
    filters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.elements_per_page is not None and self.elements_per_page < 1:
            raise ValueError("elements_per_page must be >= 1")
        if self.current_page < 1:
            raise ValueError("current_page must be >= 1")

    def to_query(self) -> dict[str, str]:
        """Build REST query parameters. The REST page index is zero-based."""
        query: dict[str, str] = {}
        if self.current_page > 1 or self.elements_per_page is not None:
            query["page"] = str(self.current_page - 1)
        if self.elements_per_page is not None:
            query["size"] = str(self.elements_per_page)
        if self.sort is not None:
            query["sort"] = self.sort.to_param()
        for name, value in self.filters.items():
            if value is not None:
                query[name] = str(value)
        return query
