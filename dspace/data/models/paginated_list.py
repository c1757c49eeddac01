"""Paginated list model for collection lookups."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PageInfo(BaseModel):
    """Page metadata. ``current_page`` is one-based."""

    elements_per_page: int = Field(0, ge=0)
    total_elements: int = Field(0, ge=0)
    total_pages: int = Field(0, ge=0)
    current_page: int = Field(1, ge=1)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_rest(cls, page: Mapping[str, Any] | None, element_count: int) -> PageInfo:
        """Parse a REST ``page`` block (zero-based ``number``).

        Without a page block the list is treated as a single complete page.
        """
        if not page:
            return cls(
                elements_per_page=element_count,
                total_elements=element_count,
                total_pages=1 if element_count else 0,
                current_page=1,
            )
        return cls(
            elements_per_page=int(page.get("size", element_count)),
            total_elements=int(page.get("totalElements", element_count)),
            total_pages=int(page.get("totalPages", 1 if element_count else 0)),
            current_page=int(page.get("number", 0)) + 1,
        )


class PaginatedList(BaseModel, Generic[T]):
    """One page of a collection, elements in server order.

    An empty ``page`` is a valid, loaded result; "not loaded yet" is
    represented by a Pending snapshot, never by an empty list.
    """

    page: list[T] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    self_href: str | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def total_elements(self) -> int:
        return self.page_info.total_elements

    @property
    def first(self) -> T | None:
        return self.page[0] if self.page else None
