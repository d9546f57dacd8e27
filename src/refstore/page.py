"""Page model for paginated listings.

Loaders may return a :class:`Page` directly or a plain mapping. Mappings are
accepted with camelCase keys (``totalPages``) as well as snake_case ones
(``total_pages``), via ``alias_generator=to_camel`` and ``populate_by_name``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from refstore.exceptions import PageFormatError

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One chunk of a paginated listing plus pagination metadata.

    Parameters
    ----------
    content : list
        Items of this page, in listing order.
    page : int
        Zero-based page index.
    total_pages : int
        Number of pages the listing holds.
    total_size : int
        Number of items the listing holds.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    content: list[T] = Field(default_factory=list)
    page: int = Field(default=0, ge=0)
    total_pages: int = 0
    total_size: int = 0

    def with_content(self, content: list[T]) -> Page[T]:
        """Copy of this page holding *content* instead."""
        return self.model_copy(update={"content": list(content)})


def coerce_page(value: Any) -> Page:
    """Turn a loader result into a :class:`Page`."""
    if isinstance(value, Page):
        return value
    if not isinstance(value, Mapping):
        raise PageFormatError(f"Page loader returned {type(value).__name__}, expected a page mapping")
    try:
        return Page.model_validate(dict(value))
    except ValidationError as exc:
        raise PageFormatError(f"Page loader returned an invalid page: {exc}") from exc


def concat_pages(current: Page | None, incoming: Page) -> Page:
    """Accumulate *incoming* after *current*.

    Metadata comes from *incoming*, content is the concatenation. No
    de-duplication is performed across pages.
    """
    if current is None:
        return incoming
    return incoming.with_content([*current.content, *incoming.content])
