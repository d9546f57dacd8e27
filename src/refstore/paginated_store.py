"""Paginated Store: one growing listing fetched page by page.

``list`` replaces the cache with page 0, ``list_more`` appends the next
page. Each operation is guarded by an in-flight flag: a call made while the
guarded operation is running is dropped, not queued.

Every loader call is stamped with the cache generation it was issued for.
``list`` and ``clear`` start a new generation, and with ``discard_stale``
(the default) a response for an older generation is thrown away instead of
overwriting newer data.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from refstore._loader import call_loader
from refstore._referenced import PageLoaded, ReferencedList
from refstore.action import action
from refstore.computed import Computed
from refstore.entity_store import UpdateAttempt
from refstore.observable import Observable
from refstore.page import Page, coerce_page, concat_pages
from refstore.presentation import patch_page

logger = logging.getLogger("refstore.paginated_store")

T = TypeVar("T")


class PaginatedStore(ReferencedList, Generic[T]):
    """Cache for a single paginated listing.

    Parameters
    ----------
    lister : callable
        ``lister(page, *args)`` returning a page, or an awaitable of one.
    discard_stale : bool
        Drop responses superseded by a later ``list`` or ``clear``.
    """

    def __init__(
        self,
        lister: Callable[..., Page[T] | Any | Awaitable[Page[T] | Any]],
        *,
        discard_stale: bool = True,
    ) -> None:
        super().__init__()
        self._list = lister
        self._discard_stale = discard_stale
        self._page: Observable[Page[T] | None] = Observable(None)
        self._generation = 0
        self.fetching = Observable(False)
        self.fetching_more = Observable(False)
        self._view = Computed(lambda: self._overlay(self._page.get()))

    @property
    def items(self) -> Computed[Page[T] | None]:
        """Cached listing, overlaid with the reference store when attached."""
        return self._view

    @property
    def paginated_items(self) -> Computed[Page[T] | None]:
        return self._view

    async def list(self, *args: Any) -> None:
        """Load page 0 and replace the cache with it."""
        if self.fetching.get():
            logger.debug("list() already in flight, dropping call")
            return
        self._generation += 1
        generation = self._generation
        self.fetching.set(True)
        try:
            logger.debug("Listing page 0")
            page = coerce_page(await call_loader(self._list, 0, *args))
            self._accept(generation, page, accumulate=False)
        finally:
            self.fetching.set(False)

    async def list_more(self, *args: Any) -> None:
        """Load the page after the cached one and append its content.

        Falls back to ``list`` when nothing is cached yet.
        """
        if self.fetching.get() or self.fetching_more.get():
            logger.debug("list_more() while listing, dropping call")
            return
        current = self._page.get()
        if current is None:
            return await self.list(*args)
        generation = self._generation
        self.fetching_more.set(True)
        try:
            logger.debug("Listing page %d", current.page + 1)
            page = coerce_page(await call_loader(self._list, current.page + 1, *args))
            self._accept(generation, page, accumulate=True)
        finally:
            self.fetching_more.set(False)

    @action
    def _accept(self, generation: int, page: Page[T], *, accumulate: bool) -> None:
        if self._discard_stale and generation != self._generation:
            logger.debug("Discarding stale response for page %d", page.page)
            return
        cached = concat_pages(self._page.get(), page) if accumulate else page
        self._page.set(cached)
        self.on_page_loaded.emit(PageLoaded(None, cached, tuple(page.content)))

    def clear(self) -> None:
        """Forget the cached listing."""
        self._generation += 1
        self._page.set(None)

    def _patch_pages(self, attempt: UpdateAttempt) -> None:
        page = self._page.get()
        if page is not None:
            self._page.set(patch_page(page, attempt.patches, self.reference_store.primary_key))
