"""Mapped Store: one paginated listing per external key.

Same contract as :class:`~refstore.paginated_store.PaginatedStore`, but the
cache, the in-flight guards and the generations are tracked per key, so
listings for different keys load independently.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Generic, TypeVar

from refstore._loader import call_loader
from refstore._referenced import PageLoaded, ReferencedList
from refstore.action import action
from refstore.computed import Computed
from refstore.entity_store import UpdateAttempt
from refstore.observable import Observable
from refstore.page import Page, coerce_page, concat_pages
from refstore.presentation import patch_page

logger = logging.getLogger("refstore.mapped_store")

S = TypeVar("S", bound=Hashable)
T = TypeVar("T")


class MappedStore(ReferencedList, Generic[S, T]):
    """Cache for paginated listings keyed by an external key.

    Parameters
    ----------
    lister : callable
        ``lister(key, page, *args)`` returning a page, or an awaitable of one.
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
        self._pages: Observable[dict[S, Page[T]]] = Observable({})
        self._fetching: Observable[frozenset] = Observable(frozenset())
        self._fetching_more: Observable[frozenset] = Observable(frozenset())
        self._generations: dict[S, int] = {}

    def get_fetching(self, key: S) -> Computed[bool]:
        return self._fetching.select(lambda keys: key in keys)

    def get_fetching_more(self, key: S) -> Computed[bool]:
        return self._fetching_more.select(lambda keys: key in keys)

    def get_observable_items(self, key: S) -> Computed[Page[T] | None]:
        """Listing for key, overlaid with the reference store when attached."""
        listed = self._pages.select(lambda pages: pages.get(key))
        return Computed(lambda: self._overlay(listed.get()))

    async def list(self, key: S, *args: Any) -> None:
        """Load page 0 for key and replace that key's cache with it."""
        if key in self._fetching.get():
            logger.debug("list(%r) already in flight, dropping call", key)
            return
        generation = self._generations[key] = self._generations.get(key, 0) + 1
        self._fetching.update(lambda keys: keys | {key})
        try:
            logger.debug("Listing page 0 for %r", key)
            page = coerce_page(await call_loader(self._list, key, 0, *args))
            self._accept(key, generation, page, accumulate=False)
        finally:
            self._fetching.update(lambda keys: keys - {key})

    async def list_more(self, key: S, *args: Any) -> None:
        """Load the page after key's cached one and append its content.

        Falls back to ``list`` when nothing is cached for key yet.
        """
        if key in self._fetching.get() or key in self._fetching_more.get():
            logger.debug("list_more(%r) while listing, dropping call", key)
            return
        current = self._pages.get().get(key)
        if current is None:
            return await self.list(key, *args)
        generation = self._generations.get(key, 0)
        self._fetching_more.update(lambda keys: keys | {key})
        try:
            logger.debug("Listing page %d for %r", current.page + 1, key)
            page = coerce_page(await call_loader(self._list, key, current.page + 1, *args))
            self._accept(key, generation, page, accumulate=True)
        finally:
            self._fetching_more.update(lambda keys: keys - {key})

    @action
    def _accept(self, key: S, generation: int, page: Page[T], *, accumulate: bool) -> None:
        if self._discard_stale and generation != self._generations.get(key, 0):
            logger.debug("Discarding stale response for %r page %d", key, page.page)
            return
        cached = concat_pages(self._pages.get().get(key), page) if accumulate else page
        self._pages.update(lambda pages: {**pages, key: cached})
        self.on_page_loaded.emit(PageLoaded(key, cached, tuple(page.content)))

    def clear(self) -> None:
        """Forget every cached listing."""
        for key in self._generations:
            self._generations[key] += 1
        self._pages.set({})

    def _patch_pages(self, attempt: UpdateAttempt) -> None:
        primary_key = self.reference_store.primary_key
        self._pages.update(
            lambda pages: {key: patch_page(page, attempt.patches, primary_key) for key, page in pages.items()}
        )
