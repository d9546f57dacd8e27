"""Reference-store attachment shared by the paginated stores.

A list attached with ``bind`` merges every freshly loaded chunk into the
reference store. One attached with ``present`` only shallow-updates entities
the reference store already holds, and patches its own cached pages when the
reference store reports an update for a key it does not hold.
"""

from __future__ import annotations

import abc
import dataclasses
import logging
from typing import Any

from refstore.entity_store import BindingMode, EntityStore, UpdateAttempt, new_update_id
from refstore.exceptions import StoreConfigError
from refstore.observable import Observable
from refstore.page import Page
from refstore.presentation import present_items, primary_key_of
from refstore.stream import EventStream

logger = logging.getLogger("refstore.referenced")


@dataclasses.dataclass(frozen=True)
class PageLoaded:
    """Broadcast after a loaded page was accepted into the cache.

    ``content`` holds only the items loaded by this call, ``page`` the
    resulting cache entry.
    """

    key: Any
    page: Page
    content: tuple[Any, ...]


class ReferencedList(abc.ABC):
    """Base for stores caching listed entities of a reference store."""

    def __init__(self) -> None:
        self._reference: Observable[EntityStore | None] = Observable(None)
        self._mode: BindingMode | None = None
        self._update_id = new_update_id()
        self.on_page_loaded: EventStream[PageLoaded] = EventStream()

    @property
    def reference_store(self) -> EntityStore | None:
        return self._reference.get()

    def present(self, store: EntityStore):
        """Overlay listed items with store, never creating entities in it."""
        return self._attach(store, BindingMode.PRESENT)

    def bind(self, store: EntityStore):
        """Overlay listed items with store and merge every loaded item into it."""
        return self._attach(store, BindingMode.BIND)

    def _attach(self, store: EntityStore, mode: BindingMode):
        if self._reference.get() is not None:
            raise StoreConfigError("List store is already attached to a reference store")
        self._mode = mode
        self._reference.set(store)
        self.on_page_loaded.filter(lambda event: bool(event.content)).subscribe(
            lambda event: self._push(store, event.content)
        )
        if mode is BindingMode.PRESENT:
            store.on_update_attempt.subscribe(self._on_update_attempt)
        return self

    def _push(self, store: EntityStore, content: tuple[Any, ...]) -> None:
        entities = [item for item in content if primary_key_of(item, store.primary_key) is not None]
        if not entities:
            return
        if self._mode is BindingMode.BIND:
            store.merge(entities)
        else:
            store.batch_update(entities, self._update_id)

    def _overlay(self, page: Page | None) -> Page | None:
        store = self._reference.get()
        if store is None:
            return page
        return present_items(store.items.get(), page, store.tombstones.get(), store.primary_key)

    def _on_update_attempt(self, attempt: UpdateAttempt) -> None:
        if attempt.update_id == self._update_id:
            return
        logger.debug("Patching listed items %r", list(attempt.patches))
        self._patch_pages(attempt)

    @abc.abstractmethod
    def _patch_pages(self, attempt: UpdateAttempt) -> None:
        """Apply the attempt's patches to every cached page."""
