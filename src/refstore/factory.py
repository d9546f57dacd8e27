"""Lightweight store factory built from a capability set.

``create_store`` assembles an entity store and/or a paginated store from
:class:`~refstore.config.StoreOptions` and exposes them behind one facade.
Operations of a capability the options did not enable raise
:class:`~refstore.exceptions.CapabilityError`.
"""

from __future__ import annotations

import logging
from typing import Any

from refstore.computed import Computed
from refstore.config import Capability, StoreOptions
from refstore.entity_store import EntityStore
from refstore.exceptions import CapabilityError
from refstore.page import Page
from refstore.paginated_store import PaginatedStore

logger = logging.getLogger("refstore.factory")


class CapabilityStore:
    """Facade over the sub-stores enabled by a capability set."""

    def __init__(self, options: StoreOptions) -> None:
        self.options = options
        self.capabilities = options.capabilities
        self.entities: EntityStore | None = None
        self.listing: PaginatedStore | None = None
        if Capability.SAVE in self.capabilities:
            self.entities = EntityStore(options.fetch, options.primary_key)
        if Capability.LIST in self.capabilities:
            self.listing = PaginatedStore(options.list, discard_stale=options.discard_stale)
            if self.entities is not None:
                self.listing.bind(self.entities)
        logger.debug("Created store with %s", sorted(c.value for c in self.capabilities))

    def _require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            raise CapabilityError(f"Store has no {capability.value} capability", capability=capability.value)

    # --- FETCH ---

    async def fetch(self, key: Any, *args: Any) -> Any:
        self._require(Capability.FETCH)
        return await self.entities.fetch(key, *args)

    # --- SAVE ---

    def save(self, entity: Any) -> None:
        self._require(Capability.SAVE)
        self.entities.save(entity)

    def remove(self, key: Any) -> None:
        self._require(Capability.SAVE)
        self.entities.remove(key)

    def get_observable(self, key: Any) -> Computed[Any]:
        self._require(Capability.SAVE)
        return self.entities.get_observable(key)

    # --- LIST ---

    async def list(self, *args: Any) -> None:
        self._require(Capability.LIST)
        await self.listing.list(*args)

    async def list_more(self, *args: Any) -> None:
        self._require(Capability.LIST)
        await self.listing.list_more(*args)

    @property
    def paginated_items(self) -> Computed[Page | None]:
        self._require(Capability.LIST)
        return self.listing.paginated_items

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities


def create_store(options: StoreOptions | None = None, **kwargs: Any) -> CapabilityStore:
    """Build a store from options, or from StoreOptions keyword arguments.

    Usage:
        articles = create_store(fetch=get_article, list=list_articles)
        await articles.list()
        articles.paginated_items.get()
    """
    if options is None:
        options = StoreOptions(**kwargs)
    return CapabilityStore(options)
