"""Store construction options."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Awaitable, Callable
from typing import Any

from refstore.exceptions import StoreConfigError

DEFAULT_PRIMARY_KEY = "id"


class Capability(enum.Enum):
    """Independently optional sub-interfaces of a factory-built store."""

    FETCH = "fetch"
    LIST = "list"
    SAVE = "save"


@dataclasses.dataclass(frozen=True)
class StoreOptions:
    """Options for :func:`refstore.factory.create_store`.

    Parameters
    ----------
    fetch : callable or None
        ``fetch(key, *args)`` loader for single entities. Enables FETCH.
    list : callable or None
        ``list(page, *args)`` loader for pages. Enables LIST.
    primary_key : str
        Name of the primary-key field of the entities.
    saveable : bool
        Keep a canonical keyed map with save/remove/get_observable. Always
        on when ``fetch`` is given.
    discard_stale : bool
        Drop list responses superseded by a newer list or clear.
    """

    fetch: Callable[..., Any | Awaitable[Any]] | None = None
    list: Callable[..., Any | Awaitable[Any]] | None = None
    primary_key: str = DEFAULT_PRIMARY_KEY
    saveable: bool = True
    discard_stale: bool = True

    def __post_init__(self) -> None:
        if not self.primary_key:
            raise StoreConfigError("primary_key must be a non-empty field name")
        if not self.capabilities:
            raise StoreConfigError("StoreOptions enables no capability: give fetch, list or saveable=True")

    @property
    def capabilities(self) -> frozenset[Capability]:
        active = set()
        if self.fetch is not None:
            active.add(Capability.FETCH)
        if self.list is not None:
            active.add(Capability.LIST)
        if self.saveable or self.fetch is not None:
            active.add(Capability.SAVE)
        return frozenset(active)
