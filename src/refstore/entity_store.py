"""Entity Store: canonical, deduplicated entities of one type.

The store owns a keyed map of entities, the mutation API feeding it, and a
set of reference bindings. Reading :attr:`EntityStore.items` yields the
denormalized view: every bound field path is swapped for the live canonical
sub-entity held by the target store.

Cross-store writes carry a causation trail (the bindings already traversed
by the current propagation chain). A binding never re-propagates an event
whose trail already contains it, which terminates self and mutual cycles.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Generic, TypeVar

from refstore._loader import call_loader
from refstore.action import action
from refstore.computed import Computed, Readable
from refstore.config import DEFAULT_PRIMARY_KEY
from refstore.exceptions import (
    CapabilityError,
    MissingPrimaryKeyError,
    PrimaryKeyMismatchError,
    StoreConfigError,
)
from refstore.observable import Observable
from refstore.paths import FieldPath
from refstore.presentation import primary_key_of, resolve_references
from refstore.stream import EventStream

logger = logging.getLogger("refstore.entity_store")

T = TypeVar("T", bound=Mapping[str, Any])


def new_update_id() -> str:
    """Fresh unique update token."""
    return uuid.uuid4().hex


class BindingMode(enum.Enum):
    BIND = "bind"
    PRESENT = "present"


@dataclasses.dataclass(frozen=True, eq=False)
class ReferenceBinding:
    """Edge from a field path of one store to another store."""

    path: FieldPath
    store: EntityStore
    mode: BindingMode


@dataclasses.dataclass(frozen=True)
class NewElements:
    """Broadcast after canonical writes."""

    update_id: str
    content: tuple[Any, ...]
    trail: tuple[ReferenceBinding, ...] = ()


@dataclasses.dataclass(frozen=True)
class UpdateAttempt:
    """Broadcast when an update targets keys the store does not hold.

    ``patches`` maps each missing key to the transform that was meant for it.
    """

    patches: Mapping[Any, Callable[[Any], Any]]
    update_id: str | None = None


def _merger(partial: Mapping[str, Any]) -> Callable[[Any], Any]:
    return lambda current: {**current, **partial}


class EntityStore(Generic[T]):
    """Canonical keyed cache for one entity type.

    Parameters
    ----------
    fetcher : callable or None
        ``fetcher(key, *args)`` returning the entity, or an awaitable of it.
    primary_key : str
        Field holding each entity's primary key.
    """

    def __init__(
        self,
        fetcher: Callable[..., T | Awaitable[T]] | None = None,
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ) -> None:
        if not primary_key:
            raise StoreConfigError("primary_key must be a non-empty field name")
        self._fetch = fetcher
        self.primary_key = primary_key
        self._items: Observable[dict[Any, T]] = Observable({})
        self._tombstones: Observable[frozenset] = Observable(frozenset())
        self._bindings: Observable[tuple[ReferenceBinding, ...]] = Observable(())
        self._canonical = self._items.select(lambda items: items)
        self._deleted = self._tombstones.select(lambda keys: keys)
        self._view = Computed(self._denormalize)

        self.on_new_elements: EventStream[NewElements] = EventStream()
        self.on_delete: EventStream[Any] = EventStream()
        self.on_update_attempt: EventStream[UpdateAttempt] = EventStream()

    # --- Reads ---

    @property
    def items(self) -> Readable[dict[Any, T]]:
        """Denormalized view of every entity, keyed by primary key."""
        return self._view

    @property
    def canonical(self) -> Readable[dict[Any, T]]:
        """Entities exactly as written, without reference resolution."""
        return self._canonical

    @property
    def tombstones(self) -> Readable[frozenset]:
        """Keys removed from this store and not written since."""
        return self._deleted

    @property
    def bindings(self) -> tuple[ReferenceBinding, ...]:
        return self._bindings.get()

    def get_observable(self, key: Any) -> Computed[T | None]:
        """Live view of one entity, None while absent."""
        return self._view.select(lambda items: items.get(key))

    def _denormalize(self) -> dict[Any, T]:
        items = self._items.get()
        for binding in self._bindings.get():
            target = binding.store
            if target is self or target._reaches(self):
                ref_items = target.canonical.get()
            else:
                ref_items = target.items.get()
            items = resolve_references(
                items, binding.path, ref_items, target.tombstones.get(), target.primary_key
            )
        return items

    def _reaches(self, store: EntityStore, seen: set | None = None) -> bool:
        """Whether a chain of bindings leads from this store to store."""
        seen = set() if seen is None else seen
        seen.add(self)
        for binding in self._bindings.get():
            if binding.store is store:
                return True
            if binding.store not in seen and binding.store._reaches(store, seen):
                return True
        return False

    # --- Writes ---

    def _key_of(self, entity: Any) -> Any:
        key = primary_key_of(entity, self.primary_key)
        if key is None:
            raise MissingPrimaryKeyError(
                f"Entity has no {self.primary_key!r} field: {entity!r}", primary_key=self.primary_key
            )
        return key

    def _write(self, entities: dict[Any, T]) -> None:
        self._items.update(lambda current: {**current, **entities})
        self._tombstones.update(lambda keys: keys.difference(entities))

    async def fetch(self, key: Any, *args: Any, update_id: str | None = None) -> T | None:
        """Load one entity through the fetcher and store it under key.

        Loader errors propagate and leave the store untouched. So does an
        entity whose primary key is not key, raised as PrimaryKeyMismatchError.
        """
        if self._fetch is None:
            raise CapabilityError("Store was built without a fetcher", capability="fetch")
        logger.debug("Fetching %r", key)
        entity = await call_loader(self._fetch, key, *args)
        found = primary_key_of(entity, self.primary_key)
        if found != key:
            raise PrimaryKeyMismatchError(
                f"Fetched {key!r} but the entity carries {self.primary_key}={found!r}",
                key=key,
                primary_key=self.primary_key,
            )
        self._store_fetched(key, entity, update_id or new_update_id())
        return self._view.get().get(key)

    @action
    def _store_fetched(self, key: Any, entity: T, update_id: str) -> None:
        self._write({key: entity})
        self.on_new_elements.emit(NewElements(update_id, (entity,)))

    @action
    def save(self, entity: T) -> None:
        """Write one entity under its own primary key."""
        self._write({self._key_of(entity): entity})
        self.on_new_elements.emit(NewElements("save", (entity,)))

    @action
    def merge(
        self,
        entities: Iterable[T],
        update_id: str | None = None,
        *,
        trail: tuple[ReferenceBinding, ...] = (),
    ) -> None:
        """Write many entities at once, overwriting by key."""
        entities = tuple(entities)
        self._write({self._key_of(entity): entity for entity in entities})
        self.on_new_elements.emit(NewElements(update_id or new_update_id(), entities, trail))

    @action
    def batch_update(self, partials: Iterable[Mapping[str, Any]], update_id: str | None = None) -> None:
        """Shallow-merge each partial into the entity it names, if held.

        Partials for absent keys create nothing; they are broadcast as an
        update attempt instead.
        """
        missing: dict[Any, Callable[[Any], Any]] = {}
        partials = tuple(partials)

        def apply(current: dict[Any, T]) -> dict[Any, T]:
            updated = dict(current)
            for partial in partials:
                key = self._key_of(partial)
                existing = updated.get(key)
                if existing is None:
                    missing[key] = _merger(partial)
                else:
                    updated[key] = {**existing, **partial}
            return updated

        self._items.update(apply)
        if missing:
            self.on_update_attempt.emit(UpdateAttempt(missing, update_id))

    batch_update_properties = batch_update

    def update(self, key: Any, updater: Callable[[T], T]) -> None:
        """Replace the entity under key with updater(entity). No-op when absent."""
        existing = self._items.get().get(key)
        if existing is None:
            self.on_update_attempt.emit(UpdateAttempt({key: updater}))
            return
        self._items.update(lambda current: {**current, key: updater(existing)})

    def update_properties(self, partial: Mapping[str, Any]) -> None:
        self.update(self._key_of(partial), _merger(partial))

    @action
    def remove(self, key: Any) -> None:
        """Delete the entity under key and tombstone the key."""
        self._items.update(lambda current: {k: v for k, v in current.items() if k != key})
        self._tombstones.update(lambda keys: keys | {key})
        self.on_delete.emit(key)

    def clear(self) -> None:
        """Drop every entity. Nothing is tombstoned."""
        self._items.set({})

    # --- Reference bindings ---

    def bind_property(self, path: str, store: EntityStore) -> EntityStore[T]:
        """Resolve path through store and push sub-entities seen at path into it."""
        return self._add_binding(path, store, BindingMode.BIND)

    def present_property(self, path: str, store: EntityStore) -> EntityStore[T]:
        """Resolve path through store without ever writing into it."""
        return self._add_binding(path, store, BindingMode.PRESENT)

    def _add_binding(self, path: str, store: EntityStore, mode: BindingMode) -> EntityStore[T]:
        binding = ReferenceBinding(FieldPath(path), store, mode)
        self._bindings.update(lambda bindings: (*bindings, binding))
        if mode is BindingMode.BIND:
            self.on_new_elements.subscribe(lambda event: self._push_references(binding, event))
        return self

    def _push_references(self, binding: ReferenceBinding, event: NewElements) -> None:
        if binding in event.trail:
            logger.debug("Ignoring echo of %r on path %s", event.update_id, binding.path)
            return
        target = binding.store
        references = [
            value
            for value in (binding.path.extract(entity) for entity in event.content)
            if primary_key_of(value, target.primary_key) is not None
        ]
        if references:
            target.merge(references, str(binding.path), trail=(*event.trail, binding))

    def __repr__(self) -> str:
        return f"EntityStore(primary_key={self.primary_key!r}, size={len(self._items.get())})"
