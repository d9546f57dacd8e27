"""Observable values — state that tracks its readers.

When an Observable is read inside a Computed or Reaction evaluation,
the dependency is automatically registered. When the Observable changes,
all dependents are invalidated and pending reactions run before set() returns.

Stores keep immutable snapshots (dicts, frozensets, pages) in Observables and
replace them wholesale on every write, so derived values never alias state
that is mutated later.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from refstore.action import transaction
from refstore.computed import Readable

T = TypeVar("T")


class Observable(Readable[T]):
    """A single observable value with automatic dependency tracking."""

    __slots__ = ("_value", "_observers")

    def __init__(self, value: T) -> None:
        self._value = value
        self._observers: set = set()

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        self._track()
        return self._value

    def set(self, value: T) -> None:
        """Write a new value and propagate synchronously."""
        old = self._value
        if old is not value and old != value:
            self._value = value
            with transaction():
                self._notify()

    def update(self, fn: Callable[[T], T]) -> None:
        """Replace the value with fn(current value)."""
        self.set(fn(self._value))

    def __repr__(self) -> str:
        return f"Observable({self._value!r})"
