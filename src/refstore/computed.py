"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which readables
the function reads and caches the result. When any dependency changes,
the cached value is invalidated. On next read, it re-evaluates.

Computed values are lazy — they only recompute when read.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, TypeVar

from refstore._tracking import current_derivation, run_tracked, schedule
from refstore.reaction import reaction

T = TypeVar("T")
U = TypeVar("U")

_UNSET = object()


class Readable(Generic[T]):
    """Shared surface of every reactive value: get, subscribe, select."""

    __slots__ = ()

    def get(self) -> T:
        raise NotImplementedError

    def _track(self) -> None:
        """Register the current derivation as an observer."""
        derivation = current_derivation.get()
        if derivation is not None:
            self._observers.add(derivation)
            derivation._dependencies.add(self)

    def _notify(self) -> None:
        for observer in list(self._observers):
            schedule(observer)

    def _remove_observer(self, observer) -> None:
        """Remove an observer. Called during dependency cleanup."""
        self._observers.discard(observer)

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Call listener with every new value. Returns an unsubscribe callable."""
        return reaction(self.get, listener).dispose

    def select(self, fn: Callable[[T], U]) -> Computed[U]:
        """Derive a read-only value from this one."""
        return Computed(lambda: fn(self.get()))


class Computed(Readable[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_dependencies", "_observers", "_dirty", "_value")

    _lazy = True

    def __init__(self, fn: Callable[[], T]) -> None:
        self._fn = fn
        self._dependencies: set = set()
        self._observers: set = set()
        self._dirty = True
        self._value = _UNSET

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty.

        Read outside any derivation while nothing observes it, the value is
        evaluated without subscribing to its sources and is not cached.
        """
        if current_derivation.get() is None and not self._observers:
            return self._fn()
        self._track()
        if self._dirty:
            self._recompute()
        return self._value

    def _untrack(self) -> None:
        for dep in self._dependencies:
            dep._remove_observer(self)
        self._dependencies.clear()

    def _remove_observer(self, observer) -> None:
        """Drop an observer. Without observers left, let go of the sources too."""
        self._observers.discard(observer)
        if not self._observers:
            self._untrack()
            self._dirty = True
            self._value = _UNSET

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        self._value = run_tracked(self, self._fn)
        self._dirty = False

    def _run(self) -> None:
        """Called by the scheduler when a dependency changed.

        For Computed, we mark dirty and propagate to our own observers.
        We don't recompute eagerly — that happens on next .get().
        """
        if not self._dirty:
            self._dirty = True
            self._notify()

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        self._untrack()
        self._observers.clear()
        self._dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        return f"Computed({getattr(self._fn, '__name__', self._fn)!r}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = Observable(0)

        @computed
        def doubled():
            return counter.get() * 2

        doubled.get()  # 0
        counter.set(5)
        doubled.get()  # 10
    """
    return Computed(fn)


def combine(readables: Iterable[Readable], fn: Callable[..., T]) -> Computed[T]:
    """Derive one value from several inputs, re-evaluated when any input changes."""
    inputs = tuple(readables)
    return Computed(lambda: fn(*(r.get() for r in inputs)))
