"""Reactions — side effects triggered by reactive state changes.

Unlike Computed (which is lazy and only evaluates on read), a Reaction
eagerly re-runs its side effect whenever its tracked dependencies change.

Two flavors:
- autorun(fn): runs fn immediately, re-runs when any readable it read changes.
- reaction(data_fn, effect_fn): tracks data_fn, calls effect_fn with the new value
  only when data_fn's result changes.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from refstore._tracking import run_tracked

T = TypeVar("T")


class Reaction:
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_fn", "_dependencies", "_disposed")

    _lazy = False

    def __init__(self, fn: Callable[[], None]) -> None:
        self._fn = fn
        self._dependencies: set = set()
        self._disposed = False

    def _untrack(self) -> None:
        for dep in self._dependencies:
            dep._remove_observer(self)
        self._dependencies.clear()

    def _run(self) -> None:
        """Re-evaluate the reaction function, re-tracking dependencies."""
        if self._disposed:
            return
        run_tracked(self, self._fn)

    def dispose(self) -> None:
        """Stop this reaction. Disconnects from all dependencies."""
        self._disposed = True
        self._untrack()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Reaction({getattr(self._fn, '__name__', self._fn)!r}, {state})"


class _DataReaction(Reaction):
    """Internal: reaction(data_fn, effect_fn) implementation.

    Tracks data_fn's dependencies. When they change, re-runs data_fn.
    If the result differs from last time, calls effect_fn with the new value.
    """

    __slots__ = ("_effect_fn", "_last_value", "_initialized")

    def __init__(self, data_fn: Callable, effect_fn: Callable) -> None:
        super().__init__(data_fn)
        self._effect_fn = effect_fn
        self._last_value = None
        self._initialized = False

    def _evaluate(self):
        return run_tracked(self, self._fn)

    def _run(self) -> None:
        if self._disposed:
            return
        new_value = self._evaluate()
        if not self._initialized or not _same(new_value, self._last_value):
            self._last_value = new_value
            self._initialized = True
            self._effect_fn(new_value)


def _same(a, b) -> bool:
    return a is b or a == b


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn immediately, then re-run whenever any readable it reads changes.

    Returns the Reaction (call .dispose() to stop).
    """
    r = Reaction(fn)
    r._run()  # Initial run to establish dependencies
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Reaction:
    """Track data_fn's readables; call effect_fn when the result changes.

    Unlike autorun, effect_fn only fires when data_fn's *return value* changes,
    not on every dependency notification.

    Usage:
        first = Observable("Alice")
        last = Observable("Smith")

        effects = []
        r = reaction(
            lambda: f"{first.get()} {last.get()}",
            lambda name: effects.append(name),
        )
        # effects == [] — data_fn ran to establish deps, but effect doesn't fire yet

        first.set("Bob")
        # effects == ["Bob Smith"]

        r.dispose()
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        # Run data_fn to establish deps, but suppress the initial effect
        r._last_value = r._evaluate()
        r._initialized = True
    return r
