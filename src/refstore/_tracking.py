"""Dependency tracking engine.

Uses contextvars to track which readables are read during a computed/reaction
evaluation, building the dependency graph automatically.

Propagation is two-phase: every write runs inside a batch, lazy derivations
(Computed) are invalidated immediately, and eager ones (Reaction) are queued
and flushed in insertion order once the outermost batch exits. Reactions
therefore never observe a half-invalidated graph.
"""

from __future__ import annotations

import contextvars
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from refstore.computed import Computed
    from refstore.reaction import Reaction

    Derivation = Computed | Reaction

logger = logging.getLogger("refstore.tracking")

# The currently-evaluating derivation (computed or reaction).
# When set, any readable .get() call registers itself as a dependency.
current_derivation: contextvars.ContextVar[Derivation | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# Batch depth counter. When > 0, reactions are deferred.
_batch_depth: int = 0

# Reactions invalidated during a batch, awaiting flush. A dict keeps them ordered.
_pending: dict[Derivation, None] = {}


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending reactions."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def schedule(derivation: Derivation) -> None:
    """Schedule a derivation for re-evaluation.

    Lazy derivations are invalidated right away. Eager ones are deferred while
    a batch is open, otherwise they run immediately.
    """
    if derivation._lazy or _batch_depth == 0:
        derivation._run()
    else:
        _pending[derivation] = None


def run_tracked(derivation: Derivation, fn):
    """Evaluate fn with derivation as the current one and return its result.

    Dependencies read this time replace the previous set. Readables that are
    no longer read drop derivation as an observer; those still read keep it
    throughout, so a shared Computed is never suspended mid-run.
    """
    previous = derivation._dependencies
    derivation._dependencies = set()
    token = current_derivation.set(derivation)
    try:
        return fn()
    finally:
        current_derivation.reset(token)
        for dep in previous - derivation._dependencies:
            dep._remove_observer(derivation)


def _flush_pending() -> None:
    """Run all pending reactions. Handles reactions scheduled during flush.

    A failing reaction does not strand the rest of the queue: every pending
    reaction runs, then the first error is re-raised.
    """
    error: BaseException | None = None
    while _pending:
        derivation = next(iter(_pending))
        del _pending[derivation]
        try:
            derivation._run()
        except Exception as exc:
            if error is None:
                error = exc
            else:
                logger.exception("Reaction %r failed during flush", derivation)
    if error is not None:
        raise error


def get_pending_count() -> int:
    """Number of reactions waiting to run. Useful for testing."""
    return len(_pending)
