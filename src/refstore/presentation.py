"""Read-time reconciliation of derived views against canonical entities.

The functions here are pure: they never mutate their inputs and return new
containers only where something changed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Set
from typing import Any

from refstore.config import DEFAULT_PRIMARY_KEY
from refstore.page import Page
from refstore.paths import FieldPath

logger = logging.getLogger("refstore.presentation")


def primary_key_of(entity: Any, primary_key: str = DEFAULT_PRIMARY_KEY) -> Any:
    """Primary-key value of entity, or None for non-mapping items."""
    if isinstance(entity, Mapping):
        return entity.get(primary_key)
    return None


def present_items(
    ref_items: Mapping[Any, Any],
    page: Page | None,
    deleted: Set,
    primary_key: str = DEFAULT_PRIMARY_KEY,
) -> Page | None:
    """Overlay a listed page with the canonical entities.

    Each item is replaced by the canonical entity sharing its primary key.
    Items without a canonical counterpart are dropped when their key is
    tombstoned and kept as listed otherwise. Order and pagination metadata
    are preserved; content never grows.
    """
    if page is None:
        return None
    content = []
    for item in page.content:
        key = primary_key_of(item, primary_key)
        if key is not None and key in ref_items:
            content.append(ref_items[key])
        elif key is not None and key in deleted:
            continue
        else:
            content.append(item)
    return page.with_content(content)


def resolve_references(
    items: Mapping[Any, Any],
    path: FieldPath,
    ref_items: Mapping[Any, Any],
    deleted: Set,
    primary_key: str = DEFAULT_PRIMARY_KEY,
) -> dict[Any, Any]:
    """Denormalize the sub-entity at *path* of every entity in *items*.

    The embedded copy is swapped for the live canonical one when the target
    holds it, nulled when the target tombstoned it, and left as embedded
    otherwise.
    """

    def substitute(embedded: Any) -> Any:
        key = primary_key_of(embedded, primary_key)
        if key is None:
            return embedded
        if key in ref_items:
            return ref_items[key]
        if key in deleted:
            return None
        return embedded

    return {key: path.rewrite(entity, substitute) for key, entity in items.items()}


def patch_page(
    page: Page,
    patches: Mapping[Any, Callable[[Any], Any]],
    primary_key: str = DEFAULT_PRIMARY_KEY,
) -> Page:
    """Apply per-key patches to the listed items of page.

    A patch that raises leaves its item as listed; the rest of the page is
    still patched.
    """
    content = []
    for item in page.content:
        key = primary_key_of(item, primary_key)
        patch = patches.get(key) if key is not None else None
        if patch is None:
            content.append(item)
            continue
        try:
            content.append(patch(item))
        except Exception:
            logger.exception("Patch for listed item %r failed, keeping it as listed", key)
            content.append(item)
    return page.with_content(content)
