"""Dotted field paths used by reference bindings.

A path such as ``"infos.author"`` is tokenized once into segments. Reads
descend segment by segment through mappings; rewrites rebuild only the
mappings along the path and share everything else with the original entity.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from refstore.exceptions import InvalidPathError


class FieldPath:
    """Tokenized dotted path into nested entity mappings."""

    __slots__ = ("_raw", "_segments")

    def __init__(self, path: str) -> None:
        segments = tuple(path.split(".")) if path else ()
        if not segments or any(not segment for segment in segments):
            raise InvalidPathError(f"Invalid field path {path!r}", path=path)
        self._raw = path
        self._segments = segments

    @property
    def segments(self) -> tuple[str, ...]:
        return self._segments

    def extract(self, entity: Any) -> Any:
        """Value at this path, or None when any segment is missing."""
        current = entity
        for segment in self._segments:
            if not isinstance(current, Mapping):
                return None
            current = current.get(segment)
            if current is None:
                return None
        return current

    def rewrite(self, entity: Any, replace: Callable[[Any], Any]) -> Any:
        """Return entity with the value at this path replaced by replace(value).

        replace is only called for a present, non-None leaf. The entity is
        returned unchanged (same object) when the path does not resolve or the
        replacement is the leaf itself.
        """
        return self._rewrite(entity, 0, replace)

    def _rewrite(self, node: Any, index: int, replace: Callable[[Any], Any]) -> Any:
        if not isinstance(node, Mapping):
            return node
        segment = self._segments[index]
        child = node.get(segment)
        if child is None:
            return node
        if index == len(self._segments) - 1:
            new_child = replace(child)
        else:
            new_child = self._rewrite(child, index + 1, replace)
        if new_child is child:
            return node
        return {**node, segment: new_child}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FieldPath):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f"FieldPath({self._raw!r})"
