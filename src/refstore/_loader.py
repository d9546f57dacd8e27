"""Invocation of application-supplied loader functions."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any


async def call_loader(loader: Callable[..., Any | Awaitable[Any]], *args: Any) -> Any:
    """Call loader and await its result when it is awaitable.

    This is the only suspension point of every fetch/list operation.
    """
    result = loader(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
