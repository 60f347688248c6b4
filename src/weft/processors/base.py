"""Shared helpers for tool result processors.

A processor is a function from a sequence of ToolResult to a list of
ToolResult. Processors only transform successful (Ok) results; errors and
halt signals always pass through untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Iterable

from ..context.types import ToolResult


def estimate_size(value: Any) -> int:
    """Size of a value in the unit processors limit on.

    Text counts code points, lists count items, mappings count keys.
    Anything else has size 0.
    """
    if isinstance(value, str):
        return len(value)
    if isinstance(value, (list, tuple)):
        return len(value)
    if isinstance(value, Mapping):
        return len(value)
    return 0


def is_large(value: Any, threshold: int) -> bool:
    return estimate_size(value) > threshold


def preserve_structure(result: ToolResult, fn: Callable[[Any], Any]) -> ToolResult:
    """Apply fn to the payload of a successful result, leaving others unchanged."""
    if not result.is_ok:
        return result
    return result.with_value(fn(result.payload))


def map_ok(results: Iterable[ToolResult], fn: Callable[[Any], Any]) -> list[ToolResult]:
    return [preserve_structure(result, fn) for result in results]


def require_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got: {value!r}")


__all__ = [
    "estimate_size",
    "is_large",
    "preserve_structure",
    "map_ok",
]
