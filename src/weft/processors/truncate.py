"""Truncate tool results that exceed a size threshold.

Text is cut by code points, lists by items and mappings by keys. A marker
is appended whenever something was cut.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

from ..context.types import ToolResult
from .base import is_large, map_ok, require_positive_int

DEFAULT_MAX_SIZE = 1000
DEFAULT_MARKER = "... [truncated]"

# Key added to truncated mappings
TRUNCATED_KEY = "__truncated__"


def truncate(
    results: Iterable[ToolResult],
    max_size: int = DEFAULT_MAX_SIZE,
    marker: str = DEFAULT_MARKER,
) -> list[ToolResult]:
    """Truncate successful results larger than max_size.

    Args:
        results: Tool results to process
        max_size: Maximum characters, items or keys to keep (default: 1000)
        marker: Text appended when truncation happened

    Returns:
        Processed results, in the same order

    Raises:
        ValueError: If max_size is not a positive integer
    """
    require_positive_int(max_size, "max_size")
    return map_ok(results, lambda value: truncate_value(value, max_size, marker))


def truncate_value(value: Any, max_size: int, marker: str = DEFAULT_MARKER) -> Any:
    if not is_large(value, max_size):
        return value
    if isinstance(value, str):
        return value[:max_size] + marker
    if isinstance(value, (list, tuple)):
        return list(value[:max_size]) + [marker]
    if isinstance(value, Mapping):
        kept = {key: value[key] for key in list(value)[:max_size]}
        kept[TRUNCATED_KEY] = marker
        return kept
    return value


__all__ = ["truncate", "truncate_value", "DEFAULT_MAX_SIZE", "DEFAULT_MARKER", "TRUNCATED_KEY"]
