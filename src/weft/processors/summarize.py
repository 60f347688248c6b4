"""Replace tool results with compact structural summaries.

Summaries describe the shape of a value instead of carrying all of it:

    [1, 2, ..., 100]      -> {"type": "list", "count": 100, "sample": [1, 2, 3], ...}
    {"a": 1, ...}         -> {"type": "map", "count": 50, "keys": [...], "sample": {...}, ...}
    "long text ..."       -> {"type": "text", "length": 5000, "excerpt": "long text", ...}
    Point(x=1, y=2)       -> {"type": "struct", "struct_name": "Point", "fields": {...}, ...}

Containers inside a sample are summarized recursively down to max_depth.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from ..context.types import ToolResult, to_json
from .base import map_ok, require_positive_int

DEFAULT_SAMPLE_SIZE = 3
DEFAULT_MAX_SUMMARY_SIZE = 1000
DEFAULT_MAX_DEPTH = 3

# Longest excerpt kept for text values
EXCERPT_LENGTH = 200

# Keys emptied, in order, when a summary is larger than max_summary_size
_SHRINKABLE_KEYS = ("sample", "fields", "keys", "excerpt")


def summarize(
    results: Iterable[ToolResult],
    strategy: str = "auto",
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    max_summary_size: int = DEFAULT_MAX_SUMMARY_SIZE,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[ToolResult]:
    """Summarize every successful result.

    Args:
        results: Tool results to process
        strategy: Only "auto" (detect the value's shape) is supported
        sample_size: Items, keys or fields kept in samples (default: 3)
        max_summary_size: Upper bound on the JSON size of a summary (default: 1000)
        max_depth: Nesting depth summarized inside samples (default: 3)

    Returns:
        Processed results with summary mappings as payloads
    """
    if strategy != "auto":
        raise ValueError(f"strategy must be one of: auto, got: {strategy!r}")
    require_positive_int(sample_size, "sample_size")
    require_positive_int(max_summary_size, "max_summary_size")
    require_positive_int(max_depth, "max_depth")

    return map_ok(
        results,
        lambda value: summarize_value(value, sample_size, max_summary_size, max_depth),
    )


def summarize_value(
    value: Any,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    max_summary_size: int = DEFAULT_MAX_SUMMARY_SIZE,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, Any]:
    """Summary of a single value, bounded by max_summary_size."""
    return _fit(_Summarizer(sample_size, max_depth).summarize(value), max_summary_size)


class _Summarizer:
    def __init__(self, sample_size: int, max_depth: int):
        self.sample_size = sample_size
        self.max_depth = max_depth

    def summarize(self, value: Any, depth: int = 0) -> dict[str, Any]:
        if isinstance(value, str):
            return {
                "type": "text",
                "length": len(value),
                "excerpt": value[:EXCERPT_LENGTH],
                "summary": f"Text with {len(value)} characters",
            }
        if isinstance(value, (list, tuple)):
            return {
                "type": "list",
                "count": len(value),
                "sample": [self._nested(item, depth) for item in value[: self.sample_size]],
                "summary": f"List with {len(value)} items",
            }
        if isinstance(value, Mapping):
            keys = list(value)[: self.sample_size]
            return {
                "type": "map",
                "count": len(value),
                "keys": keys,
                "sample": {key: self._nested(value[key], depth) for key in keys},
                "summary": f"Map with {len(value)} keys",
            }
        fields = _struct_fields(value)
        if fields is not None:
            name = type(value).__name__
            names = list(fields)[: self.sample_size]
            return {
                "type": "struct",
                "struct_name": name,
                "fields": {key: self._nested(fields[key], depth) for key in names},
                "summary": f"{name} struct with {len(fields)} fields",
            }
        type_name = type(value).__name__
        return {"type": type_name, "value": value, "summary": f"{type_name} value"}

    def _nested(self, value: Any, depth: int) -> Any:
        if isinstance(value, str):
            return value[:EXCERPT_LENGTH]
        if not isinstance(value, (list, tuple, Mapping)) and _struct_fields(value) is None:
            return value
        if depth + 1 >= self.max_depth:
            return _describe(value)
        return self.summarize(value, depth + 1)


def _struct_fields(value: Any) -> Optional[dict[str, Any]]:
    if isinstance(value, BaseModel):
        return {name: getattr(value, name) for name in type(value).model_fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return None


def _describe(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return f"[list with {len(value)} items]"
    if isinstance(value, Mapping):
        return f"[map with {len(value)} keys]"
    return f"[{type(value).__name__}]"


def _fit(summary: dict[str, Any], max_summary_size: int) -> dict[str, Any]:
    if len(to_json(summary)) <= max_summary_size:
        return summary

    fitted = dict(summary)
    if "value" in fitted:
        fitted["value"] = _describe(fitted["value"])
    for key in _SHRINKABLE_KEYS:
        if key in fitted:
            fitted[key] = type(fitted[key])()
            fitted["truncated"] = True
            if len(to_json(fitted)) <= max_summary_size:
                break
    return fitted


__all__ = [
    "summarize",
    "summarize_value",
    "DEFAULT_SAMPLE_SIZE",
    "DEFAULT_MAX_SUMMARY_SIZE",
    "DEFAULT_MAX_DEPTH",
]
