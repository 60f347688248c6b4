"""Sample items from list-shaped tool results."""

from __future__ import annotations

import random
from enum import Enum
from typing import Any, Iterable, Optional

from ..context.types import ToolResult
from .base import map_ok, require_positive_int

DEFAULT_SAMPLE_SIZE = 5


class SampleStrategy(str, Enum):
    FIRST = "first"
    RANDOM = "random"
    DISTRIBUTED = "distributed"


def sample(
    results: Iterable[ToolResult],
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    strategy: str = SampleStrategy.FIRST,
    rng: Optional[random.Random] = None,
) -> list[ToolResult]:
    """Replace long lists with a sample of their items.

    Lists no longer than sample_size and non-list values pass through.

    Args:
        results: Tool results to process
        sample_size: Number of items to keep (default: 5)
        strategy: "first", "random" or "distributed"
        rng: Random generator for the random strategy

    Returns:
        Processed results. Sampled values become
        {"items", "total_count", "sample_size", "strategy"}.
    """
    require_positive_int(sample_size, "sample_size")
    try:
        strategy = SampleStrategy(strategy)
    except ValueError:
        allowed = ", ".join(s.value for s in SampleStrategy)
        raise ValueError(f"strategy must be one of: {allowed}, got: {strategy!r}") from None

    rng = rng or random.Random()
    return map_ok(results, lambda value: sample_value(value, sample_size, strategy, rng))


def sample_value(
    value: Any,
    sample_size: int,
    strategy: SampleStrategy = SampleStrategy.FIRST,
    rng: Optional[random.Random] = None,
) -> Any:
    if not isinstance(value, (list, tuple)) or len(value) <= sample_size:
        return value

    items = list(value)
    if strategy is SampleStrategy.RANDOM:
        rng = rng or random.Random()
        # Keep relative order of the chosen items
        picked = sorted(rng.sample(range(len(items)), sample_size))
        chosen = [items[i] for i in picked]
    elif strategy is SampleStrategy.DISTRIBUTED:
        step = len(items) / sample_size
        chosen = [items[int(i * step)] for i in range(sample_size)]
    else:
        chosen = items[:sample_size]

    return {
        "items": chosen,
        "total_count": len(items),
        "sample_size": sample_size,
        "strategy": strategy.value,
    }


__all__ = ["sample", "sample_value", "SampleStrategy", "DEFAULT_SAMPLE_SIZE"]
