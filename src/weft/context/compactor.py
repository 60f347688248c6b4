"""Context compaction for long-running loops.

This module implements strategies that prune old iterations from a Context
so the conversation handed to the model stays within resource limits.

Compaction Philosophy:
1. Recent iterations matter most, so pruning always starts at the oldest
2. The last remaining iteration is never removed, even over budget
3. Every compaction is reported as an observability event
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import CompactionStrategy
from ..telemetry import events
from .model import Context


def sliding_window_compact(context: Context, window_size: int) -> Context:
    """Keep only the last `window_size` iterations.

    Predictable and cheap, but blind to how large each iteration is.

    Args:
        context: Context to compact
        window_size: Number of most recent iterations to keep

    Returns:
        Compacted context

    Raises:
        ValueError: If window_size is not a positive integer
    """
    if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size <= 0:
        raise ValueError("window_size must be a positive integer")

    logging.debug("[weft] Applying sliding window compaction with window_size=%d", window_size)

    before_count = context.count_iterations()
    compacted = context.keep_last_iterations(window_size)
    after_count = compacted.count_iterations()
    removed = before_count - after_count

    if removed > 0:
        logging.info("[weft] Sliding window compaction removed %d iterations", removed)

    events.emit(
        events.SLIDING_WINDOW_COMPACTION,
        {"before_count": before_count, "after_count": after_count, "removed": removed},
        {"window_size": window_size},
    )
    return compacted


def token_based_compact(context: Context, budget: int, threshold: float = 1.0) -> Context:
    """Drop the oldest iterations until estimated usage is under threshold.

    Removal stops when budget utilization falls below `threshold` or a
    single iteration remains. The result may therefore still be over budget.

    Args:
        context: Context to compact
        budget: Token budget for the estimated context size
        threshold: Utilization (fraction of budget) that triggers removal

    Returns:
        Compacted context, never with fewer than one iteration

    Raises:
        ValueError: If budget is not a positive integer or threshold is not a number
    """
    if isinstance(budget, bool) or not isinstance(budget, int) or budget <= 0:
        raise ValueError("budget must be a positive integer")
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ValueError("threshold must be a number")

    if not context.iterations:
        return context

    before_count = context.count_iterations()
    compacted = context

    if compacted.budget_utilization(budget) >= threshold:
        logging.debug(
            "[weft] Context exceeds budget threshold, compacting (budget=%d, threshold=%s)",
            budget,
            threshold,
        )

    while compacted.budget_utilization(budget) >= threshold and compacted.count_iterations() > 1:
        compacted = compacted.keep_last_iterations(compacted.count_iterations() - 1)

    after_count = compacted.count_iterations()
    removed = before_count - after_count
    final_tokens = compacted.estimate_token_count()

    if removed > 0:
        logging.info(
            "[weft] Token-based compaction removed %d iterations, reduced tokens to %d",
            removed,
            final_tokens,
        )
    if after_count == 1 and compacted.budget_utilization(budget) >= threshold:
        logging.warning(
            "[weft] Context still exceeds budget but only 1 iteration remains, "
            "cannot compact further (tokens=%d, budget=%d)",
            final_tokens,
            budget,
        )

    events.emit(
        events.TOKEN_BASED_COMPACTION,
        {
            "before_count": before_count,
            "after_count": after_count,
            "removed": removed,
            "final_tokens": final_tokens,
        },
        {"budget": budget, "threshold": threshold},
    )
    return compacted


@dataclass
class CompactionOptions:
    """Compaction options for ContextCompactor.

    Attributes:
        strategy: Which compaction strategy to apply
        window_size: Iterations kept by the sliding window (default: 5)
        budget: Token budget for the token-based strategy
        threshold: Utilization that triggers token-based compaction (default: 1.0)
    """

    strategy: CompactionStrategy = CompactionStrategy.SLIDING_WINDOW
    window_size: int = 5
    budget: Optional[int] = None
    threshold: float = 1.0


class ContextCompactor:
    """Applies the configured compaction strategy to a context.

    Usage:
        compactor = ContextCompactor(CompactionOptions(window_size=3))
        context = compactor.compact(context)
    """

    def __init__(self, options: Optional[CompactionOptions] = None):
        self.options = options or CompactionOptions()
        if self.options.strategy is CompactionStrategy.TOKEN_BASED and self.options.budget is None:
            raise ValueError("budget is required for token-based compaction")

    @classmethod
    def from_config(cls, config) -> ContextCompactor:
        """Build a compactor from a weft.config.CompactionConfig."""
        return cls(
            CompactionOptions(
                strategy=config.strategy,
                window_size=config.window_size,
                budget=config.budget,
                threshold=config.threshold,
            )
        )

    def compact(self, context: Context) -> Context:
        strategy = self.options.strategy
        if strategy is CompactionStrategy.SLIDING_WINDOW:
            return sliding_window_compact(context, self.options.window_size)
        if strategy is CompactionStrategy.TOKEN_BASED:
            return token_based_compact(context, self.options.budget, self.options.threshold)
        return context


__all__ = [
    "sliding_window_compact",
    "token_based_compact",
    "CompactionOptions",
    "ContextCompactor",
]
