"""Token budget tracking.

Evaluates cumulative token usage against a configured budget at every
iteration boundary. Under the "warn" strategy an exhausted budget only
produces warning events; under "halt" it ends the run with a budget_error.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import BudgetConfig, BudgetStrategy
from .context import Context
from .errors import budget_error
from .telemetry import events

DEFAULT_WARN_THRESHOLD = 0.8


class BudgetStatus(str, Enum):
    OK = "ok"
    WARN = "warn"
    HALT = "halt"


@dataclass(frozen=True)
class BudgetCheck:
    """Outcome of a budget check."""

    status: BudgetStatus
    cumulative_tokens: int
    limit: Optional[int] = None
    threshold_tokens: Optional[int] = None
    warn_threshold: float = DEFAULT_WARN_THRESHOLD

    @property
    def exceeded_by(self) -> int:
        if self.limit is None:
            return 0
        return max(self.cumulative_tokens - self.limit, 0)

    @property
    def threshold_percent(self) -> int:
        """Configured warn threshold as a whole percentage, e.g. 80."""
        return int(round(self.warn_threshold * 100, 2))

    @property
    def utilization_percent(self) -> Optional[float]:
        """Share of the limit used so far, e.g. 105.0."""
        if not self.limit:
            return None
        return round(self.cumulative_tokens / self.limit * 100, 1)


def check_limit(
    cumulative_tokens: int,
    limit: Optional[int],
    warn_threshold: float = DEFAULT_WARN_THRESHOLD,
    strategy: BudgetStrategy = BudgetStrategy.WARN,
) -> BudgetCheck:
    """Compare cumulative usage against a limit.

    Both boundaries are inclusive: reaching the limit halts (under the halt
    strategy) and reaching the warn threshold warns.

    Args:
        cumulative_tokens: Tokens used so far
        limit: Token budget, None disables the check
        warn_threshold: Fraction of the limit at which warnings start
        strategy: BudgetStrategy.HALT or BudgetStrategy.WARN

    Returns:
        BudgetCheck with status ok, warn or halt
    """
    if limit is None:
        return BudgetCheck(BudgetStatus.OK, cumulative_tokens, warn_threshold=warn_threshold)

    threshold_tokens = math.floor(limit * warn_threshold)
    if cumulative_tokens >= limit and BudgetStrategy(strategy) is BudgetStrategy.HALT:
        status = BudgetStatus.HALT
    elif cumulative_tokens >= threshold_tokens:
        status = BudgetStatus.WARN
    else:
        status = BudgetStatus.OK
    return BudgetCheck(status, cumulative_tokens, limit, threshold_tokens, warn_threshold)


class TokenBudgetTracker:
    """Enforces a BudgetConfig against a run's context.

    The limit is the configured token_budget or, when that is unset, the
    entry of token_limits for the model that served the run.

    Usage:
        tracker = TokenBudgetTracker(BudgetConfig(token_budget=1000))
        tracker.check(context)  # raises AgentError on a hard halt

        tracker = TokenBudgetTracker(BudgetConfig(token_limits={"openai:gpt-4": 128000}))
        tracker.check(context, model="openai:gpt-4")
    """

    def __init__(self, config: Optional[BudgetConfig] = None):
        self.config = config or BudgetConfig()

    def check(self, context: Context, model: Optional[str] = None) -> BudgetCheck:
        """Evaluate the context's cumulative usage.

        Emits a warning event for every check in the warn band.

        Args:
            context: Context whose cumulative usage is checked
            model: Model identifier used to look up token_limits

        Raises:
            AgentError: budget_error when the halt strategy's limit is reached
        """
        result = check_limit(
            context.cumulative_tokens.total_tokens,
            self.config.limit_for(model),
            self.config.warn_threshold,
            self.config.strategy,
        )

        if result.status is BudgetStatus.HALT:
            raise budget_error(
                f"Token budget ({result.limit}) exceeded",
                {
                    "cumulative_tokens": result.cumulative_tokens,
                    "token_budget": result.limit,
                    "exceeded_by": result.exceeded_by,
                },
            )

        if result.status is BudgetStatus.WARN:
            logging.warning(
                "[weft] Token usage %d reached %.1f%% of budget %d (warn threshold %d%%)",
                result.cumulative_tokens,
                result.utilization_percent,
                result.limit,
                result.threshold_percent,
            )
            events.emit(
                events.BUDGET_WARNING,
                {
                    "cumulative_tokens": result.cumulative_tokens,
                    "limit": result.limit,
                    "threshold_percent": result.threshold_percent,
                    "utilization_percent": result.utilization_percent,
                },
                {"strategy": self.config.strategy.value, "model": model},
            )

        return result


__all__ = [
    "BudgetStatus",
    "BudgetCheck",
    "check_limit",
    "TokenBudgetTracker",
    "DEFAULT_WARN_THRESHOLD",
]
