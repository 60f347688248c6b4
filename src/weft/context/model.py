"""Context - the conversation state of a single run.

A Context is an ordered sequence of iterations plus an iteration counter.
The last iteration is the open one: the loop appends messages to it until
tool results are folded in, at which point it is completed and the next
one is opened.

Context values are immutable. Every operation returns a new Context, so a
run can keep old values around for diffing or retries without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from .types import (
    Iteration,
    Message,
    TokenUsage,
    ToolCall,
    ToolResult,
    to_json,
    utc_now,
)

# Rough characters-per-token ratio used by estimate_token_count
CHARS_PER_TOKEN = 4

# Fixed per-message overhead for role and formatting tokens
MESSAGE_OVERHEAD_TOKENS = 10


def _require_positive_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class Context:
    """Conversation state for one run.

    Attributes:
        iterations: Iterations in execution order
        current_iteration: Number of started iterations. Compaction removes
            iterations but never lowers this counter.
    """

    iterations: tuple[Iteration, ...] = ()
    current_iteration: int = 0

    @classmethod
    def new(cls, user_input: Any, system_prompt: Optional[str] = None) -> Context:
        """Start a context whose first iteration holds the initial prompt.

        Args:
            user_input: User request. A mapping with a "message" key uses
                that value as content.
            system_prompt: Optional system message placed before the user message

        Returns:
            Context with one open iteration and current_iteration == 1
        """
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(_user_content(user_input)))

        first = Iteration(number=1, messages=tuple(messages), started_at=utc_now())
        return cls(iterations=(first,), current_iteration=1)

    # ------------------------------------------------------------------
    # Iteration access
    # ------------------------------------------------------------------

    @property
    def open_iteration(self) -> Iteration:
        if not self.iterations:
            raise ValueError("context has no iterations")
        return self.iterations[-1]

    def _update_open(self, fn: Callable[[Iteration], Iteration]) -> Context:
        updated = fn(self.open_iteration)
        return replace(self, iterations=self.iterations[:-1] + (updated,))

    def get_iteration(self, number: int) -> Optional[Iteration]:
        """Return the iteration with the given 1-based number, if still present."""
        for iteration in self.iterations:
            if iteration.number == number:
                return iteration
        return None

    def count_iterations(self) -> int:
        return len(self.iterations)

    def get_iteration_range(self, start: int, end: int) -> tuple[Iteration, ...]:
        """Return iterations by position, both ends inclusive (0-based)."""
        if start < 0 or end < start:
            return ()
        return self.iterations[start : end + 1]

    def update_iteration_metadata(self, **updates: Any) -> Context:
        return self._update_open(lambda it: it.with_metadata(**updates))

    # ------------------------------------------------------------------
    # Loop operations
    # ------------------------------------------------------------------

    def add_assistant_message(
        self, content: Any, tool_calls: Iterable[ToolCall] = ()
    ) -> Context:
        """Append an assistant message to the open iteration."""
        calls = tuple(tool_calls)
        message = Message.assistant(content, calls)

        def update(it: Iteration) -> Iteration:
            return replace(
                it,
                messages=it.messages + (message,),
                tool_calls=it.tool_calls + calls,
            )

        return self._update_open(update)

    def add_tool_results(self, results: Iterable[ToolResult]) -> Context:
        """Complete the open iteration with tool results and open the next one.

        This is the only operation that advances current_iteration.
        """
        results = tuple(results)
        now = utc_now()

        def complete(it: Iteration) -> Iteration:
            return replace(
                it,
                messages=it.messages + (Message.tool_results(results),),
                tool_results=it.tool_results + results,
                completed_at=now,
            )

        completed = self._update_open(complete)
        next_number = self.current_iteration + 1
        following = Iteration(number=next_number, started_at=now)
        return replace(
            completed,
            iterations=completed.iterations + (following,),
            current_iteration=next_number,
        )

    def add_token_usage(self, usage: Any) -> Context:
        """Record usage for the open iteration and refresh the cumulative snapshot.

        Args:
            usage: TokenUsage, a mapping of token counts, or None when the
                model client did not report usage
        """
        current = TokenUsage.from_value(usage)
        recorded = self._update_open(lambda it: it.with_metadata(current_usage=current))
        return recorded.update_iteration_metadata(cumulative_tokens=recorded.cumulative_tokens)

    @property
    def cumulative_tokens(self) -> TokenUsage:
        """Sum of current_usage over all iterations, missing usage counted as zero."""
        total = TokenUsage()
        for iteration in self.iterations:
            if iteration.current_usage is not None:
                total = total + iteration.current_usage
        return total

    def add_llm_call_timing(self, now: Optional[datetime] = None) -> Context:
        """Record when the model responded relative to the iteration start."""
        response_at = now or utc_now()
        started_at = self.open_iteration.started_at
        duration_ms = (
            int((response_at - started_at).total_seconds() * 1000) if started_at else 0
        )
        return self.update_iteration_metadata(
            llm_response_at=response_at, llm_duration_ms=duration_ms
        )

    def exceeded_max_iterations(self, max_iterations: int) -> bool:
        """True once current_iteration reaches max_iterations (inclusive)."""
        return self.current_iteration >= max_iterations

    def extract_tool_calls(self) -> tuple[ToolCall, ...]:
        """Tool calls attached to the last message of the open iteration."""
        if not self.iterations or not self.open_iteration.messages:
            return ()
        return self.open_iteration.messages[-1].tool_calls or ()

    def to_messages(self) -> list[dict[str, Any]]:
        """Flatten all messages into the provider message format."""
        return [
            message.to_dict() for iteration in self.iterations for message in iteration.messages
        ]

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def keep_last_iterations(self, count: int) -> Context:
        """Keep only the last `count` iterations, in order."""
        _require_positive_int(count, "count")
        if count >= len(self.iterations):
            return self
        return replace(self, iterations=self.iterations[-count:])

    def remove_old_iterations(
        self, max_age_seconds: float, now: Optional[datetime] = None
    ) -> Context:
        """Drop completed iterations older than max_age_seconds.

        Iterations without completed_at (the open one) are always kept.
        """
        if isinstance(max_age_seconds, bool) or not isinstance(max_age_seconds, (int, float)):
            raise ValueError(f"max_age_seconds must be a number, got {max_age_seconds!r}")
        if max_age_seconds < 0:
            raise ValueError("max_age_seconds must not be negative")

        cutoff = (now or utc_now()) - timedelta(seconds=max_age_seconds)
        kept = tuple(
            it for it in self.iterations if it.completed_at is None or it.completed_at >= cutoff
        )
        if len(kept) == len(self.iterations):
            return self
        return replace(self, iterations=kept)

    # ------------------------------------------------------------------
    # Token estimation
    # ------------------------------------------------------------------

    def estimate_token_count(self) -> int:
        """Estimate the prompt size in tokens.

        Uses roughly four characters per token plus a fixed overhead per
        message. Expect an error of 20-30% against a real tokenizer; use
        reported usage where exact accounting matters.
        """
        total = 0
        for iteration in self.iterations:
            for message in iteration.messages:
                total += len(message.text) // CHARS_PER_TOKEN + MESSAGE_OVERHEAD_TOKENS
        return total

    def exceeds_token_budget(self, budget: int) -> bool:
        _require_positive_int(budget, "budget")
        return self.estimate_token_count() > budget

    def tokens_remaining(self, budget: int) -> int:
        _require_positive_int(budget, "budget")
        return max(budget - self.estimate_token_count(), 0)

    def budget_utilization(self, budget: int) -> float:
        """Estimated tokens as a fraction of budget; may exceed 1.0."""
        _require_positive_int(budget, "budget")
        return self.estimate_token_count() / budget

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "iterations": [it.to_dict() for it in self.iterations],
            "current_iteration": self.current_iteration,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Context:
        return cls(
            iterations=tuple(Iteration.from_dict(it) for it in data.get("iterations", ())),
            current_iteration=data.get("current_iteration", 0),
        )


def _user_content(user_input: Any) -> Any:
    if isinstance(user_input, Mapping):
        if "message" in user_input:
            return user_input["message"]
        return to_json(dict(user_input))
    return user_input


__all__ = [
    "Context",
    "CHARS_PER_TOKEN",
    "MESSAGE_OVERHEAD_TOKENS",
]
