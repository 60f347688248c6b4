"""Hook pipeline - extension points of the iteration loop.

Subclass Hooks and override the methods you need; every method defaults to
pass-through. Methods may be plain functions or coroutines.

    class StopAfterTwo(Hooks):
        def on_iteration_start(self, data):
            if data.iteration_number > 2:
                raise hook_error("stopped by policy")

Raising from any hook aborts the run. AgentErrors keep their type; any
other exception is reported as a hook_error.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .context import Context, ToolResult
from .context.compactor import ContextCompactor
from .errors import AgentError, hook_error
from .processors import process_tool_results
from .telemetry import events

if TYPE_CHECKING:
    from .runtime.frame import ExecutionFrame

HOOK_NAMES = (
    "prepare_tool_results",
    "prepare_context",
    "prepare_messages",
    "on_iteration_start",
    "on_iteration_complete",
)


@dataclass(frozen=True)
class ToolResultsInput:
    """Input for prepare_tool_results."""

    results: list[ToolResult]
    iteration_number: int
    frame: Optional[ExecutionFrame] = None


@dataclass(frozen=True)
class ContextInput:
    """Input for prepare_context."""

    context: Context
    iteration_number: int
    frame: Optional[ExecutionFrame] = None


@dataclass(frozen=True)
class MessagesInput:
    """Input for prepare_messages."""

    messages: list[dict[str, Any]]
    context: Context
    frame: Optional[ExecutionFrame] = None


@dataclass(frozen=True)
class IterationInput:
    """Input for on_iteration_start and on_iteration_complete."""

    iteration_number: int
    context: Context
    frame: Optional[ExecutionFrame] = None


class Hooks:
    """Base class for loop hooks. Every method is an identity by default."""

    def prepare_tool_results(self, data: ToolResultsInput) -> list[ToolResult]:
        """Transform tool results before they are added to the context."""
        return data.results

    def prepare_context(self, data: ContextInput) -> Context:
        """Transform the context after an iteration completes (compaction point)."""
        return data.context

    def prepare_messages(self, data: MessagesInput) -> list[dict[str, Any]]:
        """Transform the messages sent to the model client."""
        return data.messages

    def on_iteration_start(self, data: IterationInput) -> None:
        """Called before each model call. Raise to stop the run."""

    def on_iteration_complete(self, data: IterationInput) -> None:
        """Called after tool results are added. Raise to stop the run."""


async def run_hook(hooks: Hooks, name: str, data: Any, default: Any = None) -> Any:
    """Invoke a hook method, awaiting it if needed.

    Returns `default` when a prepare_* hook returns None.

    Raises:
        AgentError: The hook's own AgentError, or hook_error for anything else
    """
    method = getattr(hooks, name)
    events.emit(events.HOOK_START, {}, {"hook": name})
    start = time.time()
    try:
        result = method(data)
        if hasattr(result, "__await__"):
            result = await result
    except AgentError:
        raise
    except Exception as e:
        raise hook_error(
            f"Hook {name} failed: {e}", {"hook": name, "exception": e.__class__.__name__}
        ) from e
    finally:
        events.emit(
            events.HOOK_STOP, {"duration_ms": int((time.time() - start) * 1000)}, {"hook": name}
        )
    return default if result is None else result


class ProgressiveDisclosureHooks(Hooks):
    """Hooks that shrink tool results and compact the context.

    Usage:
        hooks = ProgressiveDisclosureHooks(
            truncate=500,
            summarize=True,
            sample=3,
            compactor=ContextCompactor(CompactionOptions(window_size=3)),
        )
    """

    def __init__(
        self,
        truncate: Optional[int] = None,
        summarize: Any = False,
        sample: Optional[int] = None,
        skip_small: bool = True,
        compactor: Optional[ContextCompactor] = None,
    ):
        self.truncate = truncate
        self.summarize = summarize
        self.sample = sample
        self.skip_small = skip_small
        self.compactor = compactor

    def prepare_tool_results(self, data: ToolResultsInput) -> list[ToolResult]:
        return process_tool_results(
            data.results,
            truncate=self.truncate,
            summarize=self.summarize,
            sample=self.sample,
            skip_small=self.skip_small,
        )

    def prepare_context(self, data: ContextInput) -> Context:
        if self.compactor is None:
            return data.context
        return self.compactor.compact(data.context)


__all__ = [
    "Hooks",
    "ToolResultsInput",
    "ContextInput",
    "MessagesInput",
    "IterationInput",
    "ProgressiveDisclosureHooks",
    "run_hook",
    "HOOK_NAMES",
]
