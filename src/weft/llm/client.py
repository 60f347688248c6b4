"""Model client interface.

The runtime talks to language models only through ModelClient. Concrete
clients (HTTP APIs, local models) live outside this package; a
ScriptedModelClient is provided for tests and examples.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Optional, Protocol, Union, runtime_checkable

from .types import ModelResponse


@runtime_checkable
class ModelClient(Protocol):
    """Anything that can turn messages and tool schemas into a ModelResponse."""

    async def generate(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelResponse: ...


ScriptStep = Union[
    ModelResponse,
    BaseException,
    Callable[[list[dict[str, Any]], list[dict[str, Any]]], ModelResponse],
]


class ScriptedModelClient:
    """Replays a fixed sequence of responses.

    Each step is a ModelResponse, an exception to raise, or a callable
    receiving (messages, tools). Once the script is exhausted the last step
    repeats. Every call is recorded in `calls`.

    Usage:
        client = ScriptedModelClient([
            ModelResponse(tool_calls=[ToolCall.create("search", {"q": "x"})]),
            ModelResponse(content="done"),
        ])
    """

    def __init__(self, script: Iterable[ScriptStep], delay_ms: Optional[int] = None):
        self.script = list(script)
        if not self.script:
            raise ValueError("script must contain at least one step")
        self.delay_ms = delay_ms
        self.calls: list[tuple[list[dict[str, Any]], list[dict[str, Any]]]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]
    ) -> ModelResponse:
        step = self.script[min(len(self.calls), len(self.script) - 1)]
        self.calls.append((messages, tools))

        if self.delay_ms:
            await asyncio.sleep(self.delay_ms / 1000)

        if isinstance(step, BaseException):
            raise step
        if callable(step) and not isinstance(step, ModelResponse):
            return step(messages, tools)
        return step


__all__ = ["ModelClient", "ScriptedModelClient"]
