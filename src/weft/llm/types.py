"""LLM Types - Data structures exchanged with model clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..context.types import TokenUsage, ToolCall


@dataclass
class ModelResponse:
    """Response from a model call.

    Attributes:
        content: Generated text content
        tool_calls: Tool calls requested by the model, empty for a final answer
        usage: Token usage, None when the client does not report it
        answer: Structured final answer; falls back to content when None
        model: Model that generated the response
        finish_reason: Why generation stopped
        raw: Raw API response
    """

    content: Any = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: Optional[TokenUsage] = None
    answer: Any = None
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    raw: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.tool_calls = [
            call if isinstance(call, ToolCall) else ToolCall.from_dict(call)
            for call in self.tool_calls or ()
        ]
        self.usage = TokenUsage.from_value(self.usage)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def final_answer(self) -> Any:
        return self.answer if self.answer is not None else self.content


__all__ = ["ModelResponse"]
