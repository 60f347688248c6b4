"""Context types - Value objects that make up a run's conversation.

This module contains the data types threaded through the iteration loop:
- Role / Message: a single conversation turn
- ToolCall: a tool invocation requested by the model
- Ok / Err / Halt: the outcome of a tool invocation
- ToolResult: an outcome tagged with the call it answers
- TokenUsage: token accounting reported by the model client
- Iteration: one pass of model call plus optional tool execution

All types are frozen dataclasses. Operations that change a value return a
new one.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_json(value: Any) -> str:
    """Encode a value as compact JSON, stringifying anything unknown."""
    return json.dumps(value, separators=(",", ":"), default=_json_default)


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


class Role(str, Enum):
    """Author of a message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        arguments: Optional[Union[Mapping[str, Any], str]] = None,
        id: Optional[str] = None,
    ) -> ToolCall:
        """Create a tool call, generating an id when none is given.

        Arguments may be a mapping or a JSON-encoded object, as some model
        clients deliver them as strings.
        """
        if isinstance(arguments, str):
            arguments = json.loads(arguments) if arguments.strip() else {}
        return cls(
            id=id or f"call_{uuid.uuid4().hex[:16]}",
            name=name,
            arguments=dict(arguments or {}),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolCall:
        """Accepts both the flat form and the provider form with a nested "function"."""
        if "function" in data:
            function = data["function"]
            return cls.create(function["name"], function.get("arguments"), data.get("id"))
        return cls.create(data["name"], data.get("arguments"), data.get("id"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": to_json(dict(self.arguments))},
        }


@dataclass(frozen=True)
class Ok:
    """Successful tool outcome."""

    value: Any = None


@dataclass(frozen=True)
class Err:
    """Failed tool outcome."""

    error: Any = None


@dataclass(frozen=True)
class Halt:
    """Tool outcome that ends the run successfully with `value` as the answer."""

    value: Any = None

    @property
    def completed(self) -> bool:
        return True


ToolOutcome = Union[Ok, Err, Halt]


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a single tool call."""

    id: str
    name: str
    outcome: ToolOutcome

    @property
    def is_ok(self) -> bool:
        return isinstance(self.outcome, Ok)

    @property
    def is_error(self) -> bool:
        return isinstance(self.outcome, Err)

    @property
    def is_halt(self) -> bool:
        return isinstance(self.outcome, Halt)

    @property
    def payload(self) -> Any:
        if isinstance(self.outcome, Err):
            return self.outcome.error
        return self.outcome.value

    def with_value(self, value: Any) -> ToolResult:
        """Replace the payload of a successful result."""
        return replace(self, outcome=Ok(value))

    def to_dict(self) -> dict[str, Any]:
        data = {
            "type": "tool_result",
            "tool_call_id": self.id,
            "name": self.name,
            "content": self.payload,
            "is_error": self.is_error,
        }
        if self.is_halt:
            data["completed"] = True
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolResult:
        if data.get("is_error"):
            outcome: ToolOutcome = Err(data.get("content"))
        elif data.get("completed"):
            outcome = Halt(data.get("content"))
        else:
            outcome = Ok(data.get("content"))
        return cls(id=data["tool_call_id"], name=data["name"], outcome=outcome)


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported for one model call.

    When total_tokens is not given it is input_tokens + output_tokens.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        if self.total_tokens is None:
            object.__setattr__(self, "total_tokens", self.input_tokens + self.output_tokens)
        for name in ("input_tokens", "output_tokens", "total_tokens"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    @classmethod
    def from_value(cls, value: Any) -> Optional[TokenUsage]:
        """Normalize usage as reported by a model client.

        Accepts a TokenUsage, a mapping or None. Missing counts are zero.
        """
        if value is None or isinstance(value, TokenUsage):
            return value
        if isinstance(value, Mapping):
            return cls(
                input_tokens=int(value.get("input_tokens") or 0),
                output_tokens=int(value.get("output_tokens") or 0),
                total_tokens=(
                    int(value["total_tokens"]) if value.get("total_tokens") is not None else None
                ),
            )
        raise TypeError(f"Unsupported usage value: {value!r}")

    def to_dict(self) -> dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class Message:
    """A single message in the conversation."""

    role: Role
    content: Any
    tool_calls: Optional[tuple[ToolCall, ...]] = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: Any) -> Message:
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: Any, tool_calls: tuple[ToolCall, ...] = ()) -> Message:
        return cls(Role.ASSISTANT, content, tuple(tool_calls) or None)

    @classmethod
    def tool_results(cls, results: tuple[ToolResult, ...]) -> Message:
        return cls(Role.TOOL_RESULT, [result.to_dict() for result in results])

    @property
    def text(self) -> str:
        """Content as text, JSON-encoding anything that is not a string."""
        if isinstance(self.content, str):
            return self.content
        if self.content is None:
            return ""
        return to_json(self.content)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        tool_calls = data.get("tool_calls")
        return cls(
            role=Role(data["role"]),
            content=data.get("content"),
            tool_calls=tuple(ToolCall.from_dict(c) for c in tool_calls) if tool_calls else None,
        )


# Metadata keys holding TokenUsage values
_USAGE_KEYS = ("current_usage", "cumulative_tokens")
# Metadata keys holding datetimes
_TIME_KEYS = ("llm_response_at", "summarized_at")


@dataclass(frozen=True)
class Iteration:
    """One pass of the loop: a model call and the tools it requested."""

    number: int
    messages: tuple[Message, ...] = ()
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.completed_at is None

    @property
    def current_usage(self) -> Optional[TokenUsage]:
        return self.metadata.get("current_usage")

    def with_metadata(self, **updates: Any) -> Iteration:
        merged = dict(self.metadata)
        merged.update(updates)
        return replace(self, metadata=merged)

    def mark_as_summarized(self, summary: str) -> Iteration:
        """Flag the iteration as replaced by a summary."""
        return self.with_metadata(summarized=True, summary=summary, summarized_at=utc_now())

    @property
    def is_summarized(self) -> bool:
        return bool(self.metadata.get("summarized", False))

    @property
    def summary(self) -> Optional[str]:
        return self.metadata.get("summary")

    def to_dict(self) -> dict[str, Any]:
        metadata = {}
        for key, value in self.metadata.items():
            if isinstance(value, TokenUsage):
                value = value.to_dict()
            elif isinstance(value, datetime):
                value = value.isoformat()
            metadata[key] = value
        return {
            "number": self.number,
            "messages": [m.to_dict() for m in self.messages],
            "tool_calls": [c.to_dict() for c in self.tool_calls],
            "tool_results": [r.to_dict() for r in self.tool_results],
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metadata": metadata,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Iteration:
        metadata = dict(data.get("metadata") or {})
        for key in _USAGE_KEYS:
            if metadata.get(key) is not None:
                metadata[key] = TokenUsage.from_value(metadata[key])
        for key in _TIME_KEYS:
            if isinstance(metadata.get(key), str):
                metadata[key] = _parse_time(metadata[key])
        return cls(
            number=data["number"],
            messages=tuple(Message.from_dict(m) for m in data.get("messages", ())),
            tool_calls=tuple(ToolCall.from_dict(c) for c in data.get("tool_calls", ())),
            tool_results=tuple(ToolResult.from_dict(r) for r in data.get("tool_results", ())),
            started_at=_parse_time(data.get("started_at")),
            completed_at=_parse_time(data.get("completed_at")),
            metadata=metadata,
        )


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


__all__ = [
    "Role",
    "ToolCall",
    "Ok",
    "Err",
    "Halt",
    "ToolOutcome",
    "ToolResult",
    "TokenUsage",
    "Message",
    "Iteration",
    "utc_now",
    "to_json",
]
