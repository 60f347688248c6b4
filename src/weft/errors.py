"""Error types for the weft runtime.

Every failure that ends a run is reported as an AgentError carrying:
- type: one of the ErrorType categories
- message: human-readable description
- details: free-form mapping with structured context
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorType(str, Enum):
    """Categories of runtime errors."""

    CONFIG = "config_error"
    PROMPT = "prompt_error"
    SCHEMA = "schema_error"
    LLM = "llm_error"
    PARSE = "parse_error"
    HOOK = "hook_error"
    VALIDATION = "validation_error"
    BUDGET = "budget_error"


class AgentError(Exception):
    """Typed error returned (or raised) by an agent run."""

    def __init__(
        self,
        type: ErrorType,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.type = ErrorType(type)
        self.message = message
        self.details = dict(details or {})

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.message}"

    def __repr__(self) -> str:
        return f"AgentError(type={self.type.value!r}, message={self.message!r}, details={self.details!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AgentError):
            return NotImplemented
        return (self.type, self.message, self.details) == (
            other.type,
            other.message,
            other.details,
        )

    __hash__ = Exception.__hash__

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "message": self.message, "details": dict(self.details)}

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        type: ErrorType = ErrorType.LLM,
        details: Optional[dict[str, Any]] = None,
    ) -> AgentError:
        """Wrap an arbitrary exception.

        AgentErrors are returned unchanged so that an error raised deep in a
        collaborator keeps its original category.
        """
        if isinstance(exc, AgentError):
            return exc
        merged = {"exception": type_name(exc)}
        merged.update(details or {})
        return cls(type, str(exc) or type_name(exc), merged)


def type_name(exc: BaseException) -> str:
    return exc.__class__.__name__


def config_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.CONFIG, message, details)


def prompt_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.PROMPT, message, details)


def schema_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.SCHEMA, message, details)


def llm_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.LLM, message, details)


def parse_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.PARSE, message, details)


def hook_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.HOOK, message, details)


def validation_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.VALIDATION, message, details)


def budget_error(message: str, details: Optional[dict[str, Any]] = None) -> AgentError:
    return AgentError(ErrorType.BUDGET, message, details)


__all__ = [
    "ErrorType",
    "AgentError",
    "config_error",
    "prompt_error",
    "schema_error",
    "llm_error",
    "parse_error",
    "hook_error",
    "validation_error",
    "budget_error",
]
