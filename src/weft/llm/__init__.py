"""LLM module - the runtime's view of a language model.

This module provides:
- ModelClient: protocol implemented by concrete model clients
- ModelResponse: content, requested tool calls and usage of one call
- ScriptedModelClient: replays canned responses for tests and examples
"""

from .client import ModelClient, ScriptedModelClient
from .types import ModelResponse

__all__ = [
    "ModelClient",
    "ModelResponse",
    "ScriptedModelClient",
]
