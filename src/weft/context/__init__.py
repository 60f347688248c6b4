"""Context module.

The conversation state of a run and the utilities that keep it small:

**Module Organization:**

- **types.py**: Messages, tool calls, tool outcomes, token usage, iterations
- **model.py**: The immutable Context value and its operations
- **compactor.py**: Sliding-window and token-based compaction
"""

from .compactor import (
    CompactionOptions,
    ContextCompactor,
    sliding_window_compact,
    token_based_compact,
)
from .model import Context
from .types import (
    Err,
    Halt,
    Iteration,
    Message,
    Ok,
    Role,
    TokenUsage,
    ToolCall,
    ToolOutcome,
    ToolResult,
)

__all__ = [
    # Model
    "Context",
    # Types
    "Role",
    "Message",
    "ToolCall",
    "Ok",
    "Err",
    "Halt",
    "ToolOutcome",
    "ToolResult",
    "TokenUsage",
    "Iteration",
    # Compaction
    "CompactionOptions",
    "ContextCompactor",
    "sliding_window_compact",
    "token_based_compact",
]
