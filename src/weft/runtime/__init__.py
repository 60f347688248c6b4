"""Runtime module - the agent iteration loop.

This module provides:
- AgentRuntime: drives model calls, tool execution and hooks
- RunResult / LoopState: outcome and state of a run
- ToolExecutor: sequential tool dispatch with timeouts and error policy
- ExecutionFrame: call-scoped identity handed to tools
"""

from .executor import ToolExecutor
from .frame import ExecutionFrame
from .loop import AgentRuntime, LoopState, RunResult

__all__ = [
    "AgentRuntime",
    "RunResult",
    "LoopState",
    "ToolExecutor",
    "ExecutionFrame",
]
