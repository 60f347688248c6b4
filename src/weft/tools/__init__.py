"""Tools module - Tool definition and lookup.

This module provides:
- Tool: a callable with a name, description and pydantic argument model
- @tool: decorator for declaring Python functions as tools
- ToolRegistry: name to Tool lookup handed to the runtime
"""

from .registry import ToolRegistry
from .tool import Tool, as_outcome, tool

__all__ = [
    "Tool",
    "tool",
    "as_outcome",
    "ToolRegistry",
]
