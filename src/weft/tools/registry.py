"""Tool registry - maps tool names to Tool objects."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Optional, Union

from ..errors import config_error
from .tool import Tool

ToolLike = Union[Tool, Callable[..., Any]]


class ToolRegistry:
    """Name to Tool lookup used by the executor.

    Accepts Tool instances, functions decorated with @tool, and plain
    functions (registered under their own name).
    """

    def __init__(self, tools: Iterable[ToolLike] = ()):
        self._tools: dict[str, Tool] = {}
        for item in tools:
            self.register(item)

    def register(self, item: ToolLike) -> Tool:
        """Add a tool.

        Raises:
            AgentError: config_error if a tool with the same name exists
        """
        registered = _as_tool(item)
        if registered.name in self._tools:
            raise config_error(
                f"Tool '{registered.name}' is already registered", {"tool": registered.name}
            )
        self._tools[registered.name] = registered
        return registered

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """Function-calling definitions for all tools, in registration order."""
        return [t.to_schema() for t in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())


def _as_tool(item: ToolLike) -> Tool:
    if isinstance(item, Tool):
        return item
    declared = getattr(item, "__weft_tool__", None)
    if isinstance(declared, Tool):
        return declared
    if callable(item):
        return Tool.from_function(item)
    raise TypeError(f"Cannot register {item!r} as a tool")


__all__ = ["ToolRegistry"]
