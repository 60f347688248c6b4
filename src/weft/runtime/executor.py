"""Tool execution for the iteration loop.

This module handles:
- Resolving requested tool calls against the ToolRegistry
- Invoking tools sequentially with a per-call timeout
- Converting failures into error results, or aborting under on_error=halt
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Iterable, Optional

from opentelemetry import trace
from pydantic import ValidationError

from ..config import OnError, ToolConfig
from ..context.types import Err, ToolCall, ToolResult
from ..errors import llm_error
from ..tools import ToolRegistry
from .frame import ExecutionFrame

# Get tracer for tool execution spans
tracer = trace.get_tracer(__name__)


class ToolExecutor:
    """Runs the tool calls requested in one iteration."""

    def __init__(self, registry: ToolRegistry, config: Optional[ToolConfig] = None):
        """Initialize tool executor.

        Args:
            registry: Tools available to the model
            config: Timeout and error policy (default: ToolConfig())
        """
        self.registry = registry
        self.config = config or ToolConfig()

    async def execute_all(
        self, tool_calls: Iterable[ToolCall], frame: Optional[ExecutionFrame] = None
    ) -> list[ToolResult]:
        """Execute tool calls one at a time, in the order requested.

        Args:
            tool_calls: Calls requested by the model
            frame: Execution frame handed to every tool

        Returns:
            One ToolResult per call

        Raises:
            AgentError: llm_error on the first failing call when on_error is halt
        """
        results = []
        for call in tool_calls:
            result = await self.execute(call, frame)
            if result.is_error and self.config.on_error is OnError.HALT:
                logging.warning(
                    "[weft] Tool %s failed, halting remaining tool calls: %s",
                    call.name,
                    result.payload,
                )
                raise llm_error(
                    "Tool execution failed",
                    {"tool": call.name, "tool_call_id": call.id, "error": result.payload},
                )
            results.append(result)
        return results

    async def execute(
        self, tool_call: ToolCall, frame: Optional[ExecutionFrame] = None
    ) -> ToolResult:
        """Execute a single tool call. Never raises for tool failures.

        Args:
            tool_call: The tool call to execute
            frame: Execution frame handed to the tool

        Returns:
            ToolResult with the tool's outcome, or Err describing the failure
        """
        with tracer.start_as_current_span(
            "weft.tool_call",
            attributes={
                "tool.name": tool_call.name,
                "tool.call_id": tool_call.id,
                "tool.arguments": json.dumps(dict(tool_call.arguments), default=str)[:500],
            },
        ) as span:
            start = time.time()

            registered = self.registry.get(tool_call.name)
            if registered is None:
                span.set_attribute("tool.success", False)
                span.set_attribute("tool.error", "not_found")
                return ToolResult(tool_call.id, tool_call.name, Err(f"Tool '{tool_call.name}' not found"))

            try:
                outcome = await asyncio.wait_for(
                    registered.invoke(tool_call.arguments, frame),
                    timeout=self.config.timeout_ms / 1000,
                )
            except asyncio.TimeoutError as e:
                outcome = Err(f"Tool '{tool_call.name}' timed out after {self.config.timeout_ms}ms")
                span.record_exception(e)
            except ValidationError as e:
                outcome = Err(f"Invalid arguments for tool '{tool_call.name}': {e}")
                span.record_exception(e)
            except Exception as e:
                outcome = Err(str(e) or e.__class__.__name__)
                span.record_exception(e)

            result = ToolResult(tool_call.id, tool_call.name, outcome)
            latency_ms = int((time.time() - start) * 1000)
            span.set_attribute("tool.success", not result.is_error)
            span.set_attribute("tool.halt", result.is_halt)
            span.set_attribute("tool.latency_ms", latency_ms)
            if result.is_error:
                span.set_attribute("tool.error", str(result.payload)[:500])
                logging.debug("[weft] Tool %s failed: %s", tool_call.name, result.payload)
            return result


__all__ = ["ToolExecutor"]
