"""Shared builders for weft tests."""

from __future__ import annotations

from weft.context import Context, Ok, TokenUsage, ToolCall, ToolResult


def build_context(iterations: int, content: str = "hello") -> Context:
    """Context with `iterations` completed tool passes plus the open iteration."""
    ctx = Context.new(content)
    for i in range(iterations):
        call = ToolCall.create("echo", {"i": i}, id=f"call_{i}")
        ctx = ctx.add_assistant_message(f"step {i}", [call])
        ctx = ctx.add_token_usage(TokenUsage(input_tokens=10, output_tokens=5))
        ctx = ctx.add_tool_results([ToolResult(call.id, call.name, Ok(content))])
    return ctx


def ok(name: str, value, id: str = None) -> ToolResult:
    return ToolResult(id or f"call_{name}", name, Ok(value))
