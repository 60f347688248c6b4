"""weft - agentic tool-calling runtime.

weft drives a bounded loop of model call, tool execution and context update
until the model produces a final answer, a tool halts the run, or a limit is
hit. Hooks let callers shrink tool results and compact the conversation
("progressive disclosure") without touching the loop.

Quick Start:
    ```python
    from weft import AgentRuntime, Halt, RuntimeConfig, tool

    @tool("lookup_order", description="Fetch an order by id")
    def lookup_order(order_id: str) -> dict:
        return {"id": order_id, "status": "shipped"}

    @tool("finish", description="Return the final answer")
    def finish(answer: str):
        return Halt({"answer": answer})

    runtime = AgentRuntime(
        client=my_model_client,
        tools=[lookup_order, finish],
        config=RuntimeConfig(system_prompt="You answer order questions."),
    )
    result = await runtime.run("Where is order 42?")
    print(result.unwrap())
    ```

Module structure:
    - context/: Context model, message types, compaction
    - processors/: truncate / summarize / sample tool results
    - runtime/: AgentRuntime loop and ToolExecutor
    - tools/: Tool decorator and registry
    - llm/: Model client interface
    - hooks.py: Loop extension points
    - budget.py: Token budget tracking
    - config.py: weft.toml configuration
    - telemetry/: OpenTelemetry tracing and observability events
"""

from .budget import BudgetCheck, BudgetStatus, TokenBudgetTracker, check_limit
from .config import (
    BudgetConfig,
    BudgetStrategy,
    CompactionConfig,
    CompactionStrategy,
    OnError,
    RuntimeConfig,
    ToolConfig,
    load_runtime_config,
)
from .context import (
    CompactionOptions,
    Context,
    ContextCompactor,
    Err,
    Halt,
    Iteration,
    Message,
    Ok,
    Role,
    TokenUsage,
    ToolCall,
    ToolResult,
    sliding_window_compact,
    token_based_compact,
)
from .errors import AgentError, ErrorType
from .hooks import (
    ContextInput,
    Hooks,
    IterationInput,
    MessagesInput,
    ProgressiveDisclosureHooks,
    ToolResultsInput,
)
from .llm import ModelClient, ModelResponse, ScriptedModelClient
from .processors import process_tool_results, sample, summarize, truncate
from .runtime import AgentRuntime, ExecutionFrame, LoopState, RunResult, ToolExecutor
from .telemetry import events, init_telemetry, shutdown_telemetry
from .tools import Tool, ToolRegistry, tool

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "AgentRuntime",
    "RunResult",
    "LoopState",
    "ToolExecutor",
    "ExecutionFrame",
    # Context
    "Context",
    "Iteration",
    "Message",
    "Role",
    "ToolCall",
    "ToolResult",
    "Ok",
    "Err",
    "Halt",
    "TokenUsage",
    # Compaction
    "CompactionOptions",
    "ContextCompactor",
    "sliding_window_compact",
    "token_based_compact",
    # Processors
    "truncate",
    "summarize",
    "sample",
    "process_tool_results",
    # Hooks
    "Hooks",
    "ProgressiveDisclosureHooks",
    "ToolResultsInput",
    "ContextInput",
    "MessagesInput",
    "IterationInput",
    # Budget
    "TokenBudgetTracker",
    "BudgetCheck",
    "BudgetStatus",
    "check_limit",
    # Tools
    "Tool",
    "tool",
    "ToolRegistry",
    # LLM
    "ModelClient",
    "ModelResponse",
    "ScriptedModelClient",
    # Config
    "RuntimeConfig",
    "ToolConfig",
    "BudgetConfig",
    "CompactionConfig",
    "OnError",
    "BudgetStrategy",
    "CompactionStrategy",
    "load_runtime_config",
    # Errors
    "AgentError",
    "ErrorType",
    # Telemetry
    "events",
    "init_telemetry",
    "shutdown_telemetry",
]
