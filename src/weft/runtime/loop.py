"""Iteration loop - drives model calls and tool execution to an answer.

Each pass through the loop:

1. ITERATION_START: on_iteration_start hook, then the token budget check
2. MODEL_CALL: prepare_messages hook, model call, usage recorded
3. No tool calls: FINAL_ANSWER, the answer is parsed and the run is DONE
4. TOOL_EXECUTION: tools run, prepare_tool_results hook, results folded in
5. ITERATION_COMPLETE: on_iteration_complete and prepare_context hooks,
   then a halt result ends the run successfully and reaching max_iterations
   ends it with an llm_error

Any AgentError raised along the way moves the loop to ERROR.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from opentelemetry import trace
from pydantic import BaseModel, ValidationError

from ..budget import TokenBudgetTracker
from ..config import CompactionStrategy, RuntimeConfig
from ..context import Context, ContextCompactor, ToolResult
from ..errors import AgentError, hook_error, llm_error, parse_error
from ..hooks import (
    ContextInput,
    Hooks,
    IterationInput,
    MessagesInput,
    ProgressiveDisclosureHooks,
    ToolResultsInput,
    run_hook,
)
from ..llm import ModelClient, ModelResponse
from ..tools import ToolRegistry
from .executor import ToolExecutor
from .frame import ExecutionFrame

# Get tracer for runtime spans
tracer = trace.get_tracer(__name__)


class LoopState(str, Enum):
    """States of the iteration loop."""

    START = "start"
    ITERATION_START = "iteration_start"
    MODEL_CALL = "model_call"
    TOOL_EXECUTION = "tool_execution"
    ITERATION_COMPLETE = "iteration_complete"
    FINAL_ANSWER = "final_answer"
    DONE = "done"
    ERROR = "error"


@dataclass
class RunResult:
    """Result of an agent run.

    Attributes:
        answer: Final answer, or a halt tool's payload
        context: Context at the point the run ended
        success: False when the run ended with an error
        error: The AgentError that ended the run
        iterations: Value of the context's iteration counter at the end
        total_latency_ms: Wall-clock duration of the run
        state: Terminal loop state (DONE or ERROR)
    """

    answer: Any = None
    context: Optional[Context] = None
    success: bool = True
    error: Optional[AgentError] = None
    iterations: int = 0
    total_latency_ms: int = 0
    state: LoopState = LoopState.DONE

    def unwrap(self) -> Any:
        """Return the answer, raising the run's error if it failed."""
        if self.error is not None:
            raise self.error
        return self.answer


class _Run:
    """Mutable bookkeeping for one in-flight run."""

    def __init__(self, context: Context, frame: ExecutionFrame):
        self.context = context
        self.frame = frame
        self.state = LoopState.START
        # Model identifier reported by the latest response, keys token_limits
        self.model: Optional[str] = None


class AgentRuntime:
    """Runs the tool-calling loop for one agent.

    Usage:
        runtime = AgentRuntime(
            client=my_model_client,
            tools=[search_orders, finish],
            config=RuntimeConfig(system_prompt="You are a support agent."),
        )
        result = await runtime.run("Where is order 42?")
        print(result.unwrap())
    """

    def __init__(
        self,
        client: ModelClient,
        tools: Union[ToolRegistry, Iterable[Any], None] = None,
        hooks: Optional[Hooks] = None,
        config: Optional[RuntimeConfig] = None,
        output_model: Optional[type[BaseModel]] = None,
        name: Optional[str] = None,
    ):
        """Initialize runtime.

        Args:
            client: Model client used for every model call
            tools: ToolRegistry, or Tools / @tool functions to register
            hooks: Loop hooks (default: compaction from config, if any)
            config: Runtime configuration (default: RuntimeConfig())
            output_model: Pydantic model the final answer is validated into
            name: Agent identity placed on the execution frame
        """
        self.client = client
        self.registry = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools or ())
        self.config = config or RuntimeConfig()
        self.hooks = hooks or self._default_hooks()
        self.output_model = output_model
        self.name = name
        self.executor = ToolExecutor(self.registry, self.config.tools)
        self.budget = TokenBudgetTracker(self.config.budget)

    @classmethod
    def from_config_file(
        cls,
        client: ModelClient,
        path: Path,
        tools: Union[ToolRegistry, Iterable[Any], None] = None,
        **kwargs: Any,
    ) -> AgentRuntime:
        return cls(client, tools=tools, config=RuntimeConfig.load(path), **kwargs)

    def _default_hooks(self) -> Hooks:
        if self.config.compaction.strategy is CompactionStrategy.NONE:
            return Hooks()
        return ProgressiveDisclosureHooks(
            compactor=ContextCompactor.from_config(self.config.compaction)
        )

    async def run(
        self,
        user_input: Any,
        frame: Optional[ExecutionFrame] = None,
        context: Optional[Context] = None,
    ) -> RunResult:
        """Run the loop until a final answer, a halt, or an error.

        Args:
            user_input: User request (text or a mapping)
            frame: Execution frame for tools (default: frame naming this agent)
            context: Existing context to continue instead of starting a new one

        Returns:
            RunResult; errors are reported in it rather than raised
        """
        frame = frame or ExecutionFrame(agent=self.name)
        run = _Run(context or Context.new(user_input, self.config.system_prompt), frame)

        with tracer.start_as_current_span(
            "weft.run",
            attributes={
                "agent.name": self.name or "",
                "run.max_iterations": self.config.tools.max_iterations,
                "run.tool_count": len(self.registry),
            },
        ) as span:
            start = time.time()
            try:
                answer = await self._drive(run)
                error = None
            except AgentError as e:
                answer, error = None, e
                span.record_exception(e)
            except Exception as e:
                logging.exception("[weft] Unexpected error during run")
                answer, error = None, AgentError.from_exception(e)
                span.record_exception(e)

            if error is not None:
                run.state = LoopState.ERROR
                span.set_attribute("run.error_type", error.type.value)
                span.set_attribute("run.error", error.message)

            latency_ms = int((time.time() - start) * 1000)
            span.set_attribute("run.success", error is None)
            span.set_attribute("run.iterations", run.context.current_iteration)
            span.set_attribute("run.latency_ms", latency_ms)

            return RunResult(
                answer=answer,
                context=run.context,
                success=error is None,
                error=error,
                iterations=run.context.current_iteration,
                total_latency_ms=latency_ms,
                state=run.state,
            )

    async def _drive(self, run: _Run) -> Any:
        max_iterations = self.config.tools.max_iterations

        while True:
            number = run.context.current_iteration
            with tracer.start_as_current_span(
                "weft.iteration", attributes={"iteration.number": number}
            ) as span:
                run.state = LoopState.ITERATION_START
                await run_hook(
                    self.hooks, "on_iteration_start", IterationInput(number, run.context, run.frame)
                )
                self.budget.check(run.context, run.model)

                run.state = LoopState.MODEL_CALL
                messages = run.context.to_messages()
                messages = await run_hook(
                    self.hooks,
                    "prepare_messages",
                    MessagesInput(messages, run.context, run.frame),
                    default=messages,
                )
                response = await self._call_model(messages)
                run.model = response.model or run.model
                run.context = run.context.add_token_usage(response.usage).add_llm_call_timing()
                span.set_attribute("iteration.tool_calls", len(response.tool_calls))

                if not response.has_tool_calls:
                    run.state = LoopState.FINAL_ANSWER
                    run.context = run.context.add_assistant_message(response.content)
                    answer = self._parse_answer(response)
                    run.state = LoopState.DONE
                    return answer

                run.state = LoopState.TOOL_EXECUTION
                run.context = run.context.add_assistant_message(
                    response.content, response.tool_calls
                )
                results = await self.executor.execute_all(
                    run.context.extract_tool_calls(), run.frame
                )
                prepared_results = await run_hook(
                    self.hooks,
                    "prepare_tool_results",
                    ToolResultsInput(results, number, run.frame),
                    default=results,
                )
                results = _tool_result_list(prepared_results)
                run.context = run.context.add_tool_results(results)

                run.state = LoopState.ITERATION_COMPLETE
                await run_hook(
                    self.hooks,
                    "on_iteration_complete",
                    IterationInput(number, run.context, run.frame),
                )
                prepared = await run_hook(
                    self.hooks,
                    "prepare_context",
                    ContextInput(run.context, number, run.frame),
                    default=run.context,
                )
                if not isinstance(prepared, Context):
                    raise hook_error(
                        "Hook prepare_context must return a Context",
                        {"hook": "prepare_context", "returned": type(prepared).__name__},
                    )
                run.context = prepared

                halted = next((r for r in results if r.is_halt), None)
                if halted is not None:
                    logging.debug("[weft] Tool %s halted the run", halted.name)
                    span.set_attribute("iteration.halted", True)
                    run.state = LoopState.DONE
                    return halted.payload

                if number >= max_iterations:
                    raise llm_error(
                        f"Max iterations ({max_iterations}) exceeded",
                        {"max_iterations": max_iterations, "iterations": number},
                    )

    async def _call_model(self, messages: list[dict[str, Any]]) -> ModelResponse:
        with tracer.start_as_current_span("weft.model_call") as span:
            start = time.time()
            try:
                response = await self.client.generate(messages, self.registry.schemas())
            except AgentError:
                raise
            except Exception as e:
                span.record_exception(e)
                raise llm_error(
                    f"Model call failed: {e}", {"exception": e.__class__.__name__}
                ) from e

            if isinstance(response, Mapping):
                response = ModelResponse(**response)
            if not isinstance(response, ModelResponse):
                raise llm_error(
                    "Model client returned an unsupported response",
                    {"response_type": type(response).__name__},
                )

            span.set_attribute("llm.latency_ms", int((time.time() - start) * 1000))
            if response.model:
                span.set_attribute("llm.model", response.model)
            if response.usage is not None:
                span.set_attribute("llm.total_tokens", response.usage.total_tokens)
            return response

    def _parse_answer(self, response: ModelResponse) -> Any:
        answer = response.final_answer
        if self.output_model is None:
            return answer
        try:
            if isinstance(answer, (str, bytes)):
                return self.output_model.model_validate_json(answer)
            return self.output_model.model_validate(answer)
        except ValidationError as e:
            raise parse_error(
                f"Final answer does not match {self.output_model.__name__}",
                {"output_model": self.output_model.__name__, "error": str(e)},
            ) from e


def _tool_result_list(value: Any) -> list[ToolResult]:
    """Materialize what prepare_tool_results returned, rejecting anything else."""
    try:
        results = list(value)
    except TypeError:
        results = None
    if results is None or not all(isinstance(r, ToolResult) for r in results):
        raise hook_error(
            "Hook prepare_tool_results must return a list of ToolResult",
            {"hook": "prepare_tool_results", "returned": type(value).__name__},
        )
    return results


__all__ = ["AgentRuntime", "RunResult", "LoopState"]
