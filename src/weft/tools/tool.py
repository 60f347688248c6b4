from __future__ import annotations

import asyncio
import inspect
import json
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from pydantic import BaseModel, create_model

from ..context.types import Err, Halt, Ok, ToolOutcome

if TYPE_CHECKING:
    from ..runtime.frame import ExecutionFrame

# Parameter name that receives the ExecutionFrame instead of a model argument
FRAME_PARAMETER = "frame"


class Tool:
    """A callable tool with its metadata and argument model.

    Tool functions receive their validated arguments as keyword arguments.
    A parameter named `frame` receives the call's ExecutionFrame. The
    function may be sync or async and may return a plain value (treated as
    success) or an explicit Ok, Err or Halt outcome. Sync functions run in a
    worker thread so the event loop stays free and timeouts can fire.
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        input_model: Optional[type[BaseModel]],
        accepts_frame: bool = False,
    ):
        self.name = name
        self.description = description
        self.func = func
        self.input_model = input_model
        self.accepts_frame = accepts_frame

    @classmethod
    def from_function(
        cls, func: Callable[..., Any], name: Optional[str] = None, description: str = ""
    ) -> Tool:
        input_model, accepts_frame = _model_from_signature(func)
        return cls(
            name=name or func.__name__,
            description=description or inspect.getdoc(func) or "",
            func=func,
            input_model=input_model,
            accepts_frame=accepts_frame,
        )

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        if self.input_model:
            return self.input_model.model_json_schema()
        return {"type": "object", "properties": {}}

    @property
    def parameters_schema(self) -> str:
        """JSON Schema for tool parameters, encoded as a string."""
        return json.dumps(self.parameters, separators=(",", ":"))

    def to_schema(self) -> dict[str, Any]:
        """Function-calling definition handed to model clients."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def validate(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        """Validate raw arguments against the input model.

        Raises:
            pydantic.ValidationError: If the arguments do not match
        """
        if self.input_model is None:
            return {}
        validated = self.input_model.model_validate(dict(arguments))
        return {field: getattr(validated, field) for field in type(validated).model_fields}

    async def invoke(
        self, arguments: Mapping[str, Any], frame: Optional[ExecutionFrame] = None
    ) -> ToolOutcome:
        """Validate arguments, call the function and normalize its result.

        Exceptions raised by validation or by the function propagate; the
        executor turns them into error outcomes.
        """
        kwargs = self.validate(arguments)
        if self.accepts_frame:
            kwargs[FRAME_PARAMETER] = frame
        if inspect.iscoroutinefunction(self.func):
            result = await self.func(**kwargs)
        else:
            result = await asyncio.to_thread(self.func, **kwargs)
        if hasattr(result, "__await__"):
            result = await result
        return as_outcome(result)

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r})"


def as_outcome(value: Any) -> ToolOutcome:
    """Wrap plain return values as Ok; explicit outcomes pass through."""
    if isinstance(value, (Ok, Err, Halt)):
        return value
    return Ok(value)


def _model_from_signature(
    func: Callable[..., Any],
) -> tuple[Optional[type[BaseModel]], bool]:
    """Build the argument model from a function signature.

    Returns the model (None for functions without arguments) and whether the
    function takes the execution frame.
    """
    sig = inspect.signature(func, eval_str=True)
    fields = {}
    accepts_frame = False
    for name, param in sig.parameters.items():
        if name == "self":
            continue
        if name == FRAME_PARAMETER:
            accepts_frame = True
            continue
        ann = (
            param.annotation
            if param.annotation is not inspect.Parameter.empty
            else (Any if param.default is inspect.Parameter.empty else type(param.default))
        )
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (ann, default)
    input_model = create_model(f"{_camel(func.__name__)}Input", **fields) if fields else None
    return input_model, accepts_frame


def _camel(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_")) or "Tool"


def tool(name: Optional[str] = None, description: str = ""):
    """Decorator to declare a callable as a weft tool.

    The function stays directly callable; the Tool is attached as
    `func.__weft_tool__` and picked up by ToolRegistry.register.

    Args:
        name: Unique tool name (default: the function name)
        description: Human-readable description (default: the docstring)

    Example:
        @tool("search_orders", description="Find orders by customer")
        def search_orders(customer_id: str, limit: int = 10) -> list:
            ...

        @tool("finish", description="Return the final answer")
        async def finish(answer: str):
            return Halt({"answer": answer})
    """

    def wrapper(func: Callable[..., Any]):
        func.__weft_tool__ = Tool.from_function(func, name=name, description=description)
        return func

    return wrapper


__all__ = ["Tool", "tool", "as_outcome", "FRAME_PARAMETER"]
