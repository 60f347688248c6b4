"""Configuration management for weft runtimes.

Parses weft.toml files with support for:
- Tool execution settings (iteration limit, per-call timeout, error policy)
- Token budget enforcement
- Context compaction

Example weft.toml structure:

    [runtime]
    system_prompt = "You are a helpful assistant."

    [runtime.tools]
    max_iterations = 10
    timeout_ms = 30000
    on_error = "continue"

    [runtime.budget]
    token_budget = 100000
    strategy = "warn"
    warn_threshold = 0.8

    [runtime.budget.token_limits]
    "anthropic:claude-3-5-sonnet" = 200000

    [runtime.compaction]
    strategy = "sliding_window"
    window_size = 5
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .errors import config_error

CONFIG_FILENAME = "weft.toml"


class OnError(str, Enum):
    """What a failing tool call does to the rest of its batch."""

    CONTINUE = "continue"
    HALT = "halt"


class BudgetStrategy(str, Enum):
    """Whether an exhausted token budget stops the run or only warns."""

    WARN = "warn"
    HALT = "halt"


class CompactionStrategy(str, Enum):
    NONE = "none"
    SLIDING_WINDOW = "sliding_window"
    TOKEN_BASED = "token_based"


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and $VAR environment variable references."""
    if isinstance(value, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        pattern = r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)"
        return re.sub(pattern, replace_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


def _coerce_enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise config_error(
            f"{key} must be one of: {allowed}", {"key": key, "value": value}
        ) from None


def _coerce_int(value: Any, key: str) -> int:
    # TOML values survive env expansion as strings, e.g. "${WEFT_BUDGET}"
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int):
        raise config_error(f"{key} must be an integer", {"key": key, "value": value})
    return value


def _require_positive(value: Optional[int], key: str) -> None:
    if value is not None and value <= 0:
        raise config_error(f"{key} must be a positive integer", {"key": key, "value": value})


@dataclass
class ToolConfig:
    """Tool execution settings.

    Attributes:
        max_iterations: Maximum number of tool-execution passes (default: 10)
        timeout_ms: Per-call timeout in milliseconds (default: 30000)
        on_error: "continue" folds failures into the context, "halt" ends the run
    """

    max_iterations: int = 10
    timeout_ms: int = 30000
    on_error: OnError = OnError.CONTINUE

    def __post_init__(self) -> None:
        self.on_error = _coerce_enum(OnError, self.on_error, "tools.on_error")
        _require_positive(self.max_iterations, "tools.max_iterations")
        _require_positive(self.timeout_ms, "tools.timeout_ms")


@dataclass
class BudgetConfig:
    """Token budget settings.

    Attributes:
        token_budget: Maximum cumulative tokens for a run, None disables tracking
        strategy: "warn" (observe only) or "halt" (hard stop)
        warn_threshold: Fraction of the budget at which warnings start
        token_limits: Per-model budgets keyed by model identifier
            (e.g. "anthropic:claude-3-5-sonnet"), used when token_budget is unset
    """

    token_budget: Optional[int] = None
    strategy: BudgetStrategy = BudgetStrategy.WARN
    warn_threshold: float = 0.8
    token_limits: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.strategy = _coerce_enum(BudgetStrategy, self.strategy, "budget.strategy")
        _require_positive(self.token_budget, "budget.token_budget")
        if not 0 < self.warn_threshold <= 1:
            raise config_error(
                "budget.warn_threshold must be in (0, 1]",
                {"key": "budget.warn_threshold", "value": self.warn_threshold},
            )
        self.token_limits = {
            str(model): _coerce_int(limit, f"budget.token_limits.{model}")
            for model, limit in (self.token_limits or {}).items()
        }
        for model, limit in self.token_limits.items():
            _require_positive(limit, f"budget.token_limits.{model}")

    def limit_for(self, model: Optional[str] = None) -> Optional[int]:
        """Budget that applies to a run served by `model`."""
        if self.token_budget is not None:
            return self.token_budget
        if model is None:
            return None
        return self.token_limits.get(model)


@dataclass
class CompactionConfig:
    """Context compaction settings.

    Attributes:
        strategy: "none", "sliding_window" or "token_based"
        window_size: Iterations kept by the sliding window
        budget: Token budget used by the token-based strategy
        threshold: Budget utilization at which token-based compaction starts
    """

    strategy: CompactionStrategy = CompactionStrategy.NONE
    window_size: int = 5
    budget: Optional[int] = None
    threshold: float = 1.0

    def __post_init__(self) -> None:
        self.strategy = _coerce_enum(CompactionStrategy, self.strategy, "compaction.strategy")
        _require_positive(self.window_size, "compaction.window_size")
        _require_positive(self.budget, "compaction.budget")
        if self.strategy is CompactionStrategy.TOKEN_BASED and self.budget is None:
            raise config_error(
                "compaction.budget is required for the token_based strategy",
                {"key": "compaction.budget"},
            )


@dataclass
class RuntimeConfig:
    """Complete runtime configuration."""

    system_prompt: Optional[str] = None
    tools: ToolConfig = field(default_factory=ToolConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    compaction: CompactionConfig = field(default_factory=CompactionConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuntimeConfig:
        """Build a configuration from the contents of a [runtime] table."""
        tools_data = data.get("tools", {})
        budget_data = data.get("budget", {})
        compaction_data = data.get("compaction", {})

        tools = ToolConfig(
            max_iterations=_coerce_int(tools_data.get("max_iterations", 10), "tools.max_iterations"),
            timeout_ms=_coerce_int(tools_data.get("timeout_ms", 30000), "tools.timeout_ms"),
            on_error=tools_data.get("on_error", OnError.CONTINUE),
        )

        token_budget = budget_data.get("token_budget")
        budget = BudgetConfig(
            token_budget=(
                _coerce_int(token_budget, "budget.token_budget") if token_budget is not None else None
            ),
            strategy=budget_data.get("strategy", BudgetStrategy.WARN),
            warn_threshold=float(budget_data.get("warn_threshold", 0.8)),
            token_limits=budget_data.get("token_limits", {}),
        )

        compaction_budget = compaction_data.get("budget")
        compaction = CompactionConfig(
            strategy=compaction_data.get("strategy", CompactionStrategy.NONE),
            window_size=_coerce_int(compaction_data.get("window_size", 5), "compaction.window_size"),
            budget=(
                _coerce_int(compaction_budget, "compaction.budget")
                if compaction_budget is not None
                else None
            ),
            threshold=float(compaction_data.get("threshold", 1.0)),
        )

        return cls(
            system_prompt=data.get("system_prompt"),
            tools=tools,
            budget=budget,
            compaction=compaction,
        )

    @classmethod
    def load(cls, path: Path = Path(CONFIG_FILENAME)) -> RuntimeConfig:
        """Load configuration from a weft.toml file.

        Expands ${VAR} environment variable references in the config. A
        missing file yields the defaults.
        """
        if not path.exists():
            return cls()

        try:
            raw_data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise config_error(f"Failed to parse {path}: {e}", {"path": str(path)}) from e

        data = _expand_env_vars(raw_data)
        return cls.from_dict(data.get("runtime", {}))


def load_runtime_config(start_dir: Path = Path(".")) -> RuntimeConfig:
    """Load runtime configuration, searching up from start_dir."""
    current = start_dir.resolve()
    while current != current.parent:
        config_path = current / CONFIG_FILENAME
        if config_path.exists():
            return RuntimeConfig.load(config_path)
        current = current.parent

    # No config found, return defaults
    return RuntimeConfig()


__all__ = [
    "OnError",
    "BudgetStrategy",
    "CompactionStrategy",
    "ToolConfig",
    "BudgetConfig",
    "CompactionConfig",
    "RuntimeConfig",
    "load_runtime_config",
]
