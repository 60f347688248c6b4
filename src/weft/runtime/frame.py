"""Call-scoped execution frame."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ExecutionFrame:
    """Who is running a tool, and on whose behalf.

    Assembled by the runtime for each run and handed to tools explicitly.
    It is never stored on the Context.

    Attributes:
        agent: Identity of the agent running the loop
        domain: Domain or application the agent belongs to
        actor: Principal the run acts for
        tenant: Tenant the run is scoped to
        extra: Additional caller-supplied values
    """

    agent: Optional[str] = None
    domain: Optional[str] = None
    actor: Any = None
    tenant: Any = None
    extra: dict[str, Any] = field(default_factory=dict)


__all__ = ["ExecutionFrame"]
