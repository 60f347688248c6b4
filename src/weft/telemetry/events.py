"""In-process observability events.

Components emit named events (budget warnings, compactions, hook timings)
through `emit`. Consumers register handlers with `attach`:

    def on_warning(name, measurements, metadata):
        print(name, measurements["cumulative_tokens"])

    events.attach("my-handler", [events.BUDGET_WARNING], on_warning)

Handlers run synchronously in the emitting task. A handler that raises is
logged and detached; it never changes the outcome of a run. Every event is
also recorded on the active OpenTelemetry span, if any.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Optional

from opentelemetry import trace

BUDGET_WARNING = "weft.budget.warning"
SLIDING_WINDOW_COMPACTION = "weft.compaction.sliding_window"
TOKEN_BASED_COMPACTION = "weft.compaction.token_based"
PROCESS_RESULTS = "weft.progressive_disclosure.process_results"
HOOK_START = "weft.hook.start"
HOOK_STOP = "weft.hook.stop"

Handler = Callable[[str, dict[str, Any], dict[str, Any]], None]

_handlers: dict[str, tuple[frozenset[str], Handler]] = {}
_lock = threading.Lock()


def attach(handler_id: str, event_names: Iterable[str], handler: Handler) -> None:
    """Register a handler for the given event names.

    Raises:
        ValueError: If handler_id is already attached
    """
    with _lock:
        if handler_id in _handlers:
            raise ValueError(f"Handler '{handler_id}' is already attached")
        _handlers[handler_id] = (frozenset(event_names), handler)


def detach(handler_id: str) -> bool:
    """Remove a handler. Returns False if it was not attached."""
    with _lock:
        return _handlers.pop(handler_id, None) is not None


def list_handlers(event_name: Optional[str] = None) -> list[str]:
    with _lock:
        return [
            handler_id
            for handler_id, (names, _) in _handlers.items()
            if event_name is None or event_name in names
        ]


def emit(
    event_name: str,
    measurements: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    """Dispatch an event to attached handlers and the current span."""
    measurements = dict(measurements or {})
    metadata = dict(metadata or {})

    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(event_name, attributes=_span_attributes(measurements, metadata))

    with _lock:
        targets = [
            (handler_id, handler)
            for handler_id, (names, handler) in _handlers.items()
            if event_name in names
        ]

    for handler_id, handler in targets:
        try:
            handler(event_name, measurements, metadata)
        except Exception:
            logging.exception(
                "[weft] Event handler %s failed on %s; detaching", handler_id, event_name
            )
            detach(handler_id)


def _span_attributes(measurements: dict[str, Any], metadata: dict[str, Any]) -> dict[str, Any]:
    attributes = {}
    for key, value in {**metadata, **measurements}.items():
        if isinstance(value, (str, bool, int, float)):
            attributes[key] = value
        elif value is not None:
            attributes[key] = str(value)
    return attributes


__all__ = [
    "BUDGET_WARNING",
    "SLIDING_WINDOW_COMPACTION",
    "TOKEN_BASED_COMPACTION",
    "PROCESS_RESULTS",
    "HOOK_START",
    "HOOK_STOP",
    "attach",
    "detach",
    "list_handlers",
    "emit",
]
