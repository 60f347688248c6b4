"""Test fixtures and configuration for weft tests.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── helpers.py           # Context and result builders
    ├── unit/                # Unit tests, one module per component
    └── test_runtime.py      # Loop scenarios driven by scripted model clients

Running tests:
    pytest tests/unit -v     # Unit tests only
    pytest -v                # Everything
"""

from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import Any, Generator

import pytest

# Add tests directory to path for imports
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import build_context  # noqa: E402

from weft.telemetry import events  # noqa: E402

_handler_ids = itertools.count()


class EventRecorder:
    """Collects observability events emitted during a test."""

    def __init__(self) -> None:
        self.records: list[tuple[str, dict[str, Any], dict[str, Any]]] = []

    def __call__(self, name: str, measurements: dict[str, Any], metadata: dict[str, Any]) -> None:
        self.records.append((name, measurements, metadata))

    def named(self, name: str) -> list[tuple[dict[str, Any], dict[str, Any]]]:
        return [(m, md) for n, m, md in self.records if n == name]


@pytest.fixture
def recorded_events() -> Generator[EventRecorder, None, None]:
    """Record every weft event for the duration of a test."""
    recorder = EventRecorder()
    handler_id = f"test-recorder-{next(_handler_ids)}"
    events.attach(
        handler_id,
        [
            events.BUDGET_WARNING,
            events.SLIDING_WINDOW_COMPACTION,
            events.TOKEN_BASED_COMPACTION,
            events.PROCESS_RESULTS,
            events.HOOK_START,
            events.HOOK_STOP,
        ],
        recorder,
    )
    try:
        yield recorder
    finally:
        events.detach(handler_id)


@pytest.fixture
def make_context():
    """Factory for contexts with N completed iterations."""
    return build_context
