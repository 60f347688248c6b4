"""Tests for context compaction."""

import logging

import pytest

from weft.config import CompactionConfig, CompactionStrategy
from weft.context import (
    CompactionOptions,
    Context,
    ContextCompactor,
    sliding_window_compact,
    token_based_compact,
)
from weft.telemetry import events

from helpers import build_context


class TestSlidingWindow:
    """Tests for sliding_window_compact."""

    def test_keeps_last_iterations(self):
        ctx = build_context(5)
        compacted = sliding_window_compact(ctx, 3)
        assert [it.number for it in compacted.iterations] == [4, 5, 6]

    def test_noop_when_window_larger(self):
        ctx = build_context(1)
        assert sliding_window_compact(ctx, 5) is ctx

    def test_idempotent(self):
        ctx = build_context(6)
        once = sliding_window_compact(ctx, 2)
        assert sliding_window_compact(once, 2) == once

    @pytest.mark.parametrize("window_size", [0, -1, 2.5, "3", True])
    def test_rejects_invalid_window(self, window_size):
        with pytest.raises(ValueError, match="window_size must be a positive integer"):
            sliding_window_compact(build_context(1), window_size)

    def test_emits_event(self, recorded_events):
        sliding_window_compact(build_context(5), 2)
        [(measurements, metadata)] = recorded_events.named(events.SLIDING_WINDOW_COMPACTION)
        assert measurements == {"before_count": 6, "after_count": 2, "removed": 4}
        assert metadata == {"window_size": 2}

    def test_logs_removal(self, caplog):
        with caplog.at_level(logging.INFO):
            sliding_window_compact(build_context(4), 2)
        assert "Sliding window compaction removed 3 iterations" in caplog.text


class TestTokenBased:
    """Tests for token_based_compact."""

    def test_under_threshold_unchanged(self):
        ctx = build_context(2)
        compacted = token_based_compact(ctx, budget=100_000)
        assert compacted.iterations == ctx.iterations

    def test_drops_oldest_until_under_budget(self):
        ctx = build_context(6, content="x" * 400)
        budget = ctx.estimate_token_count() // 2
        compacted = token_based_compact(ctx, budget=budget)

        assert compacted.estimate_token_count() < budget
        assert 1 <= compacted.count_iterations() < ctx.count_iterations()
        # Oldest removed first, most recent kept
        assert compacted.iterations[-1] == ctx.iterations[-1]
        assert compacted.iterations == ctx.iterations[-compacted.count_iterations() :]

    def test_threshold_compacts_earlier(self):
        ctx = build_context(6, content="x" * 400)
        budget = ctx.estimate_token_count()
        full = token_based_compact(ctx, budget=budget, threshold=1.5)
        early = token_based_compact(ctx, budget=budget, threshold=0.5)
        assert full.count_iterations() == ctx.count_iterations()
        assert early.budget_utilization(budget) < 0.5

    def test_never_removes_last_iteration(self, caplog):
        ctx = Context.new("x" * 4000)
        with caplog.at_level(logging.WARNING):
            compacted = token_based_compact(ctx, budget=10)
        assert compacted.count_iterations() == 1
        assert compacted.exceeds_token_budget(10)
        assert "cannot compact further" in caplog.text

    def test_empty_context_unchanged(self):
        ctx = Context()
        assert token_based_compact(ctx, budget=10) is ctx

    def test_invalid_arguments(self):
        ctx = build_context(1)
        with pytest.raises(ValueError, match="budget must be a positive integer"):
            token_based_compact(ctx, budget=0)
        with pytest.raises(ValueError, match="threshold must be a number"):
            token_based_compact(ctx, budget=10, threshold="high")

    def test_emits_event(self, recorded_events):
        ctx = build_context(4, content="x" * 400)
        compacted = token_based_compact(ctx, budget=ctx.estimate_token_count() // 2)
        [(measurements, metadata)] = recorded_events.named(events.TOKEN_BASED_COMPACTION)
        assert measurements["before_count"] == 5
        assert measurements["after_count"] == compacted.count_iterations()
        assert measurements["removed"] == 5 - compacted.count_iterations()
        assert measurements["final_tokens"] == compacted.estimate_token_count()
        assert metadata["threshold"] == 1.0


class TestContextCompactor:
    """Tests for ContextCompactor."""

    def test_sliding_window_strategy(self):
        compactor = ContextCompactor(CompactionOptions(window_size=2))
        assert compactor.compact(build_context(4)).count_iterations() == 2

    def test_token_based_requires_budget(self):
        with pytest.raises(ValueError):
            ContextCompactor(CompactionOptions(strategy=CompactionStrategy.TOKEN_BASED))

    def test_none_strategy_passes_through(self):
        ctx = build_context(4)
        compactor = ContextCompactor(CompactionOptions(strategy=CompactionStrategy.NONE))
        assert compactor.compact(ctx) is ctx

    def test_from_config(self):
        config = CompactionConfig(strategy="token_based", budget=50, threshold=0.9)
        compactor = ContextCompactor.from_config(config)
        assert compactor.options.strategy is CompactionStrategy.TOKEN_BASED
        assert compactor.options.budget == 50
        assert compactor.options.threshold == 0.9
