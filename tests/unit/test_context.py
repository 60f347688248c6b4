"""Tests for the Context model."""

from datetime import datetime, timedelta, timezone

import pytest

from weft.context import (
    Context,
    Err,
    Halt,
    Iteration,
    Message,
    Ok,
    Role,
    TokenUsage,
    ToolCall,
    ToolResult,
)

from helpers import build_context


class TestNew:
    """Tests for Context.new."""

    def test_user_message_only(self):
        ctx = Context.new("What is the weather?")
        assert ctx.current_iteration == 1
        assert len(ctx.iterations) == 1
        [message] = ctx.iterations[0].messages
        assert message.role is Role.USER
        assert message.content == "What is the weather?"

    def test_system_prompt_comes_first(self):
        ctx = Context.new("hi", system_prompt="Be brief.")
        roles = [m.role for m in ctx.iterations[0].messages]
        assert roles == [Role.SYSTEM, Role.USER]

    def test_first_iteration_is_open(self):
        ctx = Context.new("hi")
        first = ctx.iterations[0]
        assert first.number == 1
        assert first.completed_at is None
        assert first.started_at is not None

    def test_mapping_with_message_key(self):
        ctx = Context.new({"message": "hello"})
        assert ctx.iterations[0].messages[0].content == "hello"

    def test_other_mapping_is_json_encoded(self):
        ctx = Context.new({"city": "Oslo"})
        assert ctx.iterations[0].messages[0].content == '{"city":"Oslo"}'


class TestAssistantMessages:
    """Tests for add_assistant_message and extract_tool_calls."""

    def test_appends_to_open_iteration(self):
        ctx = Context.new("hi").add_assistant_message("hello there")
        messages = ctx.iterations[-1].messages
        assert messages[-1].role is Role.ASSISTANT
        assert messages[-1].content == "hello there"
        assert messages[-1].tool_calls is None

    def test_original_context_unchanged(self):
        ctx = Context.new("hi")
        ctx.add_assistant_message("hello")
        assert len(ctx.iterations[0].messages) == 1

    def test_extract_tool_calls(self):
        call = ToolCall.create("search", {"q": "cats"})
        ctx = Context.new("hi").add_assistant_message("", [call])
        assert ctx.extract_tool_calls() == (call,)
        assert ctx.iterations[-1].tool_calls == (call,)

    def test_extract_tool_calls_empty_without_request(self):
        assert Context.new("hi").extract_tool_calls() == ()
        assert Context.new("hi").add_assistant_message("done").extract_tool_calls() == ()


class TestToolResults:
    """Tests for add_tool_results."""

    def test_completes_and_opens_next_iteration(self):
        call = ToolCall.create("search", {"q": "cats"}, id="call_1")
        ctx = Context.new("hi").add_assistant_message("", [call])
        ctx = ctx.add_tool_results([ToolResult("call_1", "search", Ok(["a", "b"]))])

        assert ctx.current_iteration == 2
        assert len(ctx.iterations) == 2
        completed, opened = ctx.iterations
        assert completed.completed_at is not None
        assert completed.tool_results[0].payload == ["a", "b"]
        assert completed.messages[-1].role is Role.TOOL_RESULT
        assert opened.number == 2
        assert opened.completed_at is None
        assert opened.messages == ()

    def test_is_only_operation_advancing_counter(self):
        ctx = Context.new("hi")
        ctx = ctx.add_assistant_message("x").add_token_usage({"input_tokens": 3})
        assert ctx.current_iteration == 1

    def test_len_matches_counter(self):
        ctx = build_context(4)
        assert len(ctx.iterations) == ctx.current_iteration == 5


class TestTokenUsage:
    """Tests for usage accounting."""

    def test_cumulative_is_sum_of_iterations(self):
        ctx = Context.new("hi").add_token_usage(TokenUsage(100, 50))
        ctx = ctx.add_tool_results([])
        ctx = ctx.add_token_usage({"input_tokens": 10, "output_tokens": 5})
        cumulative = ctx.cumulative_tokens
        assert cumulative.total_tokens == 165
        assert cumulative.input_tokens == 110
        expected = sum(
            it.current_usage.total_tokens for it in ctx.iterations if it.current_usage
        )
        assert cumulative.total_tokens == expected

    def test_snapshot_stored_on_iteration(self):
        ctx = Context.new("hi").add_token_usage(TokenUsage(7, 3))
        metadata = ctx.iterations[-1].metadata
        assert metadata["current_usage"] == TokenUsage(7, 3, 10)
        assert metadata["cumulative_tokens"].total_tokens == 10

    def test_missing_usage_counts_as_zero(self):
        ctx = Context.new("hi").add_token_usage(TokenUsage(5, 5))
        ctx = ctx.add_tool_results([]).add_token_usage(None)
        assert ctx.cumulative_tokens.total_tokens == 10

    def test_explicit_total_is_kept(self):
        usage = TokenUsage.from_value({"input_tokens": 1, "output_tokens": 1, "total_tokens": 5})
        assert usage.total_tokens == 5

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            TokenUsage(input_tokens=-1)

    def test_llm_call_timing(self):
        ctx = Context.new("hi")
        started = ctx.iterations[-1].started_at
        ctx = ctx.add_llm_call_timing(now=started + timedelta(milliseconds=250))
        assert ctx.iterations[-1].metadata["llm_duration_ms"] == 250


class TestMaxIterations:
    """Tests for exceeded_max_iterations."""

    def test_inclusive_boundary(self):
        ctx = build_context(2)
        assert ctx.current_iteration == 3
        assert ctx.exceeded_max_iterations(3) is True
        assert ctx.exceeded_max_iterations(4) is False

    def test_false_one_below_limit(self):
        for n in range(2, 6):
            ctx = build_context(n - 2)
            assert ctx.current_iteration == n - 1
            assert not ctx.exceeded_max_iterations(n)


class TestToMessages:
    """Tests for to_messages."""

    def test_flattens_in_order(self):
        call = ToolCall.create("search", {"q": "x"}, id="call_1")
        ctx = Context.new("hi", system_prompt="sys").add_assistant_message("", [call])
        ctx = ctx.add_tool_results([ToolResult("call_1", "search", Err("boom"))])
        ctx = ctx.add_assistant_message("final")

        messages = ctx.to_messages()
        assert [m["role"] for m in messages] == [
            "system",
            "user",
            "assistant",
            "tool_result",
            "assistant",
        ]
        assert messages[2]["tool_calls"] == [
            {
                "id": "call_1",
                "type": "function",
                "function": {"name": "search", "arguments": '{"q":"x"}'},
            }
        ]
        [part] = messages[3]["content"]
        assert part["tool_call_id"] == "call_1"
        assert part["is_error"] is True
        assert part["content"] == "boom"


class TestPruning:
    """Tests for keep_last_iterations and remove_old_iterations."""

    def test_keep_last_iterations(self):
        ctx = build_context(5)
        kept = ctx.keep_last_iterations(2)
        assert [it.number for it in kept.iterations] == [5, 6]
        assert kept.current_iteration == ctx.current_iteration

    def test_keep_last_iterations_noop_when_large(self):
        ctx = build_context(2)
        assert ctx.keep_last_iterations(10) is ctx

    def test_keep_last_iterations_idempotent(self):
        ctx = build_context(6)
        once = ctx.keep_last_iterations(3)
        assert once.keep_last_iterations(3) == once

    def test_keep_last_iterations_rejects_non_positive(self):
        with pytest.raises(ValueError):
            build_context(1).keep_last_iterations(0)

    def test_remove_old_iterations(self):
        ctx = build_context(3)
        now = ctx.iterations[-1].started_at + timedelta(hours=1)
        pruned = ctx.remove_old_iterations(60, now=now)
        # Only the open iteration has no completed_at
        assert len(pruned.iterations) == 1
        assert pruned.iterations[0].completed_at is None

    def test_remove_old_iterations_keeps_recent(self):
        ctx = build_context(3)
        assert ctx.remove_old_iterations(3600) is ctx

    def test_open_iteration_survives_zero_age(self):
        ctx = Context.new("hi")
        future = datetime.now(timezone.utc) + timedelta(days=1)
        assert ctx.remove_old_iterations(0, now=future).iterations == ctx.iterations


class TestTokenEstimation:
    """Tests for token estimation and budget helpers."""

    def test_estimate_token_count(self):
        ctx = Context.new("x" * 40)
        # 40 chars / 4 + 10 overhead
        assert ctx.estimate_token_count() == 20

    def test_estimate_counts_every_message(self):
        ctx = Context.new("x" * 40, system_prompt="y" * 8)
        assert ctx.estimate_token_count() == 20 + 12

    def test_budget_helpers(self):
        ctx = Context.new("x" * 40)
        assert ctx.exceeds_token_budget(19) is True
        assert ctx.exceeds_token_budget(20) is False
        assert ctx.tokens_remaining(50) == 30
        assert ctx.tokens_remaining(5) == 0
        assert ctx.budget_utilization(10) == pytest.approx(2.0)

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            Context.new("hi").budget_utilization(0)


class TestIterationHelpers:
    """Tests for iteration lookup and summarization metadata."""

    def test_get_iteration(self):
        ctx = build_context(3)
        assert ctx.get_iteration(2).number == 2
        assert ctx.get_iteration(99) is None

    def test_get_iteration_range(self):
        ctx = build_context(4)
        assert [it.number for it in ctx.get_iteration_range(1, 2)] == [2, 3]
        assert ctx.get_iteration_range(3, 1) == ()

    def test_mark_as_summarized(self):
        iteration = Iteration(number=1).mark_as_summarized("searched for cats")
        assert iteration.is_summarized
        assert iteration.summary == "searched for cats"
        assert "summarized_at" in iteration.metadata
        assert not Iteration(number=2).is_summarized


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip_preserves_shape(self):
        call = ToolCall.create("finish", {"answer": "X"}, id="call_9")
        ctx = Context.new("hi").add_assistant_message("", [call])
        ctx = ctx.add_token_usage(TokenUsage(3, 4))
        ctx = ctx.add_tool_results([ToolResult("call_9", "finish", Halt({"answer": "X"}))])

        restored = Context.from_dict(ctx.to_dict())
        assert restored.current_iteration == 2
        assert restored.cumulative_tokens.total_tokens == 7
        assert restored.iterations[0].tool_results[0].is_halt
        assert restored.iterations[0].tool_calls == (call,)
        assert restored.to_messages() == ctx.to_messages()

    def test_round_trip_restores_metadata_times(self):
        started = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        iteration = Iteration(1, started_at=started).with_metadata(
            llm_response_at=started + timedelta(seconds=2), llm_duration_ms=2000
        )
        iteration = iteration.mark_as_summarized("asked a question")

        restored = Iteration.from_dict(iteration.to_dict())
        assert restored.metadata["llm_response_at"] == started + timedelta(seconds=2)
        assert restored.metadata["llm_duration_ms"] == 2000
        assert isinstance(restored.metadata["summarized_at"], datetime)
        assert restored.metadata["summarized_at"] == iteration.metadata["summarized_at"]
        assert restored.summary == "asked a question"


class TestToolCall:
    """Tests for ToolCall construction."""

    def test_generates_id(self):
        call = ToolCall.create("search")
        assert call.id.startswith("call_")
        assert call.arguments == {}

    def test_json_arguments(self):
        call = ToolCall.create("search", '{"q": "dogs"}')
        assert call.arguments == {"q": "dogs"}

    def test_from_provider_format(self):
        call = ToolCall.from_dict(
            {"id": "c1", "function": {"name": "search", "arguments": '{"q": 1}'}}
        )
        assert call == ToolCall("c1", "search", {"q": 1})

    def test_message_text_encodes_structured_content(self):
        assert Message(Role.USER, {"a": 1}).text == '{"a":1}'
