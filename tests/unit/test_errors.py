"""Tests for the error taxonomy."""

import pytest

from weft import errors
from weft.errors import AgentError, ErrorType


class TestAgentError:
    """Tests for AgentError."""

    @pytest.mark.parametrize(
        "factory, error_type",
        [
            (errors.config_error, ErrorType.CONFIG),
            (errors.prompt_error, ErrorType.PROMPT),
            (errors.schema_error, ErrorType.SCHEMA),
            (errors.llm_error, ErrorType.LLM),
            (errors.parse_error, ErrorType.PARSE),
            (errors.hook_error, ErrorType.HOOK),
            (errors.validation_error, ErrorType.VALIDATION),
            (errors.budget_error, ErrorType.BUDGET),
        ],
    )
    def test_factories(self, factory, error_type):
        error = factory("something broke", {"key": "value"})
        assert isinstance(error, AgentError)
        assert error.type is error_type
        assert error.message == "something broke"
        assert error.details == {"key": "value"}

    def test_is_raisable(self):
        with pytest.raises(AgentError, match="over budget"):
            raise errors.budget_error("over budget")

    def test_str_includes_type(self):
        assert str(errors.llm_error("boom")) == "[llm_error] boom"

    def test_equality(self):
        assert errors.hook_error("x", {"a": 1}) == errors.hook_error("x", {"a": 1})
        assert errors.hook_error("x") != errors.llm_error("x")

    def test_to_dict(self):
        assert errors.parse_error("bad", {"field": "answer"}).to_dict() == {
            "type": "parse_error",
            "message": "bad",
            "details": {"field": "answer"},
        }

    def test_from_exception_wraps(self):
        error = AgentError.from_exception(KeyError("missing"), ErrorType.VALIDATION)
        assert error.type is ErrorType.VALIDATION
        assert error.details["exception"] == "KeyError"

    def test_from_exception_keeps_agent_errors(self):
        original = errors.budget_error("over")
        assert AgentError.from_exception(original) is original

    def test_from_exception_without_message(self):
        error = AgentError.from_exception(RuntimeError())
        assert error.message == "RuntimeError"
        assert error.type is ErrorType.LLM
