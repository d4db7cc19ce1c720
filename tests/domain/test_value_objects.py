"""
Tests for domain value objects
"""

import pytest

from llm_bench.domain.value_objects import (
    EvaluationResult,
    Message,
    ToolCall,
    ToolEvaluationResult,
    score_of,
    truncate,
)


class TestScoreOf:
    """Verdict -> score mapping"""

    @pytest.mark.parametrize("verdict,expected", [
        ("yes", 1.0),
        ("unsure", 0.5),
        ("no", 0.0),
        ("YES", 1.0),
        (" Unsure ", 0.5),
    ])
    def test_known_verdicts(self, verdict, expected):
        assert score_of(verdict) == expected

    @pytest.mark.parametrize("verdict", ["maybe", "", None, "yes please", "1"])
    def test_anything_else_scores_zero(self, verdict):
        assert score_of(verdict) == 0.0


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("hello", 10) == "hello"

    def test_long_text_marked(self):
        assert truncate("abcdefghij", 4) == "abcd..."

    def test_empty_and_none(self):
        assert truncate("", 5) == ""
        assert truncate(None, 5) == ""


class TestMessage:
    def test_constructors_set_roles(self):
        assert Message.system("s").role == "system"
        assert Message.user("u").role == "user"
        assert Message.assistant("a").role == "assistant"

    def test_assistant_keeps_tool_calls(self):
        call = ToolCall(id="c1", name="calculator", arguments='{"operation": "add"}')
        msg = Message.assistant("", [call])
        assert msg.tool_calls == (call,)

    def test_tool_message_references_call(self):
        call = ToolCall(id="c1", name="calculator", arguments="{}")
        msg = Message.tool(call, '{"result": 3}')
        assert msg.role == "tool"
        assert msg.tool_call_id == "c1"
        assert msg.name == "calculator"
        assert msg.content == '{"result": 3}'


class TestEvaluationResult:
    def test_passed_only_for_yes(self):
        assert EvaluationResult("Paris", "yes", "correct", 1.0).passed is True
        assert EvaluationResult("Lyon", "no", "wrong", 0.0).passed is False
        assert EvaluationResult("?", "unsure", "vague", 0.5).passed is False


class TestToolEvaluationResult:
    def test_overall_score_is_mean(self):
        result = ToolEvaluationResult(tool_selection_score=1.0, parameter_accuracy=0.5, sequence_score=0.0)
        assert result.overall_score == pytest.approx(0.5)
