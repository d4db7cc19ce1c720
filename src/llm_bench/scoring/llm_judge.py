"""
LLM Judge evaluation logic

Implements JudgeEvaluator, which asks a separate model (judge) whether an
answer is correct and, for tool-assisted cases, how well the tools were used.
"""

from __future__ import annotations

import json
import logging
import math
import os
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from llm_bench.infrastructure.model_clients.base import ModelClient

from llm_bench.domain.constants import (
    JUDGE_SEED,
    JUDGE_TEMPERATURE,
    JUDGE_TOP_K,
    LOG_ANSWER_MAX_CHARS,
    LOG_QUESTION_MAX_CHARS,
    LOG_REASON_MAX_CHARS,
)
from llm_bench.domain.entities import ToolCallRecord
from llm_bench.domain.errors import InferenceError, JudgeError
from llm_bench.domain.value_objects import (
    EvaluationResult,
    GenerationOptions,
    Message,
    ToolEvaluationResult,
    score_of,
    truncate,
)
from llm_bench.harness_config import LLMJudgeConfig
from llm_bench.scoring.json_repair import extract_json

logger = logging.getLogger(__name__)

JUDGE_USER_TEMPLATE = "Question: {question}\nAnswer: {answer}\nReference: {reference}\nJSON response:"

DEFAULT_JUDGE_SYSTEM_PROMPT = (
    "You are an impartial evaluator. Decide whether the Answer correctly responds to the Question, "
    "using the Reference as the expected content. "
    'Respond ONLY with a JSON object: {"provided_answer": "<short summary of the answer>", '
    '"response": "yes" | "no" | "unsure", "reason": "<why>"}'
)

DEFAULT_TOOL_JUDGE_SYSTEM_PROMPT = (
    "You are an impartial evaluator of tool usage. Given the Question, the tool calls the assistant made "
    "and its final Answer, score each axis from 0.0 to 1.0 against the Reference: whether the right tools "
    "were selected, whether their parameters were correct, and whether the calls were made in a sensible order. "
    'Respond ONLY with a JSON object: {"tool_selection_score": <float>, "parameter_accuracy": <float>, '
    '"sequence_score": <float>, "reason": "<why>"}'
)


def select_judge_model(config: LLMJudgeConfig, environ: Mapping[str, str] | None = None) -> str:
    """
    Pick the judge model from the available credentials

    Priority: explicit override > OpenAI > Anthropic > Vertex AI > local runtime model.

    Args:
        config: LLMJudgeConfig
        environ: Environment to inspect (defaults to os.environ)

    Returns:
        Judge model name
    """
    env = os.environ if environ is None else environ
    if config.model_override:
        return config.model_override
    if env.get("OPENAI_API_KEY"):
        return config.hosted_openai_model
    if env.get("ANTHROPIC_API_KEY"):
        return config.hosted_claude_model
    if env.get("GCP_PROJECT_ID"):
        return config.hosted_gemini_model
    return config.local_model


def format_tool_trace(tool_calls: list[ToolCallRecord], final_answer: str) -> str:
    """Render the tool calls and final answer as the Answer shown to the judge"""
    lines = []
    for i, call in enumerate(tool_calls, start=1):
        lines.append(f"{i}. {call.tool_name}({call.input}) -> {call.output}")
    if not lines:
        lines.append("(no tool calls)")
    lines.append(f"Final answer: {final_answer}")
    return "\n".join(lines)


def _clamp(value: float) -> float:
    """Clamp score to the range 0.0-1.0; NaN and infinity are rejected"""
    if not math.isfinite(value):
        raise ValueError(f"score is not finite: {value}")
    return max(0.0, min(1.0, value))


class JudgeEvaluator:
    """
    Grades answers with a judge model

    The judge runs deterministically (temperature 0, top-k 1, fixed seed) so
    that repeated runs grade the same answer the same way.
    """

    def __init__(self, judge_client: ModelClient, timeout_seconds: float | None = None) -> None:
        self._client = judge_client
        self.timeout_seconds = timeout_seconds

    @property
    def model_name(self) -> str:
        return self._client.model_name

    def _ask(self, system_prompt: str, question: str, answer: str, reference: str) -> tuple[dict, str]:
        messages = [
            Message.system(system_prompt),
            Message.user(JUDGE_USER_TEMPLATE.format(question=question, answer=answer, reference=reference)),
        ]
        options = GenerationOptions(
            temperature=JUDGE_TEMPERATURE,
            top_k=JUDGE_TOP_K,
            seed=JUDGE_SEED,
            timeout_seconds=self.timeout_seconds,
        )
        try:
            raw = self._client.chat(messages, options).content
        except InferenceError as e:
            raise JudgeError(f"failed to generate evaluation: {e}") from e

        json_text = extract_json(raw)
        if not json_text:
            raise JudgeError("no JSON found in evaluation response", raw_response=raw)
        try:
            data = json.loads(json_text)
        except json.JSONDecodeError as e:
            raise JudgeError(f"failed to parse evaluation response as JSON: {e}", raw_response=raw) from e
        if not isinstance(data, dict):
            raise JudgeError("evaluation response is not a JSON object", raw_response=raw)
        return data, raw

    def evaluate(
        self,
        test_case: str,
        question: str,
        answer: str,
        reference: str,
        system_prompt: str | None = None,
    ) -> EvaluationResult:
        """
        Have the judge grade an answer

        Args:
            test_case: Test case name (for logging)
            question: The prompt the model answered
            answer: The model's answer
            reference: Expected content of a correct answer
            system_prompt: Case-specific grading instructions

        Returns:
            EvaluationResult

        Raises:
            JudgeError: When the judge fails or its reply cannot be parsed
        """
        data, _ = self._ask(system_prompt or DEFAULT_JUDGE_SYSTEM_PROMPT, question, answer, reference)

        verdict = str(data.get("response") or "").strip()
        result = EvaluationResult(
            provided_answer=str(data.get("provided_answer") or ""),
            response=verdict,
            reason=str(data.get("reason") or ""),
            score=score_of(verdict),
        )

        logger.info(
            "Evaluator response",
            extra={
                "test_case": test_case,
                "question": truncate(question, LOG_QUESTION_MAX_CHARS),
                "answer": truncate(answer, LOG_ANSWER_MAX_CHARS),
                "provided_answer": truncate(result.provided_answer, LOG_ANSWER_MAX_CHARS),
                "response": result.response,
                "reason": truncate(result.reason, LOG_REASON_MAX_CHARS),
                "score": result.score,
            },
        )
        return result

    def evaluate_tool_calls(
        self,
        test_case: str,
        question: str,
        tool_calls: list[ToolCallRecord],
        final_answer: str,
        reference: str,
        system_prompt: str | None = None,
    ) -> ToolEvaluationResult:
        """
        Have the judge score tool selection, parameters and call order

        Raises:
            JudgeError: When the judge fails or its reply cannot be parsed
        """
        answer = format_tool_trace(tool_calls, final_answer)
        data, raw = self._ask(system_prompt or DEFAULT_TOOL_JUDGE_SYSTEM_PROMPT, question, answer, reference)

        try:
            result = ToolEvaluationResult(
                tool_selection_score=_clamp(float(data.get("tool_selection_score", 0.0))),
                parameter_accuracy=_clamp(float(data.get("parameter_accuracy", 0.0))),
                sequence_score=_clamp(float(data.get("sequence_score", 0.0))),
                reason=str(data.get("reason") or ""),
            )
        except (TypeError, ValueError) as e:
            raise JudgeError(f"tool evaluation scores are not finite numbers: {e}", raw_response=raw) from e

        logger.info(
            "Tool evaluation response",
            extra={
                "test_case": test_case,
                "tool_selection_score": result.tool_selection_score,
                "parameter_accuracy": result.parameter_accuracy,
                "sequence_score": result.sequence_score,
                "overall_score": result.overall_score,
                "reason": truncate(result.reason, LOG_REASON_MAX_CHARS),
            },
        )
        return result
