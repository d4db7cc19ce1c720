"""
Scoring sub-package

Provides the LLM judge and the JSON repair used on its replies.
"""

from llm_bench.domain.value_objects import EvaluationResult, ToolEvaluationResult, score_of
from llm_bench.scoring.json_repair import extract_json, fix_json_escaping
from llm_bench.scoring.llm_judge import (
    JUDGE_USER_TEMPLATE,
    JudgeEvaluator,
    format_tool_trace,
    select_judge_model,
)

__all__ = [
    # value objects (re-exported from domain)
    "EvaluationResult",
    "ToolEvaluationResult",
    "score_of",
    # json repair
    "extract_json",
    "fix_json_escaping",
    # llm judge
    "JUDGE_USER_TEMPLATE",
    "JudgeEvaluator",
    "format_tool_trace",
    "select_judge_model",
]
