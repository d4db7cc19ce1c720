"""
Use Cases Layer

Aggregates business logic and provides use cases called from the runner.
"""

from llm_bench.use_cases.benchmark import BenchmarkDriver, BenchmarkResult
from llm_bench.use_cases.health_check import (
    HEALTH_CHECK_PROMPT,
    health_check_all_models,
    health_check_model,
    run_judge_health_check,
)
from llm_bench.use_cases.tool_loop import (
    BUDGET_EXHAUSTED_CONTENT,
    LoopState,
    ToolLoopResult,
    run_tool_loop,
)

__all__ = [
    # benchmark
    "BenchmarkDriver",
    "BenchmarkResult",
    # health_check
    "HEALTH_CHECK_PROMPT",
    "health_check_all_models",
    "health_check_model",
    "run_judge_health_check",
    # tool_loop
    "BUDGET_EXHAUSTED_CONTENT",
    "LoopState",
    "ToolLoopResult",
    "run_tool_loop",
]
