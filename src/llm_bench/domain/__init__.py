"""
Domain Layer

Defines constants, entities, value objects and errors that form the core of the benchmark.
Has no dependencies on external libraries.
"""

from llm_bench.domain.constants import (
    DEFAULT_EXTERNAL_MODELS,
    DEFAULT_LOCAL_MODELS,
    DEFAULT_TEMPERATURES,
    VERDICT_SCORES,
)
from llm_bench.domain.entities import (
    AggregateMetrics,
    ExperimentPoint,
    HealthCheckResult,
    ModelSpec,
    Sample,
    ToolCallRecord,
)
from llm_bench.domain.errors import (
    BenchmarkError,
    InferenceError,
    JudgeError,
    ProvisioningError,
    RunTimeoutError,
    ToolLoopBudgetExceeded,
)
from llm_bench.domain.value_objects import (
    EvaluationResult,
    GenerationOptions,
    Message,
    ModelResponse,
    ToolCall,
    ToolDefinition,
    ToolEvaluationResult,
    score_of,
    truncate,
)

__all__ = [
    # constants
    "DEFAULT_EXTERNAL_MODELS",
    "DEFAULT_LOCAL_MODELS",
    "DEFAULT_TEMPERATURES",
    "VERDICT_SCORES",
    # entities
    "AggregateMetrics",
    "ExperimentPoint",
    "HealthCheckResult",
    "ModelSpec",
    "Sample",
    "ToolCallRecord",
    # errors
    "BenchmarkError",
    "InferenceError",
    "JudgeError",
    "ProvisioningError",
    "RunTimeoutError",
    "ToolLoopBudgetExceeded",
    # value objects
    "EvaluationResult",
    "GenerationOptions",
    "Message",
    "ModelResponse",
    "ToolCall",
    "ToolDefinition",
    "ToolEvaluationResult",
    "score_of",
    "truncate",
]
