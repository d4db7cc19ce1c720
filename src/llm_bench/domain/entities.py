"""
Domain Entities

Defines the primary data structures used during a benchmark run.
"""

from dataclasses import dataclass, field

from llm_bench.domain.value_objects import EvaluationResult, ToolEvaluationResult


@dataclass(frozen=True)
class ModelSpec:
    """A model to benchmark"""
    name: str
    external: bool = False      # Reachable over the network; skips local provisioning
    base_url: str | None = None  # Overrides the runtime endpoint


@dataclass(frozen=True)
class ExperimentPoint:
    """One (model, test case, temperature) cell of the factorial design"""
    model: str
    case: str
    temperature: float

    @property
    def temp_label(self) -> str:
        return f"{self.temperature:.1f}"

    @property
    def key(self) -> str:
        return f"{self.model}|{self.case}|{self.temp_label}"

    def labels(self) -> dict[str, str]:
        """Grouping dimensions attached to every exported metric and log"""
        return {"model": self.model, "case": self.case, "temp": self.temp_label}


@dataclass(frozen=True)
class ToolCallRecord:
    """One tool execution inside the tool-calling loop"""
    tool_name: str
    call_id: str
    input: str
    output: str
    duration_ms: float
    error: str | None = None


@dataclass
class Sample:
    """One executed trial for an ExperimentPoint"""
    point: ExperimentPoint
    iteration: int
    success: bool
    latency_ms: float = 0.0
    ttft_ms: float = 0.0
    prompt_eval_ms: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    content: str = ""
    error: str | None = None
    evaluation: EvaluationResult | None = None
    tool_evaluation: ToolEvaluationResult | None = None
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    iterations: int = 0
    llm_latency_ms: float = 0.0
    tool_latency_ms: float = 0.0
    trace_id: str = ""
    span_id: str = ""
    timestamp: str = ""

    @classmethod
    def failed(cls, point: ExperimentPoint, iteration: int, error: str, **kwargs) -> "Sample":
        """Unsuccessful trial: latency and tokens stay at zero"""
        return cls(point=point, iteration=iteration, success=False, error=error, **kwargs)

    def to_row(self) -> dict:
        """Flatten to a dict for CSV output"""
        return {
            "model": self.point.model,
            "case": self.point.case,
            "temp": self.point.temp_label,
            "iteration": self.iteration,
            "success": self.success,
            "latency_ms": self.latency_ms,
            "ttft_ms": self.ttft_ms,
            "prompt_eval_ms": self.prompt_eval_ms,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "eval_response": self.evaluation.response if self.evaluation else None,
            "eval_score": self.evaluation.score if self.evaluation else None,
            "eval_reason": self.evaluation.reason if self.evaluation else None,
            "tool_overall_score": (
                self.tool_evaluation.overall_score if self.tool_evaluation else None
            ),
            "tool_call_count": len(self.tool_calls),
            "iterations": self.iterations,
            "llm_latency_ms": self.llm_latency_ms,
            "tool_latency_ms": self.tool_latency_ms,
            "error": self.error,
            "trace_id": self.trace_id,
            "timestamp": self.timestamp,
            "content": self.content,
        }


@dataclass
class AggregateMetrics:
    """Derived statistics for one ExperimentPoint"""
    point: ExperimentPoint
    num_samples: int = 0
    latency_p50: float = 0.0
    latency_p95: float = 0.0
    ttft_p50: float = 0.0
    ttft_p95: float = 0.0
    prompt_eval_p50: float = 0.0
    prompt_eval_p95: float = 0.0
    success_rate: float = 0.0
    tokens_per_op: float = 0.0
    eval_score: float = 0.0
    eval_pass_rate: float = 0.0
    tokens_per_second: float = 0.0
    output_tokens_per_second: float = 0.0
    ns_per_op: float = 0.0
    # Tool calling metrics (zero for plain cases)
    tool_call_count: float = 0.0
    tool_iteration_count: float = 0.0
    tool_success_rate: float = 0.0
    tool_selection_accuracy: float = 0.0
    tool_param_accuracy: float = 0.0
    tool_sequence_score: float = 0.0

    def to_row(self) -> dict:
        row = {"model": self.point.model, "case": self.point.case, "temp": self.point.temp_label}
        for name in self.__dataclass_fields__:
            if name != "point":
                row[name] = getattr(self, name)
        return row


@dataclass
class HealthCheckResult:
    """Health check result"""
    model_name: str
    success: bool
    latency_ms: float | None
    error: str | None
