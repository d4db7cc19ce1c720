"""
Domain Value Objects

Defines immutable data structures representing values such as chat messages,
model responses, generation options, and judge verdicts.
"""

from dataclasses import dataclass, field

from llm_bench.domain.constants import VERDICT_SCORES


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model"""
    id: str
    name: str
    arguments: str  # JSON-encoded object of named arguments


@dataclass(frozen=True)
class ToolDefinition:
    """Tool schema advertised to the model"""
    name: str
    description: str
    parameters: dict


@dataclass(frozen=True)
class Message:
    """Provider-neutral chat message"""
    role: str  # system / user / assistant / tool
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls or ()))

    @classmethod
    def tool(cls, call: ToolCall, output: str) -> "Message":
        return cls(role="tool", content=output, tool_call_id=call.id, name=call.name)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters for a single request"""
    temperature: float = 0.0
    top_k: int | None = None
    seed: int | None = None
    max_tokens: int = 1024
    timeout_seconds: float | None = None


@dataclass
class ModelResponse:
    """Model response"""
    content: str
    model_name: str
    latency_ms: float
    ttft_ms: float = 0.0
    prompt_eval_ms: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    tool_calls: list[ToolCall] = field(default_factory=list)


def truncate(text: str | None, limit: int) -> str:
    """Cut text to limit characters, marking the cut with '...'"""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def score_of(response: str | None) -> float:
    """Map a judge verdict to a numeric score (case-insensitive, unknown -> 0.0)"""
    if not response:
        return 0.0
    return VERDICT_SCORES.get(response.strip().lower(), 0.0)


@dataclass(frozen=True)
class EvaluationResult:
    """Judge verdict for one answer"""
    provided_answer: str
    response: str  # yes / no / unsure
    reason: str
    score: float

    @property
    def passed(self) -> bool:
        return self.response.strip().lower() == "yes"


@dataclass(frozen=True)
class ToolEvaluationResult:
    """Judge assessment of a tool-calling trace"""
    tool_selection_score: float
    parameter_accuracy: float
    sequence_score: float
    reason: str = ""

    @property
    def overall_score(self) -> float:
        return (self.tool_selection_score + self.parameter_accuracy + self.sequence_score) / 3.0
