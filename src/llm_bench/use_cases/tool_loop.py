"""
Tool-Calling Loop

Drives model <-> tool round trips for tool-assisted test cases until the
model answers without requesting a tool, or the iteration budget runs out.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from llm_bench.domain.constants import DEFAULT_MAX_TOOL_ITERATIONS
from llm_bench.domain.entities import ExperimentPoint, ToolCallRecord
from llm_bench.domain.errors import ToolLoopBudgetExceeded
from llm_bench.domain.value_objects import GenerationOptions, Message
from llm_bench.tools.base import ToolRegistry

if TYPE_CHECKING:
    from llm_bench.deadline import Deadline
    from llm_bench.infrastructure.model_clients.base import ModelClient
    from llm_bench.infrastructure.telemetry import BenchmarkTelemetry

logger = logging.getLogger(__name__)

BUDGET_EXHAUSTED_CONTENT = "Maximum iterations reached without final answer"


class LoopState(enum.Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE_FINAL_ANSWER = "done_final_answer"
    DONE_BUDGET_EXHAUSTED = "done_budget_exhausted"


@dataclass
class ToolLoopResult:
    """Outcome of one tool-calling loop"""
    content: str
    final_state: LoopState
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    iterations: int = 0
    latency_ms: float = 0.0
    llm_latency_ms: float = 0.0
    tool_latency_ms: float = 0.0
    ttft_ms: float = 0.0
    prompt_eval_ms: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    error: ToolLoopBudgetExceeded | None = None

    @property
    def completed(self) -> bool:
        return self.final_state is LoopState.DONE_FINAL_ANSWER


def run_tool_loop(
    client: ModelClient,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    registry: ToolRegistry,
    max_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
    tool_names: list[str] | None = None,
    timeout_seconds: float | None = None,
    telemetry: BenchmarkTelemetry | None = None,
    point: ExperimentPoint | None = None,
    deadline: Deadline | None = None,
) -> ToolLoopResult:
    """
    Run the tool-calling loop

    Args:
        client: Model under test
        system_prompt: System prompt of the test case
        user_prompt: User prompt of the test case
        temperature: Sampling temperature
        registry: Tools available for dispatch
        max_iterations: Maximum number of model rounds
        tool_names: Tools to advertise (all registered tools if None)
        timeout_seconds: Per-request timeout
        telemetry: Receives a span and latency observation per tool call
        point: Labels for the tool call telemetry
        deadline: Caps each request timeout to the time left in the run

    Returns:
        ToolLoopResult. On budget exhaustion final_state is DONE_BUDGET_EXHAUSTED
        and error is set; partial content and tool history are kept.

    Raises:
        InferenceError: If a model round fails
    """
    if max_iterations < 1:
        raise ValueError("max_iterations must be at least 1.")

    tools = registry.definitions(tool_names)
    messages = []
    if system_prompt:
        messages.append(Message.system(system_prompt))
    messages.append(Message.user(user_prompt))

    result = ToolLoopResult(content="", final_state=LoopState.AWAITING_MODEL)
    loop_start = time.perf_counter()
    last_content = ""

    while result.iterations < max_iterations:
        result.final_state = LoopState.AWAITING_MODEL
        result.iterations += 1
        timeout = deadline.cap(timeout_seconds) if deadline else timeout_seconds
        options = GenerationOptions(temperature=temperature, timeout_seconds=timeout)

        response = client.chat(messages, options, tools=tools)
        result.llm_latency_ms += response.latency_ms
        result.prompt_tokens += response.prompt_tokens
        result.completion_tokens += response.completion_tokens
        if result.iterations == 1:
            result.ttft_ms = response.ttft_ms
            result.prompt_eval_ms = response.prompt_eval_ms
        last_content = response.content or last_content

        if not response.tool_calls:
            result.content = response.content
            result.final_state = LoopState.DONE_FINAL_ANSWER
            break

        result.final_state = LoopState.EXECUTING_TOOLS
        messages.append(Message.assistant(response.content, response.tool_calls))
        for call in response.tool_calls:
            handle = None
            if telemetry is not None and point is not None:
                handle = telemetry.start_tool_call(point, call.name, call.id, call.arguments)

            tool_start = time.perf_counter()
            output, error = registry.execute(call.name, call.arguments)
            duration_ms = (time.perf_counter() - tool_start) * 1000

            if handle is not None:
                telemetry.end_tool_call(handle, output, error)

            result.tool_latency_ms += duration_ms
            result.tool_calls.append(ToolCallRecord(
                tool_name=call.name,
                call_id=call.id,
                input=call.arguments,
                output=output,
                duration_ms=duration_ms,
                error=error,
            ))
            messages.append(Message.tool(call, output))
            logger.debug(
                "Tool call", extra={"tool": call.name, "call_id": call.id, "duration_ms": duration_ms, "error": error}
            )
    else:
        result.final_state = LoopState.DONE_BUDGET_EXHAUSTED
        result.error = ToolLoopBudgetExceeded(max_iterations)
        result.content = last_content or BUDGET_EXHAUSTED_CONTENT

    result.total_tokens = result.prompt_tokens + result.completion_tokens
    result.latency_ms = (time.perf_counter() - loop_start) * 1000
    return result
