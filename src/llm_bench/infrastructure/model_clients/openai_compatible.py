"""
OpenAI-compatible API model client

Serves both the local model runtime (Docker Model Runner, LM Studio,
llama.cpp server) and the hosted OpenAI API.
"""

import json
import os
import time

import openai
from openai import OpenAI

from llm_bench.domain.errors import InferenceError
from llm_bench.domain.value_objects import (
    GenerationOptions,
    Message,
    ModelResponse,
    ToolCall,
    ToolDefinition,
)
from llm_bench.infrastructure.model_clients.base import (
    ModelClient,
    RetryMixin,
    estimate_prompt_eval_ms,
    estimate_tokens,
)


def to_openai_messages(messages: list[Message]) -> list[dict]:
    """Convert provider-neutral messages to the chat.completions format"""
    converted = []
    for msg in messages:
        if msg.role == "tool":
            converted.append({
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": msg.content,
            })
        elif msg.role == "assistant" and msg.tool_calls:
            converted.append({
                "role": "assistant",
                "content": msg.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.arguments},
                    }
                    for call in msg.tool_calls
                ],
            })
        else:
            converted.append({"role": msg.role, "content": msg.content})
    return converted


def to_openai_tools(tools: list[ToolDefinition]) -> list[dict]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def runtime_prompt_eval_ms(payload) -> float:
    """
    Read the prompt processing time reported by the runtime, if any.

    Ollama-style runtimes send prompt_eval_duration in nanoseconds;
    llama.cpp sends timings.prompt_ms.

    Args:
        payload: A response object or chunk from the openai SDK

    Returns:
        Prompt evaluation time in milliseconds, or 0.0 when not reported
    """
    extra = getattr(payload, "model_extra", None) or {}
    duration_ns = extra.get("prompt_eval_duration")
    if isinstance(duration_ns, (int, float)) and duration_ns > 0:
        return duration_ns / 1_000_000
    timings = extra.get("timings")
    if isinstance(timings, dict):
        prompt_ms = timings.get("prompt_ms")
        if isinstance(prompt_ms, (int, float)) and prompt_ms > 0:
            return float(prompt_ms)
    return 0.0


class OpenAICompatibleClient(RetryMixin, ModelClient):
    """Client using an OpenAI-compatible chat.completions API"""

    def __init__(
        self,
        model_name: str,
        base_url: str | None = None,
        api_key: str | None = None,
        max_retries: int = 3,
        max_tokens: int = 1024,
        retry_delay_seconds: float = 1.0,
        timeout_seconds: float = 120,
        supports_top_k: bool = True,
    ):
        """
        Args:
            model_name: Model name (e.g. ai/llama3.2:1B-Q4_0, gpt-4o-mini)
            base_url: API endpoint (falls back to MODEL_RUNNER_BASE_URL env var if not specified)
            api_key: API key (falls back to MODEL_RUNNER_API_KEY env var; local runtimes ignore it)
            max_retries: Maximum number of retries (default: 3)
            max_tokens: Maximum number of tokens (default: 1024)
            retry_delay_seconds: Base delay of the exponential backoff
            timeout_seconds: Default request timeout
            supports_top_k: Send top_k as an extra body field (the hosted OpenAI API rejects it)
        """
        self.model_name = model_name
        self.max_retries = max_retries
        self.max_tokens = max_tokens
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.supports_top_k = supports_top_k

        # Configuration priority: argument > environment variable > default value
        base_url = base_url or os.environ.get("MODEL_RUNNER_BASE_URL", "http://localhost:12434/engines/v1")
        api_key = api_key or os.environ.get("MODEL_RUNNER_API_KEY", "model-runner")

        self.base_url = base_url
        self.client = OpenAI(base_url=base_url, api_key=api_key, max_retries=0)

    def _request_kwargs(
        self,
        messages: list[Message],
        options: GenerationOptions,
        tools: list[ToolDefinition] | None,
    ) -> dict:
        kwargs = {
            "model": self.model_name,
            "messages": to_openai_messages(messages),
            "temperature": options.temperature,
            "max_tokens": options.max_tokens or self.max_tokens,
            "timeout": options.timeout_seconds or self.timeout_seconds,
        }
        if options.seed is not None:
            kwargs["seed"] = options.seed
        if options.top_k is not None and self.supports_top_k:
            kwargs["extra_body"] = {"top_k": options.top_k}
        if tools:
            kwargs["tools"] = to_openai_tools(tools)
        return kwargs

    def chat(
        self,
        messages: list[Message],
        options: GenerationOptions,
        tools: list[ToolDefinition] | None = None,
    ) -> ModelResponse:
        """
        Send a conversation and retrieve the response

        Plain requests are streamed so the first content chunk gives the
        time-to-first-token. Requests carrying tools are sent unstreamed and
        report TTFT equal to the full latency.

        Raises:
            InferenceError: If the maximum number of retries is exceeded
        """
        kwargs = self._request_kwargs(messages, options, tools)
        prompt_text = "".join(m.content for m in messages)
        call = self._call_with_tools if tools else self._call_streaming

        try:
            return self._with_retry(
                lambda: call(kwargs, prompt_text),
                retryable_exceptions=(
                    openai.APIConnectionError,
                    openai.RateLimitError,
                    openai.InternalServerError,
                ),
            )
        except openai.OpenAIError as e:
            raise InferenceError(f"{self.model_name}: {e}") from e

    def _call_streaming(self, kwargs: dict, prompt_text: str) -> ModelResponse:
        start = time.perf_counter()
        first_token_at: float | None = None
        parts: list[str] = []
        usage = None
        prompt_eval_ms = 0.0

        stream = self.client.chat.completions.create(
            stream=True,
            stream_options={"include_usage": True},
            **kwargs,
        )
        for chunk in stream:
            if chunk.choices:
                delta = chunk.choices[0].delta
                if delta is not None and delta.content:
                    if first_token_at is None:
                        first_token_at = time.perf_counter()
                    parts.append(delta.content)
            if chunk.usage:
                usage = chunk.usage
            prompt_eval_ms = runtime_prompt_eval_ms(chunk) or prompt_eval_ms
        end = time.perf_counter()

        latency_ms = (end - start) * 1000
        ttft_ms = (first_token_at - start) * 1000 if first_token_at is not None else latency_ms
        content = "".join(parts).strip()
        return self._build_response(content, [], latency_ms, ttft_ms, usage, prompt_eval_ms, prompt_text)

    def _call_with_tools(self, kwargs: dict, prompt_text: str) -> ModelResponse:
        start = time.perf_counter()
        response = self.client.chat.completions.create(**kwargs)
        latency_ms = (time.perf_counter() - start) * 1000

        if not response.choices:
            raise InferenceError(f"{self.model_name}: response contained no choices")
        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (message.tool_calls or [])
        ]
        content = (message.content or "").strip()
        return self._build_response(
            content, tool_calls, latency_ms, latency_ms,
            response.usage, runtime_prompt_eval_ms(response), prompt_text,
        )

    def _build_response(
        self,
        content: str,
        tool_calls: list[ToolCall],
        latency_ms: float,
        ttft_ms: float,
        usage,
        prompt_eval_ms: float,
        prompt_text: str,
    ) -> ModelResponse:
        # Retrieve token usage, estimating when the runtime does not report it
        prompt_tokens = 0
        completion_tokens = 0
        if usage:
            prompt_tokens = usage.prompt_tokens or 0
            completion_tokens = usage.completion_tokens or 0
        if prompt_tokens == 0:
            prompt_tokens = estimate_tokens(prompt_text)
        if completion_tokens == 0:
            completion_tokens = estimate_tokens(
                content + "".join(json.dumps([c.name, c.arguments]) for c in tool_calls)
            )

        if prompt_eval_ms <= 0:
            prompt_eval_ms = estimate_prompt_eval_ms(prompt_tokens)

        return ModelResponse(
            content=content,
            model_name=self.model_name,
            latency_ms=latency_ms,
            ttft_ms=ttft_ms,
            prompt_eval_ms=prompt_eval_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            tool_calls=tool_calls,
        )
