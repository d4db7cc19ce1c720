"""
Anthropic Claude model client
"""

import json
import os
import time

from anthropic import (
    Anthropic,
    AnthropicError,
    APIConnectionError,
    InternalServerError,
    RateLimitError,
)

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
)


def to_anthropic_messages(messages: list[Message]) -> tuple[str, list[dict]]:
    """
    Split out the system prompt and convert the rest to Messages API blocks.

    Tool results travel as tool_result blocks inside a user turn; consecutive
    results are merged into one turn as the API requires alternating roles.
    """
    system_parts = []
    converted: list[dict] = []
    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        elif msg.role == "tool":
            block = {"type": "tool_result", "tool_use_id": msg.tool_call_id, "content": msg.content}
            if converted and converted[-1]["role"] == "user" and isinstance(converted[-1]["content"], list):
                converted[-1]["content"].append(block)
            else:
                converted.append({"role": "user", "content": [block]})
        elif msg.role == "assistant" and msg.tool_calls:
            blocks = []
            if msg.content:
                blocks.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                blocks.append({
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": json.loads(call.arguments or "{}"),
                })
            converted.append({"role": "assistant", "content": blocks})
        else:
            converted.append({"role": msg.role, "content": msg.content})
    return "\n\n".join(system_parts), converted


class ClaudeClient(RetryMixin, ModelClient):
    """Claude client using the Anthropic API"""

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        timeout_seconds: float = 120,
    ):
        """
        Args:
            model_name: Model name (e.g. claude-haiku-4-5-20251001)
            api_key: Anthropic API key (falls back to environment variable if not specified)
            max_retries: Maximum number of retries (default: 3)
            retry_delay_seconds: Base delay of the exponential backoff
            timeout_seconds: Default request timeout
        """
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds

        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")

        # Initialize the Anthropic client
        self.client = Anthropic(api_key=self.api_key, max_retries=0)

    def chat(
        self,
        messages: list[Message],
        options: GenerationOptions,
        tools: list[ToolDefinition] | None = None,
    ) -> ModelResponse:
        """
        Send a conversation and retrieve the response

        Raises:
            InferenceError: If the maximum number of retries is exceeded
        """
        system, converted = to_anthropic_messages(messages)
        kwargs = {
            "model": self.model_name,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": converted,
            "timeout": options.timeout_seconds or self.timeout_seconds,
        }
        if system:
            kwargs["system"] = system
        if options.top_k is not None:
            kwargs["top_k"] = options.top_k
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]

        def _call():
            start_time = time.perf_counter()
            response = self.client.messages.create(**kwargs)
            latency_ms = (time.perf_counter() - start_time) * 1000

            texts = []
            tool_calls = []
            for block in response.content:
                if block.type == "text":
                    texts.append(block.text)
                elif block.type == "tool_use":
                    tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input)))

            # Retrieve token usage
            input_tokens = getattr(response.usage, "input_tokens", 0) or 0
            output_tokens = getattr(response.usage, "output_tokens", 0) or 0

            return ModelResponse(
                content="".join(texts).strip(),
                model_name=self.model_name,
                latency_ms=latency_ms,
                ttft_ms=latency_ms,
                prompt_eval_ms=estimate_prompt_eval_ms(input_tokens),
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
                tool_calls=tool_calls,
            )

        try:
            return self._with_retry(
                _call,
                retryable_exceptions=(APIConnectionError, RateLimitError, InternalServerError),
            )
        except AnthropicError as e:
            raise InferenceError(f"{self.model_name}: {e}") from e
