"""
Vertex AI (Google GenAI SDK) model client
"""

import json
import os
import time

from google import genai
from google.api_core import exceptions as google_exceptions
from google.genai import errors as genai_errors
from google.genai import types
from google.genai.types import GenerateContentConfig, HttpOptions

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


def to_genai_contents(messages: list[Message]) -> tuple[str, list[types.Content]]:
    """Split out the system instruction and convert the rest to Content objects"""
    system_parts = []
    contents: list[types.Content] = []
    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        elif msg.role == "tool":
            try:
                payload = json.loads(msg.content)
            except json.JSONDecodeError:
                payload = {"output": msg.content}
            if not isinstance(payload, dict):
                payload = {"output": payload}
            contents.append(types.Content(
                role="user",
                parts=[types.Part.from_function_response(name=msg.name or "", response=payload)],
            ))
        elif msg.role == "assistant":
            parts = []
            if msg.content:
                parts.append(types.Part.from_text(text=msg.content))
            for call in msg.tool_calls:
                parts.append(types.Part.from_function_call(name=call.name, args=json.loads(call.arguments or "{}")))
            contents.append(types.Content(role="model", parts=parts))
        else:
            contents.append(types.Content(role="user", parts=[types.Part.from_text(text=msg.content)]))
    return "\n\n".join(system_parts), contents


class VertexAIClient(RetryMixin, ModelClient):
    """Model client using Google GenAI SDK (via Vertex AI)"""

    def __init__(
        self,
        model_name: str,
        project_id: str | None = None,
        location: str | None = None,
        timeout_seconds: int = 30,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
    ):
        """
        Args:
            model_name: Model name (e.g. gemini-2.5-pro, gemini-2.5-flash)
            project_id: GCP project ID (falls back to environment variable if not specified)
            location: Region (falls back to GCP_LOCATION, then "global")
            timeout_seconds: Timeout in seconds (default: 30)
            max_retries: Maximum number of retries (default: 3)
            retry_delay_seconds: Base delay of the exponential backoff
        """
        self.model_name = model_name
        self.project_id = project_id or os.environ.get("GCP_PROJECT_ID")
        self.location = location or os.environ.get("GCP_LOCATION", "global")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

        if not self.project_id:
            raise ValueError("GCP_PROJECT_ID is not set")

        # Timeout is configured via HttpOptions (milliseconds)
        self.client = genai.Client(
            vertexai=True,
            project=self.project_id,
            location=self.location,
            http_options=HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def _build_config(
        self,
        system: str,
        options: GenerationOptions,
        tools: list[ToolDefinition] | None,
    ) -> GenerateContentConfig:
        kwargs = {
            "temperature": options.temperature,
            "max_output_tokens": options.max_tokens,
        }
        if system:
            kwargs["system_instruction"] = system
        if options.top_k is not None:
            kwargs["top_k"] = options.top_k
        if options.seed is not None:
            kwargs["seed"] = options.seed
        if options.timeout_seconds:
            kwargs["http_options"] = HttpOptions(timeout=int(options.timeout_seconds * 1000))
        if tools:
            kwargs["tools"] = [types.Tool(function_declarations=[
                types.FunctionDeclaration(
                    name=t.name,
                    description=t.description,
                    parameters_json_schema=t.parameters,
                )
                for t in tools
            ])]
            # The harness runs the tools itself
            kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(disable=True)
        return GenerateContentConfig(**kwargs)

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
        system, contents = to_genai_contents(messages)
        config = self._build_config(system, options, tools)

        def _call():
            start_time = time.perf_counter()
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config,
            )
            latency_ms = (time.perf_counter() - start_time) * 1000

            tool_calls = [
                ToolCall(
                    id=fc.id or f"call_{i}",
                    name=fc.name,
                    arguments=json.dumps(dict(fc.args or {})),
                )
                for i, fc in enumerate(response.function_calls or [])
            ]

            # Retrieve token usage
            input_tokens = 0
            output_tokens = 0
            if response.usage_metadata:
                input_tokens = response.usage_metadata.prompt_token_count or 0
                output_tokens = response.usage_metadata.candidates_token_count or 0

            text = response.text if not tool_calls else ""
            return ModelResponse(
                content=(text or "").strip(),
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
                retryable_exceptions=(
                    genai_errors.ServerError,
                    google_exceptions.DeadlineExceeded,
                    google_exceptions.ServiceUnavailable,
                    google_exceptions.ResourceExhausted,
                ),
            )
        except (genai_errors.APIError, google_exceptions.GoogleAPIError) as e:
            raise InferenceError(f"{self.model_name}: {e}") from e
