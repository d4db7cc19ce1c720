"""
Model client base class and retry mixin

Defines the abstract base class inherited by all model clients
and the RetryMixin that consolidates shared retry logic.
"""

import logging
import time
from abc import ABC, abstractmethod

from llm_bench.domain.constants import (
    ESTIMATED_PROMPT_EVAL_TOKENS_PER_SEC,
    LOG_ANSWER_MAX_CHARS,
    LOG_QUESTION_MAX_CHARS,
)
from llm_bench.domain.value_objects import (
    GenerationOptions,
    Message,
    ModelResponse,
    ToolDefinition,
    truncate,
)

logger = logging.getLogger(__name__)


class RetryMixin:
    """Exponential backoff retry. Subclasses set self.max_retries."""

    max_retries: int = 3
    retry_delay_seconds: float = 1.0

    def _with_retry(self, fn, retryable_exceptions=(Exception,)):
        """
        Execute with exponential backoff retry.

        Args:
            fn: The function to retry (a callable with no arguments)
            retryable_exceptions: Tuple of exception types eligible for retry

        Returns:
            The return value of fn()

        Raises:
            ValueError: If max_retries is less than 1
            Exception: The last exception if max retries are exceeded
        """
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1.")

        last_exception: Exception | None = None
        for attempt in range(self.max_retries):
            try:
                return fn()
            except retryable_exceptions as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay_seconds * 2 ** attempt)

        assert last_exception is not None
        raise last_exception


def estimate_tokens(text: str) -> int:
    """Rough token count used when the API reports no usage (4 chars per token)"""
    return len(text) // 4


def estimate_prompt_eval_ms(prompt_tokens: int) -> float:
    """Prompt processing time estimate for runtimes that do not report it"""
    if prompt_tokens <= 0:
        return 0.0
    return prompt_tokens / ESTIMATED_PROMPT_EVAL_TOKENS_PER_SEC * 1000.0


class ModelClient(ABC):
    """Abstract base class for model clients"""

    model_name: str

    @abstractmethod
    def chat(
        self,
        messages: list[Message],
        options: GenerationOptions,
        tools: list[ToolDefinition] | None = None,
    ) -> ModelResponse:
        """
        Send a conversation and retrieve the response

        Args:
            messages: Conversation history (system, user, assistant, tool messages)
            options: Sampling parameters and request timeout
            tools: Tool schemas the model may call

        Returns:
            ModelResponse: The model's response, including any requested tool calls

        Raises:
            InferenceError: If the model cannot be reached or the retries are exhausted
        """
        pass

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        tools: list[ToolDefinition] | None = None,
        timeout_seconds: float | None = None,
    ) -> ModelResponse:
        """Single-turn convenience wrapper around chat()"""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(user_prompt))
        options = GenerationOptions(temperature=temperature, timeout_seconds=timeout_seconds)
        response = self.chat(messages, options, tools=tools)

        logger.info(
            "Model response",
            extra={
                "model": self.model_name,
                "temperature": temperature,
                "system_prompt": truncate(system_prompt, LOG_QUESTION_MAX_CHARS),
                "user_prompt": truncate(user_prompt, LOG_QUESTION_MAX_CHARS),
                "content": truncate(response.content, LOG_ANSWER_MAX_CHARS),
                "latency_ms": response.latency_ms,
                "ttft_ms": response.ttft_ms,
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
            },
        )
        return response
