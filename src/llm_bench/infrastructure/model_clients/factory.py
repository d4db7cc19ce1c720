"""
Model client factory

Creates the appropriate client instance based on the model name.
"""

from __future__ import annotations

import os

from llm_bench.domain.constants import OPENAI_BASE_URL
from llm_bench.harness_config import HarnessConfig, load_config
from llm_bench.infrastructure.model_clients.base import ModelClient
from llm_bench.infrastructure.model_clients.claude import ClaudeClient
from llm_bench.infrastructure.model_clients.openai_compatible import OpenAICompatibleClient
from llm_bench.infrastructure.model_clients.vertex_ai import VertexAIClient

HOSTED_OPENAI_PREFIXES = ("gpt-", "o1", "o3", "o4")


def is_hosted_openai(model_name: str) -> bool:
    return model_name.startswith(HOSTED_OPENAI_PREFIXES)


def is_external_model(model_name: str) -> bool:
    """True for models served by a hosted provider rather than the local runtime"""
    return is_hosted_openai(model_name) or model_name.startswith(("claude", "gemini"))


def create_client(
    model_name: str,
    config: HarnessConfig | None = None,
    base_url: str | None = None,
) -> ModelClient:
    """
    Create the appropriate client based on the model name

    Args:
        model_name: Model name
        config: HarnessConfig (loads from env if not provided)
        base_url: Endpoint override for OpenAI-compatible models

    Returns:
        ModelClient: The appropriate client instance
    """
    if config is None:
        config = load_config()

    timeout = config.isolation.timeout_seconds
    retries = config.isolation.max_retries
    retry_delay = config.isolation.retry_delay_seconds

    if model_name.startswith("claude"):
        return ClaudeClient(model_name, max_retries=retries, retry_delay_seconds=retry_delay, timeout_seconds=timeout)
    elif model_name.startswith("gemini"):
        return VertexAIClient(model_name, timeout_seconds=timeout, max_retries=retries, retry_delay_seconds=retry_delay)
    elif is_hosted_openai(model_name):
        return OpenAICompatibleClient(
            model_name,
            base_url=base_url or OPENAI_BASE_URL,
            api_key=os.environ.get("OPENAI_API_KEY"),
            max_retries=retries,
            retry_delay_seconds=retry_delay,
            timeout_seconds=timeout,
            supports_top_k=False,
        )
    else:
        return OpenAICompatibleClient(
            model_name,
            base_url=base_url or config.runtime.base_url,
            api_key=config.runtime.api_key,
            max_retries=retries,
            retry_delay_seconds=retry_delay,
            timeout_seconds=timeout,
        )
