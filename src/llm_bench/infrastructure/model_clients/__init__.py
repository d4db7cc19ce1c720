"""
Model client package

Provides a unified interface to the local model runtime and each hosted LLM provider.
"""

from llm_bench.infrastructure.model_clients.base import ModelClient
from llm_bench.infrastructure.model_clients.factory import create_client, is_external_model
from llm_bench.domain.value_objects import ModelResponse

__all__ = ["ModelClient", "ModelResponse", "create_client", "is_external_model"]
