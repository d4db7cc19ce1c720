"""
Tool package

Tools the model can call during tool-assisted test cases.
"""

from llm_bench.harness_config import ToolConfig
from llm_bench.tools.base import Tool, ToolInputError, ToolRegistry
from llm_bench.tools.calculator import Calculator
from llm_bench.tools.code_executor import CodeExecutor
from llm_bench.tools.http_client import HTTPClient
from llm_bench.tools.pokemon import PokemonLookup


def default_registry(config: ToolConfig | None = None) -> ToolRegistry:
    """Registry holding every built-in tool"""
    config = config or ToolConfig()
    return ToolRegistry([
        Calculator(),
        CodeExecutor(timeout_seconds=config.code_timeout_seconds, image=config.code_image),
        HTTPClient(timeout_seconds=config.http_timeout_seconds),
        PokemonLookup(timeout_seconds=config.http_timeout_seconds),
    ])


__all__ = [
    "Calculator",
    "CodeExecutor",
    "HTTPClient",
    "PokemonLookup",
    "Tool",
    "ToolInputError",
    "ToolRegistry",
    "default_registry",
]
