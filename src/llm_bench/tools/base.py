"""
Tool base class and registry

Every tool takes a JSON object of named arguments and returns a JSON
object. Failures inside a tool are reported through an "error" field of
the result so the model can react in its next round.
"""

import json
import logging
from abc import ABC, abstractmethod

from llm_bench.domain.value_objects import ToolDefinition

logger = logging.getLogger(__name__)


class ToolInputError(ValueError):
    """The model supplied arguments the tool cannot use"""
    pass


class Tool(ABC):
    """A callable tool exposed to the model"""

    name: str = ""
    description: str = ""
    parameters: dict = {}

    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=self.name, description=self.description, parameters=self.parameters)

    @abstractmethod
    def run(self, arguments: dict) -> dict:
        """
        Execute the tool

        Args:
            arguments: Decoded arguments

        Returns:
            JSON-serializable result; failures set the "error" key

        Raises:
            ToolInputError: If a required argument is missing or has the wrong type
        """
        pass


class ToolRegistry:
    """Tools keyed by name, dispatched through a uniform JSON-in/JSON-out call"""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self, names: list[str] | None = None) -> list[ToolDefinition]:
        """
        Tool schemas to advertise to the model

        Args:
            names: Restrict to these tools (all registered tools if None)

        Raises:
            KeyError: If a requested tool is not registered
        """
        if names is None:
            return [tool.definition() for tool in self._tools.values()]
        missing = [n for n in names if n not in self._tools]
        if missing:
            raise KeyError(f"Unknown tools: {', '.join(missing)}")
        return [self._tools[n].definition() for n in names]

    def execute(self, name: str, arguments_json: str) -> tuple[str, str | None]:
        """
        Run a tool by name

        Args:
            name: Tool name requested by the model
            arguments_json: JSON object of named arguments

        Returns:
            tuple: (result JSON, error message or None). The result is always valid JSON.
        """
        tool = self._tools.get(name)
        if tool is None:
            return _error_result(f"unknown tool: {name}")

        try:
            arguments = json.loads(arguments_json) if arguments_json and arguments_json.strip() else {}
        except json.JSONDecodeError as e:
            return _error_result(f"failed to parse {name} input: {e}")
        if not isinstance(arguments, dict):
            return _error_result(f"{name} input must be a JSON object")

        try:
            result = tool.run(arguments)
        except ToolInputError as e:
            return _error_result(f"invalid {name} input: {e}")
        except Exception as e:
            logger.warning("Tool %s failed: %s", name, e, exc_info=True)
            return _error_result(f"{name} failed: {e}")

        return json.dumps(result), result.get("error") or None


def _error_result(message: str) -> tuple[str, str]:
    return json.dumps({"error": message}), message


def require(arguments: dict, key: str, kind: type | tuple[type, ...]):
    """Fetch a required argument, checking its JSON type"""
    if key not in arguments or arguments[key] is None:
        raise ToolInputError(f"missing required argument '{key}'")
    value = arguments[key]
    if not isinstance(value, kind) or isinstance(value, bool) and bool not in _as_tuple(kind):
        raise ToolInputError(f"argument '{key}' has the wrong type")
    return value


def _as_tuple(kind) -> tuple:
    return kind if isinstance(kind, tuple) else (kind,)
