"""
Python code execution tool

Runs model-supplied code in a throwaway container with no network access
and a hard wall-clock limit. The container is removed after every call.
"""

import logging

import docker
import requests
from docker.errors import DockerException

from llm_bench.tools.base import Tool, require

logger = logging.getLogger(__name__)

DEFAULT_IMAGE = "python:3.12-alpine"


class CodeExecutor(Tool):
    """Execute Python code in a sandbox container and capture its output"""

    name = "execute_python"
    description = (
        "Executes Python code in a sandboxed container and returns stdout, stderr and the exit code. "
        "Use this tool to run or validate code."
    )
    parameters = {
        "type": "object",
        "properties": {
            "code": {
                "type": "string",
                "description": "The Python code to execute",
            },
            "language": {
                "type": "string",
                "enum": ["python"],
                "description": "Programming language (default: python)",
            },
        },
        "required": ["code"],
    }

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        image: str = DEFAULT_IMAGE,
        docker_client: docker.DockerClient | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.image = image
        self._docker = docker_client

    def _client(self) -> docker.DockerClient:
        # Connect on first use so registries can be built without a daemon
        if self._docker is None:
            self._docker = docker.from_env()
        return self._docker

    def run(self, arguments: dict) -> dict:
        code = require(arguments, "code", str)
        language = (arguments.get("language") or "python").lower()
        if language != "python":
            return _failure(f"unsupported language: {language} (only python is supported)")

        try:
            container = self._client().containers.run(
                self.image,
                command=["python", "-c", code],
                detach=True,
                network_disabled=True,
                mem_limit="256m",
                pids_limit=64,
            )
        except DockerException as e:
            return _failure(f"failed to start container: {e}")

        try:
            return self._collect(container)
        except DockerException as e:
            return _failure(f"container execution failed: {e}")
        finally:
            try:
                container.remove(force=True)
            except DockerException as e:
                logger.warning("Failed to remove code execution container: %s", e)

    def _collect(self, container) -> dict:
        try:
            status = container.wait(timeout=self.timeout_seconds)
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError):
            return {
                "stdout": _logs(container, stdout=True),
                "stderr": _logs(container, stdout=False),
                "exit_code": -1,
                "error": f"execution timed out after {self.timeout_seconds:g}s",
            }

        exit_code = status.get("StatusCode", 1)
        result = {
            "stdout": _logs(container, stdout=True),
            "stderr": _logs(container, stdout=False),
            "exit_code": exit_code,
        }
        if exit_code != 0:
            result["error"] = f"process exited with code {exit_code}"
        return result


def _logs(container, stdout: bool) -> str:
    output = container.logs(stdout=stdout, stderr=not stdout)
    return output.decode("utf-8", errors="replace") if output else ""


def _failure(message: str) -> dict:
    return {"stdout": "", "stderr": "", "exit_code": 1, "error": message}
