"""
Tests for the Python code execution tool (Docker client mocked)
"""

from unittest.mock import MagicMock, patch

import requests
from docker.errors import DockerException

from llm_bench.tools.code_executor import DEFAULT_IMAGE, CodeExecutor


def _container(stdout=b"", stderr=b"", exit_code=0):
    container = MagicMock()
    container.wait.return_value = {"StatusCode": exit_code}
    streams = {True: stdout, False: stderr}
    container.logs.side_effect = lambda **kwargs: streams[kwargs["stdout"]]
    return container


def _docker(container):
    client = MagicMock()
    client.containers.run.return_value = container
    return client


class TestCodeExecutor:
    """CodeExecutor.run"""

    def test_runs_in_sandbox_container(self):
        container = _container(stdout=b"[0, 1, 1, 2]\n")
        client = _docker(container)

        result = CodeExecutor(timeout_seconds=5, docker_client=client).run({"code": "print([0, 1, 1, 2])"})

        assert result == {"stdout": "[0, 1, 1, 2]\n", "stderr": "", "exit_code": 0}
        args, kwargs = client.containers.run.call_args
        assert args[0] == DEFAULT_IMAGE
        assert kwargs["command"] == ["python", "-c", "print([0, 1, 1, 2])"]
        assert kwargs["detach"] is True
        assert kwargs["network_disabled"] is True
        container.wait.assert_called_once_with(timeout=5)
        container.remove.assert_called_once_with(force=True)

    def test_code_never_runs_on_host(self):
        client = _docker(_container())
        with patch("subprocess.run") as mock_run, patch("os.system") as mock_system:
            CodeExecutor(docker_client=client).run({"code": "import os; os.system('id')"})
        mock_run.assert_not_called()
        mock_system.assert_not_called()
        client.containers.run.assert_called_once()

    def test_non_zero_exit_sets_error(self):
        container = _container(stderr=b"NameError: name 'x' is not defined", exit_code=1)
        result = CodeExecutor(docker_client=_docker(container)).run({"code": "print(x)"})
        assert result["exit_code"] == 1
        assert result["error"] == "process exited with code 1"
        assert "NameError" in result["stderr"]
        container.remove.assert_called_once_with(force=True)

    def test_timeout_removes_container(self):
        container = _container(stdout=b"partial")
        container.wait.side_effect = requests.exceptions.ReadTimeout("read timed out")

        result = CodeExecutor(timeout_seconds=2, docker_client=_docker(container)).run({"code": "while True: pass"})

        assert result["exit_code"] == -1
        assert result["stdout"] == "partial"
        assert result["error"] == "execution timed out after 2s"
        container.remove.assert_called_once_with(force=True)

    def test_daemon_unavailable(self):
        client = MagicMock()
        client.containers.run.side_effect = DockerException("Error while fetching server API version")
        result = CodeExecutor(docker_client=client).run({"code": "1"})
        assert result["exit_code"] == 1
        assert result["error"].startswith("failed to start container")

    @patch("llm_bench.tools.code_executor.docker.from_env")
    def test_connects_lazily(self, mock_from_env):
        mock_from_env.return_value = _docker(_container(stdout=b"ok\n"))
        executor = CodeExecutor(image="python:3.13-alpine")
        mock_from_env.assert_not_called()

        assert executor.run({"code": "print('ok')"})["stdout"] == "ok\n"
        assert mock_from_env.return_value.containers.run.call_args.args[0] == "python:3.13-alpine"

    def test_unsupported_language(self):
        client = _docker(_container())
        result = CodeExecutor(docker_client=client).run({"code": "console.log(1)", "language": "javascript"})
        client.containers.run.assert_not_called()
        assert result["error"] == "unsupported language: javascript (only python is supported)"

    def test_language_is_case_insensitive(self):
        client = _docker(_container(stdout=b"ok\n"))
        assert CodeExecutor(docker_client=client).run({"code": "print('ok')", "language": "Python"})["stdout"] == "ok\n"
