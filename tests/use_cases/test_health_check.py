"""
Tests for model and judge health checks
"""

from unittest.mock import MagicMock

from llm_bench.domain.entities import ModelSpec
from llm_bench.domain.errors import InferenceError
from llm_bench.domain.value_objects import ModelResponse
from llm_bench.use_cases.health_check import (
    HEALTH_CHECK_PROMPT,
    health_check_all_models,
    health_check_model,
    run_judge_health_check,
)


def _client(content="OK", latency=42.0, error=None):
    client = MagicMock()
    client.model_name = "test-model"
    if error:
        client.generate.side_effect = error
    else:
        client.generate.return_value = ModelResponse(content=content, model_name="test-model", latency_ms=latency)
    return client


class TestHealthCheckModel:
    def test_success(self):
        client = _client()
        result = health_check_model(ModelSpec("ai/qwen3:0.6B-Q4_0"), lambda spec: client)

        assert result.success
        assert result.latency_ms == 42.0
        assert result.error is None
        client.generate.assert_called_once_with("", HEALTH_CHECK_PROMPT, 0.0)

    def test_inference_failure(self):
        client = _client(error=InferenceError("connection refused"))
        result = health_check_model(ModelSpec("ai/qwen3:0.6B-Q4_0"), lambda spec: client)

        assert not result.success
        assert result.latency_ms is None
        assert result.error == "connection refused"

    def test_client_creation_failure(self):
        def create(spec):
            raise ValueError("unsupported model")

        result = health_check_model(ModelSpec("unknown"), create)
        assert not result.success
        assert result.error == "unsupported model"


class TestHealthCheckAllModels:
    def test_filters_unavailable(self, capsys):
        clients = {"up": _client(), "down": _client(error=InferenceError("x" * 150))}
        models = [ModelSpec("up"), ModelSpec("down")]

        available, results = health_check_all_models(models, lambda spec: clients[spec.name])

        assert available == [ModelSpec("up")]
        assert [r.success for r in results] == [True, False]
        out = capsys.readouterr().out
        assert "=== Model Health Check ===" in out
        assert "up... OK (42ms)" in out
        assert "down... FAILED" in out
        assert "x" * 100 + "..." in out
        assert "x" * 101 not in out


class TestJudgeHealthCheck:
    def test_success(self):
        assert run_judge_health_check(_client()) == (True, None)

    def test_failure_has_troubleshooting_hints(self):
        ok, message = run_judge_health_check(_client(error=InferenceError("401 unauthorized")))
        assert not ok
        assert "Judge (test-model) health check failed: 401 unauthorized" in message
        assert "ANTHROPIC_API_KEY" in message

    def test_empty_response(self):
        ok, message = run_judge_health_check(_client(content=""))
        assert not ok
        assert message == "Judge (test-model) returned an empty response"
