"""
Tests for the CLI runner
"""

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from llm_bench import runner
from llm_bench.domain.constants import DEFAULT_LOCAL_MODELS
from llm_bench.domain.entities import AggregateMetrics, ExperimentPoint, Sample
from llm_bench.domain.errors import InferenceError, ProvisioningError
from llm_bench.domain.value_objects import ModelResponse
from llm_bench.harness_config import HarnessConfig
from llm_bench.scoring.llm_judge import JudgeEvaluator
from llm_bench.suite_loader import DEFAULT_SUITE_PATH

POINT = ExperimentPoint("gpt-4o-mini", "factual-question", 0.5)


def _client(content="Paris", latency=120.0):
    client = MagicMock()
    client.model_name = "gpt-4o-mini"
    client.generate.return_value = ModelResponse(
        content=content, model_name="gpt-4o-mini", latency_ms=latency,
        prompt_tokens=10, completion_tokens=5, total_tokens=15,
    )
    return client


class TestParseArgs:
    def test_defaults(self):
        args = runner.parse_args([])
        assert args.suite == str(DEFAULT_SUITE_PATH)
        assert args.models is None
        assert args.output_dir == "results"
        assert args.no_judge is False
        assert args.telemetry is False
        assert args.log_level == "WARNING"

    def test_flags(self):
        args = runner.parse_args([
            "--models", "a,b", "--temperatures", "0.1,0.9", "--repetitions", "5",
            "--no-judge", "--telemetry", "--run-id", "r1",
        ])
        assert args.models == "a,b"
        assert args.repetitions == 5
        assert args.no_judge
        assert args.telemetry
        assert args.run_id == "r1"


class TestResolveModels:
    def test_explicit_names(self):
        models = runner.resolve_models(" ai/qwen3:0.6B-Q4_0 , gpt-4o-mini,", HarnessConfig())
        assert [m.name for m in models] == ["ai/qwen3:0.6B-Q4_0", "gpt-4o-mini"]
        assert [m.external for m in models] == [False, True]

    def test_local_defaults_without_openai_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        models = runner.resolve_models(None, HarnessConfig())
        assert [m.name for m in models] == DEFAULT_LOCAL_MODELS

    def test_external_models_first_with_openai_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        models = runner.resolve_models(None, HarnessConfig())
        assert models[0].name == "gpt-4o-mini"
        assert models[0].external
        assert [m.name for m in models[1:]] == DEFAULT_LOCAL_MODELS


class TestBuildJudge:
    @patch("llm_bench.runner.select_judge_model", return_value="gpt-4o-mini")
    @patch("llm_bench.runner.create_client")
    def test_healthy_judge(self, mock_create, _):
        mock_create.return_value = _client(content="OK")
        config = HarnessConfig()

        judge = runner.build_judge(config)

        assert isinstance(judge, JudgeEvaluator)
        assert judge.timeout_seconds == config.llm_judge.timeout_seconds
        judge_config = mock_create.call_args.args[1]
        assert judge_config.isolation.max_retries == config.llm_judge.max_retries

    @patch("llm_bench.runner.select_judge_model", return_value="gpt-4o-mini")
    @patch("llm_bench.runner.create_client")
    def test_unhealthy_judge_disables_evaluation(self, mock_create, _, capsys):
        client = _client()
        client.generate.side_effect = InferenceError("401")
        mock_create.return_value = client

        assert runner.build_judge(HarnessConfig()) is None
        assert "WARNING: answers will not be evaluated." in capsys.readouterr().out

    @patch("llm_bench.runner.select_judge_model", return_value="nonsense")
    @patch("llm_bench.runner.create_client", side_effect=ValueError("Unsupported model"))
    def test_unknown_judge_model(self, *_):
        assert runner.build_judge(HarnessConfig()) is None


@pytest.fixture
def root_logging():
    """Start from an unconfigured root logger and restore it afterwards"""
    root = logging.getLogger()
    package_logger = logging.getLogger("llm_bench")
    saved = (root.level, list(root.handlers), package_logger.level)
    root.handlers = []
    package_logger.setLevel(logging.NOTSET)
    yield root
    root.setLevel(saved[0])
    root.handlers = saved[1]
    package_logger.setLevel(saved[2])


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.INFO)
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestConfigureLogging:
    """configure_logging"""

    def _evaluate(self):
        client = MagicMock()
        client.model_name = "mock-judge"
        client.chat.return_value = ModelResponse(
            content='{"provided_answer":"Paris","response":"yes","reason":"correct"}\n',
            model_name="mock-judge",
            latency_ms=5.0,
        )
        return JudgeEvaluator(client).evaluate("factual-question", "What is the capital of France?", "Paris", "Paris")

    def test_judge_records_reach_info_handler_with_telemetry(self, root_logging):
        runner.configure_logging(runner.parse_args([]).log_level, telemetry_enabled=True)
        collect = _Collect()
        root_logging.addHandler(collect)

        assert self._evaluate().score == 1.0
        assert [r.getMessage() for r in collect.records] == ["Evaluator response"]
        assert collect.records[0].score == 1.0

    def test_console_keeps_requested_level(self, root_logging):
        runner.configure_logging("WARNING", telemetry_enabled=True)
        assert root_logging.level == logging.WARNING
        assert root_logging.handlers[0].level == logging.WARNING

    def test_info_records_dropped_without_telemetry(self, root_logging):
        runner.configure_logging("WARNING", telemetry_enabled=False)
        collect = _Collect()
        root_logging.addHandler(collect)

        self._evaluate()
        assert collect.records == []


class TestSaveResults:
    def test_writes_both_csvs(self, tmp_path):
        samples = [
            Sample(point=POINT, iteration=0, success=True, latency_ms=100.0, total_tokens=15, content="Paris"),
            Sample.failed(POINT, 1, "timeout"),
        ]
        aggregates = [AggregateMetrics(point=POINT, num_samples=2, latency_p50=100.0, success_rate=0.5)]
        raw_path = tmp_path / "out" / "raw_samples_t.csv"
        summary_path = tmp_path / "out" / "summary_t.csv"

        runner.save_results(samples, aggregates, raw_path, summary_path)

        raw = pd.read_csv(raw_path)
        assert list(raw["iteration"]) == [0, 1]
        assert list(raw["success"]) == [True, False]
        assert raw["error"].iloc[1] == "timeout"
        summary = pd.read_csv(summary_path)
        assert summary["success_rate"].iloc[0] == 0.5
        assert summary["model"].iloc[0] == "gpt-4o-mini"


class TestPrintSummary:
    def test_one_row_per_cell(self, capsys):
        runner.print_summary([AggregateMetrics(point=POINT, latency_p50=123.0, success_rate=1.0)])
        out = capsys.readouterr().out
        assert "=== Metrics Summary ===" in out
        row = [line for line in out.splitlines() if "factual-question" in line][0]
        assert "gpt-4o-mini" in row
        assert "123" in row
        assert "100%" in row


@pytest.fixture
def isolated_env(monkeypatch):
    for key in ("BENCH_REPETITIONS", "BENCH_TEMPERATURES", "OTEL_ENABLED", "LLM_JUDGE_ENABLED", "OPENAI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(runner, "load_dotenv", lambda: None)


class TestMain:
    """End-to-end CLI flow with the model backend mocked"""

    def _argv(self, tmp_path: Path, models="gpt-4o-mini"):
        return [
            "--models", models, "--cases", "factual-question", "--temperatures", "0.5",
            "--repetitions", "2", "--no-judge", "--output-dir", str(tmp_path), "--run-id", "t1",
        ]

    def test_run_writes_results(self, tmp_path, isolated_env):
        client = _client()
        with patch("llm_bench.runner.create_client", return_value=client), \
                patch("llm_bench.runner.DockerModelRunnerProvisioner") as mock_provisioner:
            runner.main(self._argv(tmp_path))

        mock_provisioner.return_value.ensure_available.assert_not_called()
        raw = pd.read_csv(tmp_path / "raw_samples_t1.csv")
        summary = pd.read_csv(tmp_path / "summary_t1.csv")
        assert len(raw) == 2
        assert list(summary["case"]) == ["factual-question"]
        assert summary["latency_p50"].iloc[0] == 120.0
        # Health check plus two trials
        assert client.generate.call_count == 3

    def test_local_models_provisioned_before_health_check(self, tmp_path, isolated_env):
        with patch("llm_bench.runner.create_client", return_value=_client()), \
                patch("llm_bench.runner.DockerModelRunnerProvisioner") as mock_provisioner:
            runner.main(self._argv(tmp_path, models="ai/qwen3:0.6B-Q4_0"))

        mock_provisioner.return_value.ensure_available.assert_called_once_with("ai/qwen3:0.6B-Q4_0")

    def test_provisioning_failure_exits(self, tmp_path, isolated_env):
        with patch("llm_bench.runner.create_client", return_value=_client()), \
                patch("llm_bench.runner.DockerModelRunnerProvisioner") as mock_provisioner:
            mock_provisioner.return_value.ensure_available.side_effect = ProvisioningError("pull failed")
            with pytest.raises(SystemExit) as exc:
                runner.main(self._argv(tmp_path, models="ai/qwen3:0.6B-Q4_0"))
        assert exc.value.code == 1

    def test_no_available_models_exits(self, tmp_path, isolated_env):
        client = _client()
        client.generate.side_effect = InferenceError("connection refused")
        with patch("llm_bench.runner.create_client", return_value=client), \
                patch("llm_bench.runner.DockerModelRunnerProvisioner"):
            with pytest.raises(SystemExit) as exc:
                runner.main(self._argv(tmp_path))
        assert exc.value.code == 1
        assert not (tmp_path / "raw_samples_t1.csv").exists()
