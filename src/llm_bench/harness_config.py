"""
Benchmark Harness Configuration

Manages loading from environment variables and default values.
"""

import os
from dataclasses import dataclass, field, asdict

from llm_bench.domain.constants import (
    DEFAULT_EXTERNAL_MODELS,
    DEFAULT_MAX_TOOL_ITERATIONS,
    DEFAULT_TEMPERATURES,
)


def _env_bool(key: str, default: bool) -> bool:
    """Convert an environment variable to bool"""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int) -> int:
    """Convert an environment variable to int"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to an integer.")


def _env_float(key: str, default: float) -> float:
    """Convert an environment variable to float"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to a number.")


def _env_str(key: str, default: str) -> str:
    """Get an environment variable as a string"""
    return os.environ.get(key, default)


def _env_float_list(key: str, default: list[float]) -> list[float]:
    """Convert an environment variable to a comma-separated list of floats"""
    val = os.environ.get(key)
    if val is None:
        return list(default)
    try:
        return [float(x.strip()) for x in val.split(",") if x.strip()]
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to a comma-separated list of numbers.")


def _env_str_list(key: str, default: list[str]) -> list[str]:
    """Convert an environment variable to a comma-separated list of strings"""
    val = os.environ.get(key)
    if val is None:
        return list(default)
    return [x.strip() for x in val.split(",") if x.strip()]


@dataclass
class BenchmarkConfig:
    """Experiment matrix configuration"""
    repetitions: int = 3
    temperatures: list[float] = field(default_factory=lambda: list(DEFAULT_TEMPERATURES))
    max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS
    run_timeout_seconds: float = 3600.0
    external_models: list[str] = field(default_factory=lambda: list(DEFAULT_EXTERNAL_MODELS))


@dataclass
class IsolationConfig:
    """Per-request isolation configuration"""
    timeout_seconds: int = 120
    max_retries: int = 3
    retry_delay_seconds: float = 1.0


@dataclass
class RuntimeConfig:
    """Local model runtime (OpenAI-compatible API) configuration"""
    base_url: str = "http://localhost:12434/engines/v1"
    api_key: str = "model-runner"
    management_url: str = "http://localhost:12434"
    pull_timeout_seconds: int = 1800


@dataclass
class LLMJudgeConfig:
    """LLM judge configuration"""
    enabled: bool = True
    local_model: str = "ai/llama3.2:3B-Q4_K_M"
    hosted_openai_model: str = "gpt-4o-mini"
    hosted_claude_model: str = "claude-haiku-4-5-20251001"
    hosted_gemini_model: str = "gemini-2.5-flash"
    model_override: str = ""
    timeout_seconds: int = 60
    max_retries: int = 2


@dataclass
class ToolConfig:
    """Tool execution limits"""
    code_timeout_seconds: float = 30.0
    http_timeout_seconds: float = 30.0
    code_image: str = "python:3.12-alpine"


@dataclass
class TelemetryConfig:
    """OpenTelemetry export configuration"""
    enabled: bool = False
    otlp_endpoint: str = "http://localhost:4318"
    export_interval_seconds: float = 5.0
    service_name: str = "llm-benchmark"


@dataclass
class HarnessConfig:
    """Overall benchmark harness configuration"""
    benchmark: BenchmarkConfig = field(default_factory=BenchmarkConfig)
    isolation: IsolationConfig = field(default_factory=IsolationConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    llm_judge: LLMJudgeConfig = field(default_factory=LLMJudgeConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {"harness_config": asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "HarnessConfig":
        """Create from dictionary (handles presence/absence of harness_config key)"""
        config_data = data.get("harness_config", data)
        return cls(
            benchmark=BenchmarkConfig(**config_data.get("benchmark", {})),
            isolation=IsolationConfig(**config_data.get("isolation", {})),
            runtime=RuntimeConfig(**config_data.get("runtime", {})),
            llm_judge=LLMJudgeConfig(**config_data.get("llm_judge", {})),
            tools=ToolConfig(**config_data.get("tools", {})),
            telemetry=TelemetryConfig(**config_data.get("telemetry", {})),
        )


def load_config() -> HarnessConfig:
    """
    Load configuration from environment variables

    Uses default values when environment variables are not set.

    Returns:
        HarnessConfig
    """
    benchmark = BenchmarkConfig(
        repetitions=_env_int("BENCH_REPETITIONS", 3),
        temperatures=_env_float_list("BENCH_TEMPERATURES", DEFAULT_TEMPERATURES),
        max_tool_iterations=_env_int("BENCH_MAX_TOOL_ITERATIONS", DEFAULT_MAX_TOOL_ITERATIONS),
        run_timeout_seconds=_env_float("BENCH_RUN_TIMEOUT_SECONDS", 3600.0),
        external_models=_env_str_list("BENCH_EXTERNAL_MODELS", DEFAULT_EXTERNAL_MODELS),
    )
    isolation = IsolationConfig(
        timeout_seconds=_env_int("HARNESS_TIMEOUT_SECONDS", 120),
        max_retries=_env_int("HARNESS_MAX_RETRIES", 3),
        retry_delay_seconds=_env_float("HARNESS_RETRY_DELAY_SECONDS", 1.0),
    )
    runtime = RuntimeConfig(
        base_url=_env_str("MODEL_RUNNER_BASE_URL", "http://localhost:12434/engines/v1"),
        api_key=_env_str("MODEL_RUNNER_API_KEY", "model-runner"),
        management_url=_env_str("MODEL_RUNNER_MANAGEMENT_URL", "http://localhost:12434"),
        pull_timeout_seconds=_env_int("MODEL_RUNNER_PULL_TIMEOUT_SECONDS", 1800),
    )
    llm_judge = LLMJudgeConfig(
        enabled=_env_bool("LLM_JUDGE_ENABLED", True),
        local_model=_env_str("LLM_JUDGE_LOCAL_MODEL", "ai/llama3.2:3B-Q4_K_M"),
        hosted_openai_model=_env_str("LLM_JUDGE_OPENAI_MODEL", "gpt-4o-mini"),
        hosted_claude_model=_env_str("LLM_JUDGE_CLAUDE_MODEL", "claude-haiku-4-5-20251001"),
        hosted_gemini_model=_env_str("LLM_JUDGE_GEMINI_MODEL", "gemini-2.5-flash"),
        model_override=_env_str("LLM_JUDGE_MODEL", ""),
        timeout_seconds=_env_int("LLM_JUDGE_TIMEOUT_SECONDS", 60),
        max_retries=_env_int("LLM_JUDGE_MAX_RETRIES", 2),
    )
    tools = ToolConfig(
        code_timeout_seconds=_env_float("TOOL_CODE_TIMEOUT_SECONDS", 30.0),
        http_timeout_seconds=_env_float("TOOL_HTTP_TIMEOUT_SECONDS", 30.0),
        code_image=_env_str("TOOL_CODE_IMAGE", "python:3.12-alpine"),
    )
    telemetry = TelemetryConfig(
        enabled=_env_bool("OTEL_ENABLED", False),
        otlp_endpoint=_env_str("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318"),
        export_interval_seconds=_env_float("OTEL_EXPORT_INTERVAL_SECONDS", 5.0),
        service_name=_env_str("OTEL_SERVICE_NAME", "llm-benchmark"),
    )
    return HarnessConfig(
        benchmark=benchmark,
        isolation=isolation,
        runtime=runtime,
        llm_judge=llm_judge,
        tools=tools,
        telemetry=telemetry,
    )
