"""
Health Check

Performs connectivity checks for the models under test and the LLM judge.
"""

from typing import Callable

from llm_bench.domain.constants import LOG_QUESTION_MAX_CHARS
from llm_bench.domain.entities import HealthCheckResult, ModelSpec
from llm_bench.domain.errors import BenchmarkError
from llm_bench.domain.value_objects import truncate
from llm_bench.infrastructure.model_clients.base import ModelClient


HEALTH_CHECK_PROMPT = "Reply with only 'OK' if you can read this message."


def health_check_model(
    spec: ModelSpec,
    create_client_fn: Callable[[ModelSpec], ModelClient],
) -> HealthCheckResult:
    """
    Execute a health check for a single model.

    Args:
        spec: Model to check
        create_client_fn: Function to create a model client

    Returns:
        HealthCheckResult: Health check result
    """
    try:
        client = create_client_fn(spec)
        response = client.generate("", HEALTH_CHECK_PROMPT, 0.0)
        return HealthCheckResult(
            model_name=spec.name,
            success=True,
            latency_ms=response.latency_ms,
            error=None
        )
    except (BenchmarkError, ValueError) as e:
        return HealthCheckResult(
            model_name=spec.name,
            success=False,
            latency_ms=None,
            error=str(e)
        )


def health_check_all_models(
    models: list[ModelSpec],
    create_client_fn: Callable[[ModelSpec], ModelClient],
) -> tuple[list[ModelSpec], list[HealthCheckResult]]:
    """
    Execute health checks for all models.

    Args:
        models: Models to check
        create_client_fn: Function to create a model client

    Returns:
        tuple: (list of available models, list of all check results)
    """
    print("=== Model Health Check ===\n")
    results = []
    available_models = []

    for spec in models:
        print(f"  {spec.name}... ", end="", flush=True)
        result = health_check_model(spec, create_client_fn)
        results.append(result)

        if result.success:
            print(f"OK ({result.latency_ms:.0f}ms)")
            available_models.append(spec)
        else:
            error_short = truncate(result.error or "Unknown error", LOG_QUESTION_MAX_CHARS)
            print("FAILED")
            print(f"    Error: {error_short}")

    print()
    return available_models, results


def run_judge_health_check(judge_client: ModelClient) -> tuple[bool, str | None]:
    """Execute a health check for the LLM judge.

    Args:
        judge_client: Client the judge will grade with

    Returns:
        (success, error_message): (True, None) on success, (False, error_message) on failure
    """
    try:
        response = judge_client.generate("", "Reply with only 'OK'", 0.0)
    except (BenchmarkError, ValueError) as e:
        return False, (
            f"Judge ({judge_client.model_name}) health check failed: {truncate(str(e), 200)}\n"
            f"  - For Gemini: run `gcloud auth application-default login` and set GCP_PROJECT_ID\n"
            f"  - For Claude: set ANTHROPIC_API_KEY\n"
            f"  - For OpenAI: set OPENAI_API_KEY\n"
            f"  - For local models: check that the model runner is reachable at MODEL_RUNNER_BASE_URL"
        )
    if not response.content:
        return False, f"Judge ({judge_client.model_name}) returned an empty response"
    return True, None
