"""
llm-bench CLI Runner

Runs the benchmark matrix (models x test cases x temperatures x repetitions)
and writes per-trial samples and per-cell aggregates as CSV.

Usage:
    python -m llm_bench.runner
    python -m llm_bench.runner --models ai/llama3.2:1B-Q4_0,gpt-4o-mini --temperatures 0.1,0.9
    python -m llm_bench.runner --cases factual-question,calculator-reasoning --repetitions 5 --telemetry
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from llm_bench.deadline import Deadline
from llm_bench.domain.constants import DEFAULT_LOCAL_MODELS
from llm_bench.domain.entities import AggregateMetrics, ModelSpec, Sample
from llm_bench.domain.errors import ProvisioningError, RunTimeoutError
from llm_bench.harness_config import HarnessConfig, load_config
from llm_bench.infrastructure.model_clients.factory import create_client, is_external_model
from llm_bench.infrastructure.provisioning import DockerModelRunnerProvisioner
from llm_bench.infrastructure.telemetry import BenchmarkTelemetry, init_telemetry
from llm_bench.metrics_calc import AggregateStore
from llm_bench.scoring.llm_judge import JudgeEvaluator, select_judge_model
from llm_bench.suite_loader import DEFAULT_SUITE_PATH, load_suite
from llm_bench.tools import default_registry
from llm_bench.use_cases.benchmark import BenchmarkDriver
from llm_bench.use_cases.health_check import health_check_all_models, run_judge_health_check

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="llm-bench: Benchmark LLM latency, throughput and answer quality",
    )
    parser.add_argument(
        "--suite",
        default=str(DEFAULT_SUITE_PATH),
        help="Path to the suite JSON file (default: bundled benchmark suite)",
    )
    parser.add_argument(
        "--models",
        default=None,
        help="Comma-separated list of model names (default: external models if OPENAI_API_KEY is set, "
             "then DEFAULT_LOCAL_MODELS)",
    )
    parser.add_argument(
        "--temperatures",
        default=None,
        help="Comma-separated temperatures (default: BENCH_TEMPERATURES from .env)",
    )
    parser.add_argument(
        "--repetitions",
        type=int,
        default=None,
        help="Trials per cell (default: BENCH_REPETITIONS from .env)",
    )
    parser.add_argument(
        "--cases",
        default=None,
        help="Comma-separated test case names (default: all cases in the suite)",
    )
    parser.add_argument(
        "--output-dir",
        default="results",
        help="Directory for output CSV files (default: results)",
    )
    parser.add_argument(
        "--run-id",
        default=None,
        help="Run ID used in output file names (default: current timestamp)",
    )
    parser.add_argument(
        "--no-judge",
        action="store_true",
        help="Skip LLM-as-judge evaluation",
    )
    parser.add_argument(
        "--telemetry",
        action="store_true",
        help="Export traces, metrics and logs over OTLP (same as OTEL_ENABLED=true)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    return parser.parse_args(argv)


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def resolve_models(arg: str | None, config: HarnessConfig) -> list[ModelSpec]:
    """
    Build the model list

    Explicit names win. Otherwise the configured external models come first
    when OPENAI_API_KEY is set, followed by the default local models.
    """
    if arg:
        names = _split(arg)
    else:
        names = []
        if os.environ.get("OPENAI_API_KEY"):
            names.extend(config.benchmark.external_models)
        names.extend(DEFAULT_LOCAL_MODELS)
    return [ModelSpec(name=name, external=is_external_model(name)) for name in names]


def build_judge(config: HarnessConfig) -> JudgeEvaluator | None:
    """Select, create and health-check the judge. None disables evaluation."""
    judge_model = select_judge_model(config.llm_judge)
    judge_config = replace(config, isolation=replace(config.isolation, max_retries=config.llm_judge.max_retries))

    print("=== Judge Health Check ===\n")
    print(f"  Judge model: {judge_model}... ", end="", flush=True)
    try:
        judge_client = create_client(judge_model, judge_config)
    except ValueError as e:
        print("FAILED")
        print(f"  {e}")
        print("  WARNING: answers will not be evaluated.\n")
        return None

    ok, error = run_judge_health_check(judge_client)
    if not ok:
        print("FAILED")
        print(f"  {error}")
        print("  WARNING: answers will not be evaluated.\n")
        return None

    print("OK\n")
    return JudgeEvaluator(judge_client, timeout_seconds=config.llm_judge.timeout_seconds)


def configure_logging(level: str, telemetry_enabled: bool) -> None:
    """
    Console logging at the requested level

    With telemetry on, the llm_bench loggers are lowered to INFO so the
    "Model response" and "Evaluator response" records reach the OTLP log
    handler; the console handler still filters at the requested level.
    """
    console = logging.StreamHandler()
    console.setLevel(level.upper())
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[console],
    )
    if telemetry_enabled:
        package_logger = logging.getLogger("llm_bench")
        if package_logger.getEffectiveLevel() > logging.INFO:
            package_logger.setLevel(logging.INFO)


def save_results(samples: list[Sample], aggregates: list[AggregateMetrics], raw_path: Path, summary_path: Path) -> None:
    """Save raw samples and per-cell aggregates to CSV."""
    raw_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame([s.to_row() for s in samples]).to_csv(raw_path, index=False)
    pd.DataFrame([m.to_row() for m in aggregates]).to_csv(summary_path, index=False)


def print_summary(aggregates: list[AggregateMetrics]) -> None:
    print("=== Metrics Summary ===\n")
    print(f"  {'Model':<28} {'Case':<24} {'Temp':>5} {'p50 ms':>9} {'p95 ms':>9} "
          f"{'TTFT ms':>9} {'tok/s':>8} {'Success':>8} {'Eval':>6}")
    print(f"  {'-'*28} {'-'*24} {'-'*5} {'-'*9} {'-'*9} {'-'*9} {'-'*8} {'-'*8} {'-'*6}")
    for m in aggregates:
        print(
            f"  {m.point.model:<28} {m.point.case:<24} {m.point.temp_label:>5} "
            f"{m.latency_p50:>9.0f} {m.latency_p95:>9.0f} {m.ttft_p50:>9.0f} "
            f"{m.tokens_per_second:>8.1f} {m.success_rate:>8.0%} {m.eval_score:>6.2f}"
        )
    print()


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = parse_args(argv)

    # Load config
    config = load_config()
    if args.telemetry:
        config.telemetry.enabled = True

    configure_logging(args.log_level, config.telemetry.enabled)

    models = resolve_models(args.models, config)
    temperatures = [float(t) for t in _split(args.temperatures)] if args.temperatures else config.benchmark.temperatures
    repetitions = args.repetitions if args.repetitions else config.benchmark.repetitions
    run_id = args.run_id if args.run_id else datetime.now().strftime("%Y%m%d_%H%M%S")

    # Output paths
    output_dir = Path(args.output_dir)
    raw_path = output_dir / f"raw_samples_{run_id}.csv"
    summary_path = output_dir / f"summary_{run_id}.csv"

    # Load suite
    print(f"\n=== Loading suite: {args.suite} ===\n")
    suite = load_suite(args.suite)
    test_cases = suite.select(_split(args.cases) if args.cases else None)
    print(f"  Suite: {suite.suite_name}")
    print(f"  Cases: {len(test_cases)}")
    print(f"  Models: {[m.name for m in models]}")
    print(f"  Temperatures: {temperatures}")
    print(f"  Repetitions: {repetitions}")
    print(f"  Run ID: {run_id}")
    print()

    def make_client(spec: ModelSpec):
        return create_client(spec.name, config, base_url=spec.base_url)

    # Step 1: Provision local models
    provisioner = DockerModelRunnerProvisioner(
        config.runtime.management_url,
        pull_timeout_seconds=config.runtime.pull_timeout_seconds,
    )
    try:
        for spec in models:
            if not spec.external:
                provisioner.ensure_available(spec.name)
    except ProvisioningError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    # Step 2: Health check
    available_models, _ = health_check_all_models(models, make_client)
    if not available_models:
        print("ERROR: No models available. Exiting.")
        sys.exit(1)

    # Step 3: Judge
    judge = None
    if config.llm_judge.enabled and not args.no_judge:
        judge = build_judge(config)

    # Step 4: Run the matrix
    telemetry_setup = init_telemetry(config.telemetry) if config.telemetry.enabled else None
    store = AggregateStore()
    driver = BenchmarkDriver(
        models=available_models,
        test_cases=test_cases,
        temperatures=temperatures,
        repetitions=repetitions,
        create_client_fn=make_client,
        registry=default_registry(config.tools),
        judge=judge,
        store=store,
        telemetry=BenchmarkTelemetry(store),
        max_tool_iterations=config.benchmark.max_tool_iterations,
        deadline=Deadline(config.benchmark.run_timeout_seconds),
    )
    print(f"=== Running Benchmark ({driver.total_trials} trials) ===\n")

    exit_code = 0
    try:
        driver.run()
    except RunTimeoutError as e:
        print(f"\nERROR: {e}. Keeping {len(driver.result.aggregates)} completed cells.")
        exit_code = 1
    except ProvisioningError as e:
        print(f"\nERROR: {e}")
        exit_code = 1
    finally:
        if telemetry_setup is not None:
            telemetry_setup.shutdown()

    # Step 5: Summary and CSV output
    result = driver.result
    print()
    print_summary(result.aggregates)
    save_results(result.samples, result.aggregates, raw_path, summary_path)

    print("=== Output ===\n")
    print(f"  Raw samples: {raw_path}")
    print(f"  Summary:     {summary_path}")
    print()

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
