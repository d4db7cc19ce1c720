"""
Benchmark Execution

Runs the full-factorial experiment: every model x test case x temperature
cell is run N times in sequence, its Samples are reduced to AggregateMetrics
and the result replaces the cell's entry in the AggregateStore.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from llm_bench.deadline import Deadline
from llm_bench.domain.constants import DEFAULT_MAX_TOOL_ITERATIONS, LOG_REASON_MAX_CHARS
from llm_bench.domain.entities import AggregateMetrics, ExperimentPoint, ModelSpec, Sample
from llm_bench.domain.errors import InferenceError, JudgeError
from llm_bench.domain.value_objects import truncate
from llm_bench.infrastructure.model_clients.base import ModelClient
from llm_bench.infrastructure.provisioning import ModelProvisioner, NoopProvisioner
from llm_bench.infrastructure.telemetry import (
    ERROR_BENCHMARK,
    ERROR_EVALUATION,
    ERROR_TOOL_EVALUATION,
    BenchmarkTelemetry,
    current_trace_ids,
    log_error,
)
from llm_bench.metrics_calc import AggregateStore, aggregate_samples
from llm_bench.scoring.llm_judge import JudgeEvaluator
from llm_bench.suite_loader import TestCase
from llm_bench.tools.base import ToolRegistry
from llm_bench.use_cases.tool_loop import run_tool_loop

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkResult:
    """Everything a run produced"""
    samples: list[Sample] = field(default_factory=list)
    aggregates: list[AggregateMetrics] = field(default_factory=list)  # In cell order


class BenchmarkDriver:
    """
    Experiment matrix driver

    Trials within a cell run strictly one after another. Inference failures
    become unsuccessful Samples and judge failures leave the Sample without
    a verdict; neither stops the run. ProvisioningError and RunTimeoutError
    do, and propagate to the caller. Samples and aggregates collected up to
    that point remain available on the ``result`` attribute.
    """

    def __init__(
        self,
        models: list[ModelSpec],
        test_cases: list[TestCase],
        temperatures: list[float],
        repetitions: int,
        create_client_fn: Callable[[ModelSpec], ModelClient],
        registry: ToolRegistry,
        judge: JudgeEvaluator | None = None,
        provisioner: ModelProvisioner | None = None,
        store: AggregateStore | None = None,
        telemetry: BenchmarkTelemetry | None = None,
        max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS,
        request_timeout_seconds: float | None = None,
        deadline: Deadline | None = None,
    ):
        if repetitions < 1:
            raise ValueError("repetitions must be at least 1.")
        for tc in test_cases:
            unknown = [name for name in tc.tools if name not in registry]
            if unknown:
                raise ValueError(f"Test case '{tc.name}' uses unknown tools: {', '.join(unknown)}")

        self.models = models
        self.test_cases = test_cases
        self.temperatures = temperatures
        self.repetitions = repetitions
        self.create_client_fn = create_client_fn
        self.registry = registry
        self.judge = judge
        self.provisioner = provisioner or NoopProvisioner()
        self.store = store if store is not None else AggregateStore()
        self.telemetry = telemetry or BenchmarkTelemetry(self.store)
        self.max_tool_iterations = max_tool_iterations
        self.request_timeout_seconds = request_timeout_seconds
        self.deadline = deadline or Deadline(None)
        self.result = BenchmarkResult()

    @property
    def total_trials(self) -> int:
        return len(self.models) * len(self.test_cases) * len(self.temperatures) * self.repetitions

    def run(self) -> BenchmarkResult:
        """
        Run every cell of the matrix

        Returns:
            BenchmarkResult

        Raises:
            ProvisioningError: If a local model cannot be made available
            RunTimeoutError: If the run deadline expires
        """
        self.result = BenchmarkResult()
        progress = 0

        for spec in self.models:
            if not spec.external:
                self.provisioner.ensure_available(spec.name)
            client = self.create_client_fn(spec)

            for test_case in self.test_cases:
                for temperature in self.temperatures:
                    point = ExperimentPoint(model=spec.name, case=test_case.name, temperature=temperature)
                    print(f"[{progress + 1}-{progress + self.repetitions}/{self.total_trials}] "
                          f"{spec.name} | {test_case.name} | temp{point.temp_label}")
                    metrics = self.run_cell(client, point, test_case)
                    progress += self.repetitions
                    print(f"  p50: {metrics.latency_p50:.0f}ms | p95: {metrics.latency_p95:.0f}ms | "
                          f"success: {metrics.success_rate:.0%} | eval: {metrics.eval_score:.2f}")

        return self.result

    def run_cell(self, client: ModelClient, point: ExperimentPoint, test_case: TestCase) -> AggregateMetrics:
        """Run the N trials of one cell and publish its aggregate"""
        samples = []
        start_ns = time.perf_counter_ns()
        for iteration in range(self.repetitions):
            sample = self.run_trial(client, point, test_case, iteration)
            samples.append(sample)
            self.result.samples.append(sample)
        elapsed_ns = time.perf_counter_ns() - start_ns

        metrics = aggregate_samples(point, samples, elapsed_ns)
        self.store.put(point, metrics)
        self.result.aggregates.append(metrics)
        return metrics

    def run_trial(self, client: ModelClient, point: ExperimentPoint, test_case: TestCase, iteration: int) -> Sample:
        """
        Run one trial, record its telemetry and have the judge grade it

        Raises:
            RunTimeoutError: If the run deadline has already expired
        """
        self.deadline.check()
        timeout = self.deadline.cap(self.request_timeout_seconds)

        with self.telemetry.trial_span(point, iteration):
            trace_id, span_id = current_trace_ids()
            try:
                if test_case.is_tool_assisted:
                    sample = self._run_tool_trial(client, point, test_case, iteration, timeout)
                else:
                    sample = self._run_plain_trial(client, point, test_case, iteration, timeout)
            except InferenceError as e:
                log_error(ERROR_BENCHMARK, point, e, iteration=iteration)
                sample = Sample.failed(point, iteration, str(e))

            sample.trace_id = trace_id
            sample.span_id = span_id
            sample.timestamp = datetime.now().isoformat()
            self.telemetry.record_trial(sample)

            if self.judge is not None and sample.content:
                self._evaluate(sample, test_case)

        return sample

    def _run_plain_trial(
        self,
        client: ModelClient,
        point: ExperimentPoint,
        test_case: TestCase,
        iteration: int,
        timeout: float | None,
    ) -> Sample:
        response = client.generate(
            test_case.system_prompt,
            test_case.user_prompt,
            point.temperature,
            timeout_seconds=timeout,
        )
        return Sample(
            point=point,
            iteration=iteration,
            success=True,
            latency_ms=response.latency_ms,
            ttft_ms=response.ttft_ms,
            prompt_eval_ms=response.prompt_eval_ms,
            prompt_tokens=response.prompt_tokens,
            completion_tokens=response.completion_tokens,
            total_tokens=response.total_tokens,
            content=response.content,
            llm_latency_ms=response.latency_ms,
            iterations=1,
        )

    def _run_tool_trial(
        self,
        client: ModelClient,
        point: ExperimentPoint,
        test_case: TestCase,
        iteration: int,
        timeout: float | None,
    ) -> Sample:
        loop = run_tool_loop(
            client,
            test_case.system_prompt,
            test_case.user_prompt,
            point.temperature,
            self.registry,
            max_iterations=self.max_tool_iterations,
            tool_names=test_case.tools,
            timeout_seconds=timeout,
            telemetry=self.telemetry,
            point=point,
            deadline=self.deadline,
        )
        sample = Sample(
            point=point,
            iteration=iteration,
            success=loop.completed,
            latency_ms=loop.latency_ms,
            ttft_ms=loop.ttft_ms,
            prompt_eval_ms=loop.prompt_eval_ms,
            prompt_tokens=loop.prompt_tokens,
            completion_tokens=loop.completion_tokens,
            total_tokens=loop.total_tokens,
            content=loop.content,
            error=str(loop.error) if loop.error else None,
            tool_calls=loop.tool_calls,
            iterations=loop.iterations,
            llm_latency_ms=loop.llm_latency_ms,
            tool_latency_ms=loop.tool_latency_ms,
        )
        if loop.error:
            log_error(ERROR_BENCHMARK, point, loop.error, iteration=iteration, tool_call_count=len(loop.tool_calls))
        return sample

    def _evaluate(self, sample: Sample, test_case: TestCase) -> None:
        point = sample.point
        try:
            sample.evaluation = self.judge.evaluate(
                test_case.name,
                test_case.user_prompt,
                sample.content,
                test_case.reference,
                system_prompt=test_case.judge_prompt or None,
            )
        except JudgeError as e:
            log_error(
                ERROR_EVALUATION, point, e,
                iteration=sample.iteration,
                raw_response=truncate(e.raw_response, LOG_REASON_MAX_CHARS),
            )

        if not test_case.is_tool_assisted:
            return
        try:
            sample.tool_evaluation = self.judge.evaluate_tool_calls(
                test_case.name,
                test_case.user_prompt,
                sample.tool_calls,
                sample.content,
                test_case.reference,
                system_prompt=test_case.tool_judge_prompt or None,
            )
        except JudgeError as e:
            log_error(
                ERROR_TOOL_EVALUATION, point, e,
                iteration=sample.iteration,
                raw_response=truncate(e.raw_response, LOG_REASON_MAX_CHARS),
            )
