"""
Metrics Calculation

Reduces the Samples of one ExperimentPoint into AggregateMetrics and keeps
the latest aggregate per point for the telemetry exporter.
"""

import threading

from llm_bench.domain.entities import AggregateMetrics, ExperimentPoint, Sample


def percentile(sorted_values: list[float], p: float) -> float:
    """
    Linear-interpolated percentile.

    The rank is p/100 * (n - 1); the value is interpolated between the two
    order statistics bracketing it.

    Args:
        sorted_values: Values sorted ascending
        p: Percentile in [0, 100]

    Returns:
        The interpolated value, or 0.0 for an empty list
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_values[0])

    rank = p / 100.0 * (n - 1)
    lower = int(rank)
    upper = lower + 1
    if upper >= n:
        return float(sorted_values[-1])
    weight = rank - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _ratio(numerator: float, denominator: float) -> float:
    """Division that yields 0.0 instead of failing or going infinite"""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def aggregate_samples(
    point: ExperimentPoint,
    samples: list[Sample],
    elapsed_ns: int = 0,
) -> AggregateMetrics:
    """
    Compute AggregateMetrics from the Samples of one cell

    Only successful Samples feed the latency, token and throughput figures.
    Judge scores are averaged over the Samples that carry a verdict.

    Args:
        point: The ExperimentPoint the Samples belong to
        samples: Every trial of the cell, successful or not
        elapsed_ns: Wall-clock duration of the whole cell in nanoseconds

    Returns:
        AggregateMetrics (all zero apart from success_rate when nothing succeeded)
    """
    successful = [s for s in samples if s.success]
    success_rate = _ratio(len(successful), len(samples))

    if not successful:
        return AggregateMetrics(point=point, num_samples=len(samples), success_rate=success_rate)

    latencies = sorted(s.latency_ms for s in successful)
    ttfts = sorted(s.ttft_ms for s in successful if s.ttft_ms > 0)
    prompt_evals = sorted(s.prompt_eval_ms for s in successful if s.prompt_eval_ms > 0)

    tokens_per_op = _mean([s.prompt_tokens + s.completion_tokens for s in successful])
    mean_latency_sec = _mean(latencies) / 1000.0
    mean_generation_sec = _mean([max(s.latency_ms - s.ttft_ms, 0.0) for s in successful]) / 1000.0
    mean_completion = _mean([s.completion_tokens for s in successful])

    evaluated = [s.evaluation for s in samples if s.evaluation is not None]
    eval_score = _mean([e.score for e in evaluated])
    eval_pass_rate = _mean([1.0 if e.passed else 0.0 for e in evaluated])

    # Tool calling
    all_calls = [call for s in successful for call in s.tool_calls]
    tool_evals = [s.tool_evaluation for s in samples if s.tool_evaluation is not None]

    return AggregateMetrics(
        point=point,
        num_samples=len(samples),
        latency_p50=percentile(latencies, 50),
        latency_p95=percentile(latencies, 95),
        ttft_p50=percentile(ttfts, 50),
        ttft_p95=percentile(ttfts, 95),
        prompt_eval_p50=percentile(prompt_evals, 50),
        prompt_eval_p95=percentile(prompt_evals, 95),
        success_rate=success_rate,
        tokens_per_op=tokens_per_op,
        eval_score=eval_score,
        eval_pass_rate=eval_pass_rate,
        tokens_per_second=_ratio(tokens_per_op, mean_latency_sec),
        output_tokens_per_second=_ratio(mean_completion, mean_generation_sec),
        ns_per_op=_ratio(elapsed_ns, len(samples)),
        tool_call_count=_mean([len(s.tool_calls) for s in successful]),
        tool_iteration_count=_mean([s.iterations for s in successful]),
        tool_success_rate=_ratio(sum(1 for c in all_calls if c.error is None), len(all_calls)),
        tool_selection_accuracy=_mean([t.tool_selection_score for t in tool_evals]),
        tool_param_accuracy=_mean([t.parameter_accuracy for t in tool_evals]),
        tool_sequence_score=_mean([t.sequence_score for t in tool_evals]),
    )


class AggregateStore:
    """
    Latest AggregateMetrics per ExperimentPoint.

    Written by the benchmark driver once per completed cell and read by the
    telemetry exporter thread. The lock only guards the dict replace/copy.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._aggregates: dict[ExperimentPoint, AggregateMetrics] = {}

    def put(self, point: ExperimentPoint, metrics: AggregateMetrics) -> None:
        """Replace any previous record for the same point"""
        with self._lock:
            self._aggregates[point] = metrics

    def get(self, point: ExperimentPoint) -> AggregateMetrics | None:
        with self._lock:
            return self._aggregates.get(point)

    def snapshot(self) -> list[AggregateMetrics]:
        with self._lock:
            return list(self._aggregates.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._aggregates)
