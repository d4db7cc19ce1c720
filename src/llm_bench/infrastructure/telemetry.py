"""
Telemetry Emission

Bridges Samples and AggregateMetrics to OpenTelemetry: latency histograms
with trace linkage per trial, a child span and histogram observation per tool
call, and observable gauges that read the AggregateStore on every periodic
export. init_telemetry() wires the OTLP/HTTP exporters for traces, metrics
and logs.
"""

import logging
import os
import platform
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.metrics import CallbackOptions, Observation
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from llm_bench.domain.constants import LATENCY_BUCKETS_MS, TOOL_CALL_BUCKETS_MS
from llm_bench.domain.entities import ExperimentPoint, Sample
from llm_bench.harness_config import TelemetryConfig
from llm_bench.metrics_calc import AggregateStore

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "llm-benchmark"
SERVICE_VERSION = "0.1.0"

# Metric names
METRIC_LATENCY = "llm.latency"
METRIC_TTFT = "llm.ttft"
METRIC_PROMPT_EVAL_TIME = "llm.prompt_eval_time"
METRIC_TOOL_CALL_LATENCY = "llm.tool_call.latency"

# (gauge name, description, AggregateMetrics field)
AGGREGATE_GAUGES = [
    ("llm.latency.p50", "50th percentile total latency in milliseconds", "latency_p50"),
    ("llm.latency.p95", "95th percentile total latency in milliseconds", "latency_p95"),
    ("llm.ttft.p50", "50th percentile TTFT in milliseconds", "ttft_p50"),
    ("llm.ttft.p95", "95th percentile TTFT in milliseconds", "ttft_p95"),
    ("llm.prompt_eval_time.p50", "50th percentile prompt evaluation time in milliseconds", "prompt_eval_p50"),
    ("llm.prompt_eval_time.p95", "95th percentile prompt evaluation time in milliseconds", "prompt_eval_p95"),
    ("llm.success_rate", "Success rate of LLM requests", "success_rate"),
    ("llm.tokens_per_op", "Total tokens per operation", "tokens_per_op"),
    ("llm.eval_score", "Average evaluator score (0.0-1.0) per operation", "eval_score"),
    ("llm.eval_pass_rate", "Fraction of responses marked as 'yes' by evaluator", "eval_pass_rate"),
    ("llm.tokens_per_second", "Total tokens per second (input + output / turnaround)", "tokens_per_second"),
    ("llm.output_tokens_per_second", "Output tokens per second (generation speed only)", "output_tokens_per_second"),
    ("llm.ns_per_op", "Nanoseconds per operation", "ns_per_op"),
    ("llm.tool_call.count", "Average tool calls per operation", "tool_call_count"),
    ("llm.iteration.count", "Average LLM-tool iterations per operation", "tool_iteration_count"),
    ("llm.tool.success_rate", "Tool call success rate (0.0-1.0)", "tool_success_rate"),
    ("llm.tool.param_accuracy", "Tool parameter accuracy (0.0-1.0)", "tool_param_accuracy"),
    ("llm.tool.selection_accuracy", "Correct tool selection rate (0.0-1.0)", "tool_selection_accuracy"),
    ("llm.tool.sequence_score", "Tool call sequence score (0.0-1.0)", "tool_sequence_score"),
]

# error_type values attached to error log records
ERROR_BENCHMARK = "benchmark_error"
ERROR_EVALUATION = "evaluation_error"
ERROR_TOOL_EVALUATION = "tool_evaluation_error"


@dataclass
class TelemetrySetup:
    """The SDK providers created by init_telemetry()"""
    tracer_provider: TracerProvider
    meter_provider: MeterProvider
    logger_provider: LoggerProvider
    log_handler: LoggingHandler

    def shutdown(self) -> None:
        """Flush and stop every provider"""
        logging.getLogger().removeHandler(self.log_handler)
        for name, provider in (
            ("tracer", self.tracer_provider),
            ("meter", self.meter_provider),
            ("logger", self.logger_provider),
        ):
            try:
                provider.shutdown()
            except Exception as e:
                logger.warning("Failed to shut down %s provider: %s", name, e)


def build_resource(service_name: str) -> Resource:
    """Service and host runtime attributes attached to every signal"""
    return Resource.create({
        "service.name": service_name,
        "service.version": SERVICE_VERSION,
        "python.version": platform.python_version(),
        "host.os": sys.platform,
        "host.arch": platform.machine(),
        "host.cpu_count": os.cpu_count() or 0,
        "cpu.model": platform.processor() or platform.machine(),
    })


def init_telemetry(config: TelemetryConfig) -> TelemetrySetup:
    """
    Set up OTLP/HTTP export of traces, metrics and logs

    Registers the providers globally and attaches an OpenTelemetry logging
    handler to the root logger, so log records and their extra attributes
    are exported too.

    Args:
        config: TelemetryConfig

    Returns:
        TelemetrySetup: Call shutdown() at the end of the run to flush
    """
    endpoint = config.otlp_endpoint.rstrip("/")
    resource = build_resource(config.service_name)

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces"), schedule_delay_millis=1000)
    )

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"),
        export_interval_millis=config.export_interval_seconds * 1000,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=f"{endpoint}/v1/logs"), schedule_delay_millis=1000)
    )
    log_handler = LoggingHandler(level=logging.INFO, logger_provider=logger_provider)
    logging.getLogger().addHandler(log_handler)

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)

    logger.info("Telemetry initialized", extra={"otlp_endpoint": endpoint})
    return TelemetrySetup(
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        logger_provider=logger_provider,
        log_handler=log_handler,
    )


def current_trace_ids() -> tuple[str, str]:
    """(trace_id, span_id) of the active span as hex, or empty strings"""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return "", ""
    return format(ctx.trace_id, "032x"), format(ctx.span_id, "016x")


@dataclass
class ToolCallHandle:
    """Returned by start_tool_call() and passed back to end_tool_call()"""
    point: ExperimentPoint
    tool_name: str
    call_id: str
    span: trace.Span
    started_at: float = field(default_factory=time.perf_counter)


class BenchmarkTelemetry:
    """
    Records per-trial and per-tool-call observations and publishes the
    latest aggregates as labelled gauges.

    Falls back to the globally registered providers, which are no-ops until
    init_telemetry() is called.
    """

    def __init__(
        self,
        store: AggregateStore,
        meter_provider: metrics.MeterProvider | None = None,
        tracer_provider: trace.TracerProvider | None = None,
    ):
        self.store = store
        meter = (meter_provider or metrics.get_meter_provider()).get_meter(INSTRUMENTATION_NAME)
        self.tracer = (tracer_provider or trace.get_tracer_provider()).get_tracer(INSTRUMENTATION_NAME)

        self.latency_histogram = meter.create_histogram(
            METRIC_LATENCY,
            description="Total latency of LLM requests in milliseconds",
            explicit_bucket_boundaries_advisory=LATENCY_BUCKETS_MS,
        )
        self.ttft_histogram = meter.create_histogram(
            METRIC_TTFT,
            description="Time to first token (measured via streaming) in milliseconds",
            explicit_bucket_boundaries_advisory=LATENCY_BUCKETS_MS,
        )
        self.prompt_eval_histogram = meter.create_histogram(
            METRIC_PROMPT_EVAL_TIME,
            description="Prompt evaluation time in milliseconds",
            explicit_bucket_boundaries_advisory=LATENCY_BUCKETS_MS,
        )
        self.tool_call_histogram = meter.create_histogram(
            METRIC_TOOL_CALL_LATENCY,
            unit="ms",
            description="Tool call execution latency",
            explicit_bucket_boundaries_advisory=TOOL_CALL_BUCKETS_MS,
        )

        for name, description, attr in AGGREGATE_GAUGES:
            meter.create_observable_gauge(name, callbacks=[self._gauge_callback(attr)], description=description)

    def _gauge_callback(self, attr: str):
        def callback(options: CallbackOptions):
            return [
                Observation(getattr(agg, attr), agg.point.labels())
                for agg in self.store.snapshot()
            ]
        return callback

    @contextmanager
    def trial_span(self, point: ExperimentPoint, iteration: int) -> Iterator[trace.Span]:
        """Span around one trial; histogram observations made inside it link back to it"""
        with self.tracer.start_as_current_span(
            "benchmark.trial",
            attributes={**point.labels(), "iteration": iteration, "temperature": point.temperature},
        ) as span:
            yield span

    def record_trial(self, sample: Sample) -> None:
        """Record latency, TTFT and prompt-eval observations for one trial"""
        span = trace.get_current_span()
        span.set_attributes({
            "latency_ms": sample.latency_ms,
            "ttft_ms": sample.ttft_ms,
            "prompt_eval_time_ms": sample.prompt_eval_ms,
            "prompt_tokens": sample.prompt_tokens,
            "completion_tokens": sample.completion_tokens,
            "total_tokens": sample.total_tokens,
        })
        if not sample.success:
            span.set_status(Status(StatusCode.ERROR, sample.error or "trial failed"))

        trace_id, span_id = current_trace_ids()
        attrs = {**sample.point.labels(), "trace_id": trace_id, "span_id": span_id}
        self.latency_histogram.record(sample.latency_ms, attrs)
        if sample.ttft_ms > 0:
            self.ttft_histogram.record(sample.ttft_ms, attrs)
        if sample.prompt_eval_ms > 0:
            self.prompt_eval_histogram.record(sample.prompt_eval_ms, attrs)

    def start_tool_call(
        self,
        point: ExperimentPoint,
        tool_name: str,
        call_id: str,
        arguments: str,
    ) -> ToolCallHandle:
        """Open a child span for one tool execution"""
        span = self.tracer.start_span(
            f"tool.{tool_name}",
            attributes={
                **point.labels(),
                "tool.name": tool_name,
                "tool.call_id": call_id,
                "tool.input": arguments,
            },
        )
        return ToolCallHandle(point=point, tool_name=tool_name, call_id=call_id, span=span)

    def end_tool_call(self, handle: ToolCallHandle, output: str, error: str | None = None) -> float:
        """
        Close the span opened by start_tool_call() and record its latency

        Returns:
            The tool call duration in milliseconds
        """
        duration_ms = (time.perf_counter() - handle.started_at) * 1000
        handle.span.set_attributes({"tool.output": output, "tool.duration_ms": duration_ms})
        if error:
            handle.span.set_status(Status(StatusCode.ERROR, error))
        handle.span.end()

        ctx = handle.span.get_span_context()
        attrs = {**handle.point.labels(), "tool": handle.tool_name}
        if ctx.is_valid:
            attrs["trace_id"] = format(ctx.trace_id, "032x")
            attrs["span_id"] = format(ctx.span_id, "016x")
        self.tool_call_histogram.record(duration_ms, attrs)
        return duration_ms


def log_error(error_type: str, point: ExperimentPoint, error: Exception | str, **extra) -> None:
    """Error log record tagged with error_type and the point's labels"""
    logger.error(
        "%s for %s/%s/temp%s: %s",
        error_type, point.model, point.case, point.temp_label, error,
        extra={"error_type": error_type, **point.labels(), "error": str(error), **extra},
    )
