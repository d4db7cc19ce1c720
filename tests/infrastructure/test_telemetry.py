"""
Tests for telemetry emission using the OpenTelemetry SDK in-memory reader and exporter
"""

import logging

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from llm_bench.domain.constants import LATENCY_BUCKETS_MS, TOOL_CALL_BUCKETS_MS
from llm_bench.domain.entities import AggregateMetrics, ExperimentPoint, Sample
from llm_bench.infrastructure.telemetry import (
    AGGREGATE_GAUGES,
    ERROR_BENCHMARK,
    BenchmarkTelemetry,
    current_trace_ids,
    log_error,
)
from llm_bench.metrics_calc import AggregateStore

POINT = ExperimentPoint("ai/llama3.2:1B-Q4_0", "factual-question", 0.5)
LABELS = {"model": "ai/llama3.2:1B-Q4_0", "case": "factual-question", "temp": "0.5"}


@pytest.fixture
def otel():
    reader = InMemoryMetricReader()
    exporter = InMemorySpanExporter()
    tracer_provider = TracerProvider()
    tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
    meter_provider = MeterProvider(metric_readers=[reader])
    store = AggregateStore()
    telemetry = BenchmarkTelemetry(store, meter_provider=meter_provider, tracer_provider=tracer_provider)
    yield telemetry, store, reader, exporter
    meter_provider.shutdown()
    tracer_provider.shutdown()


def _metrics(reader) -> dict:
    """Metric name -> list of data points"""
    found = {}
    data = reader.get_metrics_data()
    if data is None:
        return found
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                found.setdefault(metric.name, []).extend(metric.data.data_points)
    return found


def _sample(**kwargs):
    defaults = dict(point=POINT, iteration=0, success=True, latency_ms=420.0, ttft_ms=80.0,
                    prompt_eval_ms=30.0, prompt_tokens=12, completion_tokens=20, total_tokens=32)
    defaults.update(kwargs)
    return Sample(**defaults)


class TestTrialRecording:
    """trial_span + record_trial"""

    def test_histograms_carry_labels_and_trace_ids(self, otel):
        telemetry, _, reader, exporter = otel

        with telemetry.trial_span(POINT, 0):
            trace_id, span_id = current_trace_ids()
            telemetry.record_trial(_sample())

        points = _metrics(reader)
        latency = points["llm.latency"][0]
        assert latency.sum == pytest.approx(420.0)
        assert {k: latency.attributes[k] for k in LABELS} == LABELS
        assert latency.attributes["trace_id"] == trace_id
        assert latency.attributes["span_id"] == span_id
        assert list(latency.explicit_bounds) == LATENCY_BUCKETS_MS
        assert points["llm.ttft"][0].sum == pytest.approx(80.0)
        assert points["llm.prompt_eval_time"][0].sum == pytest.approx(30.0)

        span = exporter.get_finished_spans()[0]
        assert span.name == "benchmark.trial"
        assert format(span.context.trace_id, "032x") == trace_id
        assert span.attributes["iteration"] == 0
        assert span.attributes["latency_ms"] == 420.0

    def test_zero_ttft_not_recorded(self, otel):
        telemetry, _, reader, _ = otel
        with telemetry.trial_span(POINT, 0):
            telemetry.record_trial(_sample(ttft_ms=0.0, prompt_eval_ms=0.0))
        points = _metrics(reader)
        assert "llm.latency" in points
        assert "llm.ttft" not in points
        assert "llm.prompt_eval_time" not in points

    def test_failed_trial_marks_span_error(self, otel):
        telemetry, _, _, exporter = otel
        with telemetry.trial_span(POINT, 1):
            telemetry.record_trial(Sample.failed(POINT, 1, "connection refused"))
        span = exporter.get_finished_spans()[0]
        assert span.status.status_code is StatusCode.ERROR
        assert span.status.description == "connection refused"

    def test_no_active_span_gives_empty_ids(self):
        assert current_trace_ids() == ("", "")


class TestToolCalls:
    """start_tool_call / end_tool_call"""

    def test_child_span_and_latency(self, otel):
        telemetry, _, reader, exporter = otel

        with telemetry.trial_span(POINT, 0):
            handle = telemetry.start_tool_call(POINT, "calculator", "call_1", '{"operation": "add"}')
            duration = telemetry.end_tool_call(handle, '{"result": 3.0}')

        assert duration >= 0.0
        spans = {s.name: s for s in exporter.get_finished_spans()}
        tool_span = spans["tool.calculator"]
        assert tool_span.parent.span_id == spans["benchmark.trial"].context.span_id
        assert tool_span.attributes["tool.call_id"] == "call_1"
        assert tool_span.attributes["tool.output"] == '{"result": 3.0}'

        point = _metrics(reader)["llm.tool_call.latency"][0]
        assert point.attributes["tool"] == "calculator"
        assert point.attributes["case"] == "factual-question"
        assert point.count == 1
        assert list(point.explicit_bounds) == TOOL_CALL_BUCKETS_MS

    def test_error_sets_status(self, otel):
        telemetry, _, _, exporter = otel
        handle = telemetry.start_tool_call(POINT, "http_get", "call_2", "{}")
        telemetry.end_tool_call(handle, '{"error": "timeout"}', error="timeout")
        span = exporter.get_finished_spans()[0]
        assert span.status.status_code is StatusCode.ERROR


class TestAggregateGauges:
    """Observable gauges read the AggregateStore on collection"""

    def test_gauges_follow_store(self, otel):
        telemetry, store, reader, _ = otel

        store.put(POINT, AggregateMetrics(point=POINT, num_samples=3, latency_p50=200.0, success_rate=1.0))
        points = _metrics(reader)
        assert points["llm.latency.p50"][0].value == pytest.approx(200.0)
        assert dict(points["llm.latency.p50"][0].attributes) == LABELS
        assert points["llm.success_rate"][0].value == pytest.approx(1.0)

        store.put(POINT, AggregateMetrics(point=POINT, num_samples=3, latency_p50=150.0))
        assert _metrics(reader)["llm.latency.p50"][0].value == pytest.approx(150.0)

    def test_every_gauge_maps_to_a_field(self):
        fields = AggregateMetrics.__dataclass_fields__
        for name, _, attr in AGGREGATE_GAUGES:
            assert name.startswith("llm.")
            assert attr in fields


class TestDefaults:
    def test_works_with_global_noop_providers(self):
        telemetry = BenchmarkTelemetry(AggregateStore())
        with telemetry.trial_span(POINT, 0):
            telemetry.record_trial(_sample())
        handle = telemetry.start_tool_call(POINT, "calculator", "c", "{}")
        assert telemetry.end_tool_call(handle, "{}") >= 0.0


class TestLogError:
    def test_record_carries_labels(self, caplog):
        with caplog.at_level(logging.ERROR, logger="llm_bench.infrastructure.telemetry"):
            log_error(ERROR_BENCHMARK, POINT, RuntimeError("boom"), iteration=2)

        record = caplog.records[0]
        assert record.error_type == "benchmark_error"
        assert record.model == POINT.model
        assert record.temp == "0.5"
        assert record.iteration == 2
        assert "boom" in record.getMessage()
