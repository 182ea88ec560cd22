"""OpenTelemetry configuration helpers."""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes

from investment_tracker.config import TrackerSettings

logger = logging.getLogger(__name__)

_TELEMETRY_INITIALISED = False
_LOGGER_PROVIDER: LoggerProvider | None = None
_METRIC_EXPORT_INTERVAL_MS = 10000


def _build_resource(settings: TrackerSettings) -> Resource:
    attributes: dict[str, Any] = {
        ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name,
        ResourceAttributes.SERVICE_NAMESPACE: "investment-tracker",
    }
    return Resource.create(attributes)


def setup_telemetry(settings: TrackerSettings) -> bool:
    """Configure OTLP exporters and instrument outbound httpx calls.

    Returns ``True`` when telemetry is active after the call.
    """

    global _TELEMETRY_INITIALISED, _LOGGER_PROVIDER  # noqa: PLW0603 - single initialisation guard

    if _TELEMETRY_INITIALISED:
        return True

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return False

    resource = _build_resource(settings)
    sampler = ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio))
    exporter_options = _build_exporter_options(settings)

    tracer_provider = _configure_tracing(resource, sampler, exporter_options)
    _configure_metrics(resource, exporter_options)
    _LOGGER_PROVIDER = _configure_logging(resource, exporter_options)

    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)

    _TELEMETRY_INITIALISED = True
    logger.info("Telemetry initialised and instrumentation enabled")
    return True


# Helpers

def _build_exporter_options(settings: TrackerSettings) -> dict[str, Any]:
    options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        options["endpoint"] = settings.telemetry_otlp_endpoint
    return options


def _configure_tracing(
    resource: Resource,
    sampler: ParentBased,
    exporter_options: dict[str, Any],
) -> TracerProvider:
    tracer_provider = TracerProvider(resource=resource, sampler=sampler)
    span_processor = BatchSpanProcessor(OTLPSpanExporter(**exporter_options))
    tracer_provider.add_span_processor(span_processor)
    trace.set_tracer_provider(tracer_provider)
    return tracer_provider


def _configure_metrics(
    resource: Resource,
    exporter_options: dict[str, Any],
) -> MeterProvider:
    metric_exporter = OTLPMetricExporter(**exporter_options)
    metric_reader = PeriodicExportingMetricReader(
        metric_exporter,
        export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    return meter_provider


def _configure_logging(resource: Resource, exporter_options: dict[str, Any]) -> LoggerProvider:
    logger_provider = LoggerProvider(resource=resource)
    log_exporter = OTLPLogExporter(**exporter_options)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    set_logger_provider(logger_provider)
    LoggingInstrumentor().instrument(set_logging_format=False)
    return logger_provider


def shutdown_telemetry() -> None:
    """Flush pending spans, metrics and log records before the process exits."""

    if not _TELEMETRY_INITIALISED:
        return
    tracer_provider = trace.get_tracer_provider()
    if hasattr(tracer_provider, "shutdown"):
        tracer_provider.shutdown()
    meter_provider = metrics.get_meter_provider()
    if hasattr(meter_provider, "shutdown"):
        meter_provider.shutdown()
    if _LOGGER_PROVIDER is not None:
        _LOGGER_PROVIDER.shutdown()


__all__ = ["setup_telemetry", "shutdown_telemetry"]
