"""OpenTelemetry + Prometheus fallback wiring for Copilot Logger."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from copilot_logger import config

logger = logging.getLogger("copilot_logger.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_log_writes_counter: Any | None = None
_detections_counter: Any | None = None
_session_imports_counter: Any | None = None
_notifications_counter: Any | None = None

_prom_enabled = False
_prom_log_writes_counter: Any | None = None
_prom_detections_counter: Any | None = None
_prom_session_imports_counter: Any | None = None
_prom_notifications_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _label(value: str) -> str:
    return (value or "").strip() or "unknown"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _log_writes_counter, _detections_counter, _session_imports_counter, _notifications_counter
    global _prom_enabled
    global _prom_log_writes_counter, _prom_detections_counter
    global _prom_session_imports_counter, _prom_notifications_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (COPILOT_LOGGER_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "copilot-logger"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "copilot-logger",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_exporter = OTLPSpanExporter(endpoint=traces_endpoint or None)
    trace_provider.add_span_processor(BatchSpanProcessor(trace_exporter))
    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer("copilot_logger")

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("copilot_logger")

    _log_writes_counter = meter.create_counter(
        "copilot_logger_log_writes_total",
        unit="1",
        description="Log entry append attempts by outcome",
    )
    _detections_counter = meter.create_counter(
        "copilot_logger_detections_total",
        unit="1",
        description="Assistant interactions detected in live edits",
    )
    _session_imports_counter = meter.create_counter(
        "copilot_logger_session_imports_total",
        unit="1",
        description="Chat session files imported from the session store",
    )
    _notifications_counter = meter.create_counter(
        "copilot_logger_notifications_total",
        unit="1",
        description="Notifications surfaced to the host by severity",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = tracer
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_log_writes_counter = Counter(
                "copilot_logger_log_writes_total",
                "Log entry append attempts by outcome",
                ["result"],
            )
            _prom_detections_counter = Counter(
                "copilot_logger_detections_total",
                "Assistant interactions detected in live edits",
            )
            _prom_session_imports_counter = Counter(
                "copilot_logger_session_imports_total",
                "Chat session files imported from the session store",
                ["result"],
            )
            _prom_notifications_counter = Counter(
                "copilot_logger_notifications_total",
                "Notifications surfaced to the host by severity",
                ["severity"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        logger.debug("FastAPI uninstrumentation failed", exc_info=True)
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        logger.debug("Meter provider shutdown failed", exc_info=True)
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        logger.debug("Trace provider shutdown failed", exc_info=True)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_log_write(result: str) -> None:
    labels = {"result": _label(result)}
    if _enabled and _log_writes_counter is not None:
        _log_writes_counter.add(1, labels)
    if _prom_enabled and _prom_log_writes_counter is not None:
        _prom_log_writes_counter.labels(**labels).inc()


def record_detection() -> None:
    if _enabled and _detections_counter is not None:
        _detections_counter.add(1)
    if _prom_enabled and _prom_detections_counter is not None:
        _prom_detections_counter.inc()


def record_session_import(result: str) -> None:
    labels = {"result": _label(result)}
    if _enabled and _session_imports_counter is not None:
        _session_imports_counter.add(1, labels)
    if _prom_enabled and _prom_session_imports_counter is not None:
        _prom_session_imports_counter.labels(**labels).inc()


def record_notification(severity: str) -> None:
    labels = {"severity": _label(severity)}
    if _enabled and _notifications_counter is not None:
        _notifications_counter.add(1, labels)
    if _prom_enabled and _prom_notifications_counter is not None:
        _prom_notifications_counter.labels(**labels).inc()
