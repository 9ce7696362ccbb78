"""OpenTelemetry metrics and logs for the exchange client."""

import logging
import os

from opentelemetry import metrics
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from bitlum._version import VERSION


# Module-level state
_initialized = False
_meter = None
_log_handler = None

# Counters (cumulative)
_requests_total = None
_request_failures_total = None


def setup_telemetry() -> bool:
    """Initialize OpenTelemetry metrics and log export.

    Disabled unless OTLP_ENABLED=true. Returns True if telemetry was
    initialized, False if disabled.
    """
    global _initialized, _meter, _log_handler
    global _requests_total, _request_failures_total

    if _initialized:
        return True

    if os.getenv("OTLP_ENABLED", "false").lower() != "true":
        return False

    otlp_endpoint = os.getenv("OTLP_ENDPOINT", "http://localhost:4318/v1/metrics")
    export_interval = int(os.getenv("OTLP_EXPORT_INTERVAL", "5000"))

    resource = Resource.create({
        "service.name": "bitlum-client",
        "service.version": VERSION,
    })

    # === METRICS ===
    exporter = OTLPMetricExporter(endpoint=otlp_endpoint)
    reader = PeriodicExportingMetricReader(
        exporter,
        export_interval_millis=export_interval,
    )
    provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(provider)

    _meter = metrics.get_meter("bitlum_client", VERSION)

    _requests_total = _meter.create_counter(
        "bitlum_client_requests_total",
        description="Total number of GraphQL requests sent",
        unit="1",
    )

    _request_failures_total = _meter.create_counter(
        "bitlum_client_request_failures_total",
        description="Total number of failed GraphQL requests by stage",
        unit="1",
    )

    # === LOGS ===
    logs_endpoint = otlp_endpoint.replace("/v1/metrics", "/v1/logs")
    log_exporter = OTLPLogExporter(endpoint=logs_endpoint)
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    set_logger_provider(logger_provider)

    _log_handler = LoggingHandler(
        level=logging.INFO,
        logger_provider=logger_provider,
    )

    _initialized = True
    return True


def get_log_handler() -> LoggingHandler | None:
    """Get the OTLP logging handler to attach to Python loggers."""
    return _log_handler


def is_enabled() -> bool:
    """Check if telemetry is initialized and enabled."""
    return _initialized


# --- Counter update functions ---

def record_request(authenticated: bool) -> None:
    """Record a request leaving the transport."""
    if not _initialized:
        return

    _requests_total.add(1, {"authenticated": authenticated})


def record_failure(stage: str) -> None:
    """Record a failed request.

    ``stage`` is one of encode, credential, network, status, read.
    """
    if not _initialized:
        return

    _request_failures_total.add(1, {"stage": stage})
