"""Monitoring and observability setup.

Tracing and metrics are exported over OTLP. With OTEL_SDK_DISABLED=true no
SDK providers are installed and the API falls back to no-op tracers and meters.
"""
import logging
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
import pyroscope

from config import (
    OTEL_EXPORTER_OTLP_ENDPOINT,
    OTEL_SDK_DISABLED,
    PYROSCOPE_SERVER,
    PROFILING_ENABLED,
    SERVICE_NAME,
    DEPLOYMENT_ENVIRONMENT
)

logger = logging.getLogger(__name__)


def init_tracing() -> trace.Tracer:
    """
    Initialize OpenTelemetry tracing.

    Returns:
        Tracer instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    tracer_provider = TracerProvider(resource=resource)
    otlp_span_exporter = OTLPSpanExporter(
        endpoint=OTEL_EXPORTER_OTLP_ENDPOINT,
        insecure=True
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_span_exporter))
    trace.set_tracer_provider(tracer_provider)

    logger.info(f"Tracing initialized with endpoint: {OTEL_EXPORTER_OTLP_ENDPOINT}")

    return trace.get_tracer(__name__)


def init_metrics() -> metrics.Meter:
    """
    Initialize OpenTelemetry metrics.

    Returns:
        Meter instance
    """
    resource = Resource.create({"service.name": SERVICE_NAME})

    otlp_metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True),
        export_interval_millis=5000
    )

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[otlp_metric_reader]
    )
    metrics.set_meter_provider(meter_provider)

    logger.info("Metrics initialized with OTLP exporter")

    return metrics.get_meter(__name__)


def init_profiling() -> None:
    """Initialize Pyroscope profiling when enabled."""
    if not PROFILING_ENABLED:
        logger.info("Profiling disabled")
        return
    try:
        pyroscope.configure(
            application_name=SERVICE_NAME,
            server_address=PYROSCOPE_SERVER,
            tags={"env": DEPLOYMENT_ENVIRONMENT}
        )
        logger.info(f"Profiling initialized with server: {PYROSCOPE_SERVER}")
    except Exception as e:
        logger.warning(f"Failed to initialize profiling: {e}")


# Initialize tracer and meter
if OTEL_SDK_DISABLED:
    tracer = trace.get_tracer(__name__)
    meter = metrics.get_meter(__name__)
else:
    tracer = init_tracing()
    meter = init_metrics()

# Business metrics

product_views_counter = meter.create_counter(
    "checkout.products.views",
    description="Total number of product catalog views",
    unit="1"
)

cart_additions_counter = meter.create_counter(
    "checkout.cart.additions",
    description="Total number of items added to carts",
    unit="1"
)

cart_clears_counter = meter.create_counter(
    "checkout.cart.clears",
    description="Total number of carts cleared, by reason",
    unit="1"
)

checkout_counter = meter.create_counter(
    "checkout.checkouts",
    description="Total number of checkouts, by status",
    unit="1"
)

checkout_amount_histogram = meter.create_histogram(
    "checkout.amount",
    description="Checkout total in cents",
    unit="cents"
)

rate_limit_exceeded_counter = meter.create_counter(
    "checkout.rate_limit.exceeded",
    description="Total number of rate limit violations",
    unit="1"
)
