"""
OpenTelemetry tracing configuration
"""
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from profile_sharing.core.config import get_settings
from profile_sharing.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

_tracer_provider: Optional[TracerProvider] = None


def configure_tracing() -> bool:
    """
    Install a tracer provider if tracing is enabled.

    Returns:
        True if a provider was installed by this call
    """
    global _tracer_provider

    settings = get_settings()
    if not settings.enable_tracing:
        logger.debug("Tracing is disabled")
        return False
    if _tracer_provider is not None:
        return False

    resource = Resource.create({"service.name": settings.tracing_service_name})
    _tracer_provider = TracerProvider(resource=resource)
    _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(_tracer_provider)
    logger.info(f"Tracing configured for service {settings.tracing_service_name}")
    return True


def shutdown_tracing():
    """Flush and shut down the tracer provider"""
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer (no-op when no provider is installed)"""
    return trace.get_tracer(name)


def add_span_attributes(**attributes: Any):
    """Attach attributes to the current span, skipping None values"""
    span = trace.get_current_span()
    clean: Dict[str, Any] = {k: v for k, v in attributes.items() if v is not None}
    if clean:
        span.set_attributes(clean)
