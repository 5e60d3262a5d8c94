import logging
import re
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)


class RedactingSpanProcessor(SpanProcessor):
    """
    SpanProcessor that redacts sensitive information from spans before they are exported.
    """
    def __init__(self, processor: SpanProcessor):
        self._processor = processor
        self._sensitive_keys = {
            "authorization", "cookie", "set-cookie",
            "encrypted_path", "encryptedpath", "iv", "tag",
            # Statements carry note content as bound parameters
            "db.statement",
        }
        self._sensitive_patterns = [
            re.compile(r"http\.request\.header\..*", re.IGNORECASE),
            re.compile(r"http\.response\.header\..*", re.IGNORECASE),
            re.compile(r".*(token|secret|master_key|password).*", re.IGNORECASE),
        ]

    def on_start(self, span: Span, parent_context: Optional[Context] = None) -> None:
        self._processor.on_start(span, parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if span.attributes:
            redacted = {
                key: "[REDACTED]" if self._should_redact(key) else value
                for key, value in span.attributes.items()
            }
            # ReadableSpan has no public setter; the delegate reads _attributes
            if hasattr(span, "_attributes"):
                span._attributes = redacted

        self._processor.on_end(span)

    def shutdown(self) -> None:
        self._processor.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._processor.force_flush(timeout_millis)

    def _should_redact(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in self._sensitive_keys:
            return True
        return any(pattern.match(key_lower) for pattern in self._sensitive_patterns)


def setup_opentelemetry(app: FastAPI, otlp_endpoint: Optional[str] = None, dev_mode: bool = False) -> None:
    """Instrument FastAPI and SQLAlchemy, exporting through the redacting processor."""
    provider = TracerProvider()

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
    elif dev_mode:
        processor = BatchSpanProcessor(ConsoleSpanExporter())
    else:
        processor = None

    if processor:
        provider.add_span_processor(RedactingSpanProcessor(processor))

    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls="health/*")

    SQLAlchemyInstrumentor().instrument(
        tracer_provider=provider,
        enable_commenter=False,
    )
    logger.info("OpenTelemetry tracing enabled")
