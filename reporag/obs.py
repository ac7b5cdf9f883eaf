"""Observability utilities providing OpenTelemetry spans.

A tracer provider is installed once on first use. Spans are exported to the console
only when settings.TRACE_TO_CONSOLE is enabled; users can register a different
exporter on the global provider externally.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from reporag.config import settings

logger = logging.getLogger(__name__)

_otel_lock = threading.Lock()
_otel_inited: bool = False


def _init_otel() -> None:
    """Initialize the global tracer provider once."""
    global _otel_inited
    if _otel_inited:
        return
    with _otel_lock:
        if _otel_inited:
            return
        tp = TracerProvider()
        if settings.TRACE_TO_CONSOLE:
            tp.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(tp)
        _otel_inited = True


@contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[None]:
    """Run the enclosed block inside an OpenTelemetry span.

    Exceptions raised in the block are recorded on the span and re-raised.

    Args:
        name: Span name.
        attributes: Optional span attributes (scalars only).
    """
    _init_otel()
    tracer = trace.get_tracer("reporag")
    start = time.perf_counter()
    with tracer.start_as_current_span(name, attributes=attributes or {}):
        try:
            yield
        finally:
            logger.debug("span %s took %.1f ms", name, (time.perf_counter() - start) * 1000)
