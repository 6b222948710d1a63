"""Context managers for tracing engine operations."""

from contextlib import contextmanager

import logfire


@contextmanager
def trace_operation(operation: str, **attributes):
    """Open a ``lending.<operation>`` span and record failures on it."""
    with logfire.span(f"lending.{operation}", lending_operation=operation, **attributes) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("lending.error", str(e))
            span.set_attribute("lending.error_type", type(e).__name__)
            raise
