"""Shared telemetry: logging setup and tracing helpers."""

from muskoka.shared.telemetry.logging import setup_logging
from muskoka.shared.telemetry.tracing import add_span_attributes, traced

__all__ = [
    "add_span_attributes",
    "setup_logging",
    "traced",
]
