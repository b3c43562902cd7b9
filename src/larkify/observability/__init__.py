"""Observability: structured logging and metrics hooks for larkify."""

from __future__ import annotations

from .logger import StructuredFormatter, get_logger
from .metrics import MetricsHook, NoopMetricsHook, resolve_metrics

__all__ = [
    "MetricsHook",
    "NoopMetricsHook",
    "StructuredFormatter",
    "get_logger",
    "resolve_metrics",
]
