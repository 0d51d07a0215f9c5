"""Metric export module."""

from .exporter import (
    DEFAULT_EXPORT_URL,
    EXPORT_BATCH_SIZE,
    ExportResult,
    MetricExporter,
    RemoteMetricExporter,
)
from .transport import HttpClient, LoggingHttpClient, RecordingHttpClient, RequestsHttpClient

__all__ = [
    "DEFAULT_EXPORT_URL",
    "EXPORT_BATCH_SIZE",
    "ExportResult",
    "MetricExporter",
    "RemoteMetricExporter",
    "HttpClient",
    "LoggingHttpClient",
    "RecordingHttpClient",
    "RequestsHttpClient",
]
