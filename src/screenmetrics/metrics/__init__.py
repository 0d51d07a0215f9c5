"""Metric models and span tracking."""

from .models import Metric, MetricType, Unit, decode_metrics, encode_metrics
from .tracker import InFlightTracker

__all__ = [
    "Metric",
    "MetricType",
    "Unit",
    "decode_metrics",
    "encode_metrics",
    "InFlightTracker",
]
