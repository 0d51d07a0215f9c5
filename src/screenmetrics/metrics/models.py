"""Data models for collected metrics."""

import json
import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class Unit(str, Enum):
    """Unit a metric value is expressed in."""

    SECONDS = "seconds"
    MILLISECONDS = "milliseconds"
    NANOSECONDS = "nanoseconds"


class MetricType(str, Enum):
    """Kind of measurement a metric represents."""

    SCREEN_LOADING = "ScreenLoading"
    COUNTER = "Counter"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Metric(BaseModel):
    """A single completed measurement.

    Metrics are frozen once built. ``value`` always holds a magnitude: a
    negative input (e.g. from clock skew between start and stop) is stored
    as its absolute value. NaN and infinite values are rejected.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()).upper())
    name: str
    type: MetricType
    value: float
    unit: Unit
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("value")
    @classmethod
    def _magnitude(cls, value: float) -> float:
        # NaN and infinities have no JSON encoding
        if not math.isfinite(value):
            raise ValueError(f"value must be finite, got {value}")
        return abs(value)

    @field_validator("timestamp")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        # Naive datetimes are assumed to be UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


_METRIC_LIST = TypeAdapter(List[Metric])


def encode_metrics(metrics: Iterable[Metric]) -> bytes:
    """Serialize metrics to the JSON wire/disk format."""
    return _METRIC_LIST.dump_json(list(metrics))


def decode_metrics(data: bytes) -> List[Metric]:
    """Parse the JSON wire/disk format.

    Raises:
        pydantic.ValidationError: If the payload is not a list of metrics.
    """
    return _METRIC_LIST.validate_json(data)


def metric_to_dict(metric: Metric) -> Dict[str, Any]:
    """Plain JSON-compatible dict for one metric."""
    return json.loads(metric.model_dump_json())
