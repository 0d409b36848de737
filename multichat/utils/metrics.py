"""In-process metrics for chat adapters and the event hub.

Counters and gauges are kept in a process-wide registry and exposed as a
snapshot through the ``/metrics`` endpoint.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Deque, Dict, List, Optional


logger = logging.getLogger(__name__)


class MetricType(str, Enum):
    """Types of metrics."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass
class MetricPoint:
    """A single metric data point."""

    timestamp: datetime
    value: float
    labels: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "value": self.value,
            "labels": self.labels,
        }


class Metric:
    """A counter or gauge with per-label-set values."""

    def __init__(
        self,
        name: str,
        metric_type: MetricType,
        description: str = "",
        labels: Optional[Dict[str, str]] = None,
        max_points: int = 100,
    ):
        """Initialize metric.

        Args:
            name: Metric name
            metric_type: Type of metric
            description: Metric description
            labels: Default labels
            max_points: Maximum number of data points to keep
        """
        self.name = name
        self.type = metric_type
        self.description = description
        self.labels = labels or {}

        self._points: Deque[MetricPoint] = deque(maxlen=max_points)
        self._values: Dict[str, float] = {}
        self._lock = Lock()

    @staticmethod
    def _key(labels: Dict[str, str]) -> str:
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        """Get the current value for a label set (default labels when omitted)."""
        with self._lock:
            return self._values.get(self._key({**self.labels, **(labels or {})}), 0.0)

    def increment(
        self, value: float = 1.0, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Increment counter metric."""
        if self.type != MetricType.COUNTER:
            raise ValueError(f"Cannot increment non-counter metric: {self.name}")

        point_labels = {**self.labels, **(labels or {})}
        key = self._key(point_labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + value
            self._points.append(
                MetricPoint(datetime.now(timezone.utc), self._values[key], point_labels)
            )

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        """Set gauge metric value."""
        if self.type != MetricType.GAUGE:
            raise ValueError(f"Cannot set non-gauge metric: {self.name}")

        point_labels = {**self.labels, **(labels or {})}
        with self._lock:
            self._values[self._key(point_labels)] = value
            self._points.append(MetricPoint(datetime.now(timezone.utc), value, point_labels))

    def get_points(self) -> List[MetricPoint]:
        """Get recorded metric points."""
        with self._lock:
            return list(self._points)

    def get_stats(self) -> Dict[str, Any]:
        """Get metric statistics."""
        with self._lock:
            return {
                "name": self.name,
                "type": self.type.value,
                "description": self.description,
                "values": dict(self._values),
                "point_count": len(self._points),
            }


class MetricsRegistry:
    """Registry for managing metrics."""

    def __init__(self):
        """Initialize metrics registry."""
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def create_counter(
        self, name: str, description: str = "", labels: Optional[Dict[str, str]] = None
    ) -> Metric:
        """Create a counter metric."""
        return self._create_metric(name, MetricType.COUNTER, description, labels)

    def create_gauge(
        self, name: str, description: str = "", labels: Optional[Dict[str, str]] = None
    ) -> Metric:
        """Create a gauge metric."""
        return self._create_metric(name, MetricType.GAUGE, description, labels)

    def _create_metric(
        self,
        name: str,
        metric_type: MetricType,
        description: str,
        labels: Optional[Dict[str, str]],
    ) -> Metric:
        """Create a metric of specified type.

        Metrics are keyed by name and label set, so every adapter gets its
        own series under a shared name.
        """
        key = f"{name}{{{Metric._key(labels or {})}}}" if labels else name
        with self._lock:
            if key in self._metrics:
                existing = self._metrics[key]
                if existing.type != metric_type:
                    raise ValueError(
                        f"Metric '{name}' already exists with different type: "
                        f"{existing.type} != {metric_type}"
                    )
                return existing

            metric = Metric(name, metric_type, description, labels)
            self._metrics[key] = metric
            logger.debug(f"Created {metric_type.value} metric: {key}")
            return metric

    def list_metrics(self) -> List[str]:
        """List all metric keys."""
        with self._lock:
            return list(self._metrics.keys())

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all metrics."""
        with self._lock:
            return {key: metric.get_stats() for key, metric in self._metrics.items()}

    def clear_all(self) -> None:
        """Clear all metrics."""
        with self._lock:
            self._metrics.clear()
            logger.info("Cleared all metrics")


# Global instance
metrics_registry = MetricsRegistry()


def counter(
    name: str, description: str = "", labels: Optional[Dict[str, str]] = None
) -> Metric:
    """Create or get a counter metric."""
    return metrics_registry.create_counter(name, description, labels)


def gauge(
    name: str, description: str = "", labels: Optional[Dict[str, str]] = None
) -> Metric:
    """Create or get a gauge metric."""
    return metrics_registry.create_gauge(name, description, labels)
