"""In-process counters and distributions for ticket and notification activity."""
from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Dict, Iterable, Iterator, Mapping, Tuple

LabelValues = Tuple[str, ...]


class _Metric:
    kind = "metric"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> None:
        self.name = name
        self.description = description
        self.label_names: LabelValues = tuple(label_names or ())
        self._lock = Lock()

    def _key(self, labels: Mapping[str, str] | None) -> LabelValues:
        if not self.label_names:
            if labels:
                raise ValueError(f"Metric '{self.name}' does not accept labels")
            return ()
        labels = labels or {}
        missing = [label for label in self.label_names if label not in labels]
        if missing:
            raise ValueError(f"Missing labels {missing} for metric '{self.name}'")
        return tuple(str(labels[label]) for label in self.label_names)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:  # pragma: no cover - interface
        raise NotImplementedError


class Counter(_Metric):
    kind = "counter"

    def __init__(self, name: str, **kwargs) -> None:
        super().__init__(name, **kwargs)
        self._values: Dict[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] += amount

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: {"value": value} for key, value in self._values.items()}


@dataclass
class _Stats:
    count: int = 0
    total: float = 0.0
    maximum: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.maximum = max(self.maximum, value)


class Distribution(_Metric):
    kind = "distribution"

    def __init__(self, name: str, **kwargs) -> None:
        super().__init__(name, **kwargs)
        self._values: Dict[LabelValues, _Stats] = defaultdict(_Stats)

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key].observe(value)

    @contextmanager
    def time(self, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
        start = perf_counter()
        try:
            yield
        finally:
            self.observe(perf_counter() - start, labels=labels)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {
                key: {
                    "count": float(stats.count),
                    "sum": stats.total,
                    "max": stats.maximum,
                    "avg": stats.total / stats.count if stats.count else 0.0,
                }
                for key, stats in self._values.items()
            }


class MetricsRegistry:
    """Registry that hands out named metrics, creating them on first use."""

    def __init__(self) -> None:
        self._metrics: Dict[str, _Metric] = {}
        self._lock = Lock()

    def _get_or_create(self, cls, name: str, description: str, label_names: Iterable[str] | None):
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = cls(name, description=description, label_names=label_names)
                self._metrics[name] = metric
        if not isinstance(metric, cls):
            raise TypeError(f"Metric '{name}' already exists with a different type")
        return metric

    def counter(self, name: str, *, description: str = "", label_names: Iterable[str] | None = None) -> Counter:
        return self._get_or_create(Counter, name, description, label_names)

    def distribution(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> Distribution:
        return self._get_or_create(Distribution, name, description, label_names)

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            metrics = list(self._metrics.values())
        return {
            metric.name: {
                "type": metric.kind,
                "description": metric.description,
                "values": {",".join(key): values for key, values in metric.snapshot().items()},
            }
            for metric in metrics
        }


TICKET_TRANSITIONS = "ticket_transitions_total"
NOTIFICATION_DELIVERIES = "notification_deliveries_total"
NOTIFICATION_FAILURES = "notification_failures_total"
NOTIFICATION_DISPATCH_DURATION = "notification_dispatch_duration_seconds"


def register_default_metrics(registry: MetricsRegistry) -> MetricsRegistry:
    """Ensure the metrics the service reports on exist, even before first use."""

    registry.counter(
        TICKET_TRANSITIONS,
        description="Ticket lifecycle transitions applied, by transition name.",
        label_names=("transition",),
    )
    registry.counter(NOTIFICATION_DELIVERIES, description="Push messages accepted by an endpoint.")
    registry.counter(NOTIFICATION_FAILURES, description="Push messages that failed and were discarded.")
    registry.distribution(
        NOTIFICATION_DISPATCH_DURATION,
        description="Time spent fanning a message out to all endpoints of one target.",
    )
    return registry
