"""Named counter and gauge metrics with labels, following Prometheus naming rules."""

from __future__ import annotations

import logging
import re
import string
import threading
from typing import Iterable, Mapping

log = logging.getLogger(__name__)

_MODULE = "Metric"

_VALID_METRIC = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_VALID_LABEL = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_METRIC_CHARS = frozenset(string.ascii_letters + string.digits + "_:")
_LETTERS = frozenset(string.ascii_letters)


class _MetricVec:
    """A metric holding one value per combination of label values."""

    def __init__(self, name: str, help: str, labels: Iterable[str]) -> None:
        self.name = name
        self.help = help
        self.labels = tuple(labels)
        self._values: dict[tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Mapping[str, object] | None) -> tuple[str, ...]:
        given = dict(labels or {})
        if set(given) != set(self.labels):
            raise ValueError(
                f"labels {sorted(given)} do not match {list(self.labels)} of {self.name}"
            )
        return tuple(str(given[label]) for label in self.labels)

    def _get(self, labels: Mapping[str, object] | None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def samples(self) -> dict[tuple[str, ...], float]:
        """Return a copy of all values keyed by label values in label order."""
        with self._lock:
            return dict(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, labels={self.labels!r})"


class CounterVec(_MetricVec):
    """A monotonically increasing value per label combination."""

    def inc(self, labels: Mapping[str, object] | None = None, amount: float = 1.0) -> None:
        """Add a non-negative amount to the counter for these labels."""
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + amount

    def value(self, labels: Mapping[str, object] | None = None) -> float:
        """Return the counter value for these labels (0 when never increased)."""
        return self._get(labels)


class GaugeVec(_MetricVec):
    """An arbitrary value per label combination."""

    def set(self, labels: Mapping[str, object] | None, value: float) -> None:
        """Set the gauge for these labels."""
        key = self._key(labels)
        with self._lock:
            self._values[key] = float(value)

    def value(self, labels: Mapping[str, object] | None = None) -> float:
        """Return the gauge value for these labels (0 when never set)."""
        return self._get(labels)


_counters: dict[str, CounterVec] = {}
_gauges: dict[str, GaugeVec] = {}
_registry_lock = threading.Lock()


def counter(key: str) -> CounterVec | None:
    """Return the counter registered under key, if any."""
    return _counters.get(key)


def gauge(key: str) -> GaugeVec | None:
    """Return the gauge registered under key, if any."""
    return _gauges.get(key)


def _name_and_validate(
    namespace: str, subsystem: str, name: str, metric: str, labels: Iterable[str]
) -> str:
    metric_name = get_name(namespace, subsystem, name, metric)
    if not valid_metric_name(metric_name):
        raise ValueError(f"Invalid metric name: {metric_name}")
    for label in labels:
        if not valid_label_name(label):
            raise ValueError(f"Invalid label name: {label}")
    return metric_name


def new_counter(
    namespace: str, subsystem: str, name: str, metric: str, help: str, labels: Iterable[str]
) -> CounterVec:
    """Create and register a counter, or return the one already registered."""
    labels = list(labels)
    metric_name = _name_and_validate(namespace, subsystem, name, metric, labels)
    with _registry_lock:
        existing = _counters.get(metric_name)
        if existing is not None:
            log.debug("[%s] Counter <%s> already created!", _MODULE, metric_name)
            return existing
        if metric_name in _gauges:
            raise ValueError(
                f"duplicate metrics collector registration attempted: {metric_name}"
            )
        created = CounterVec(metric_name, help, labels)
        _counters[metric_name] = created
    log.info("[%s] Counter <%s> is created!", _MODULE, metric_name)
    return created


def new_gauge(
    namespace: str, subsystem: str, name: str, metric: str, help: str, labels: Iterable[str]
) -> GaugeVec:
    """Create and register a gauge, or return the one already registered."""
    labels = list(labels)
    metric_name = _name_and_validate(namespace, subsystem, name, metric, labels)
    with _registry_lock:
        existing = _gauges.get(metric_name)
        if existing is not None:
            log.debug("[%s] Gauge <%s> already created!", _MODULE, metric_name)
            return existing
        if metric_name in _counters:
            raise ValueError(
                f"duplicate metrics collector registration attempted: {metric_name}"
            )
        created = GaugeVec(metric_name, help, labels)
        _gauges[metric_name] = created
    log.info("[%s] Gauge <%s> is created!", _MODULE, metric_name)
    return created


def get_name(*args: str) -> str:
    """Build a metric name from the cleaned, non-empty fields joined by '_'."""
    name = "_".join(part for part in map(remove_invalid_chars, args) if part)
    log.debug("[%s] get the name: %s", _MODULE, name)
    return name


def valid_metric_name(name: str) -> bool:
    """Check whether name is a valid metric name."""
    return _VALID_METRIC.fullmatch(name) is not None


def valid_label_name(label: str) -> bool:
    """Check whether label is a valid label name."""
    return _VALID_LABEL.fullmatch(label) is not None


def valid_metric_char(ch: str) -> bool:
    """Check whether a single character may appear in a metric name."""
    return ch in _METRIC_CHARS


def remove_invalid_chars(name: str) -> str:
    """Drop everything before the first letter, then every invalid character."""
    start = next((i for i, ch in enumerate(name) if ch in _LETTERS), len(name))
    return "".join(ch for ch in name[start:] if valid_metric_char(ch))