"""Global notification and probe settings with normalisation of local values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .common import (
    DEFAULT_PROBE_INTERVAL,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_RETRY_TIMES,
    DEFAULT_STATUS_CHANGE_THRESHOLD,
    DEFAULT_TIMEOUT,
    Retry,
    normalize,
)


@dataclass
class StatusChangeThresholdSettings:
    """Consecutive failures or successes needed to change a probe's status."""

    failure: int = 0
    success: int = 0


@dataclass
class NotifySettings:
    """Global notification settings; durations in seconds."""

    time_format: str = ""
    timeout: float = 0.0
    retry: Retry = field(default_factory=Retry)

    def normalize_timeout(self, timeout: float) -> float:
        """Resolve a local timeout against the global one and the default."""
        return normalize(self.timeout, timeout, 0, DEFAULT_TIMEOUT)

    def normalize_retry(self, retry: Retry) -> Retry:
        """Resolve a local retry setting against the global one and the defaults."""
        return replace(
            retry,
            interval=normalize(self.retry.interval, retry.interval, 0, DEFAULT_RETRY_INTERVAL),
            times=normalize(self.retry.times, retry.times, 0, DEFAULT_RETRY_TIMES),
        )


@dataclass
class ProbeSettings:
    """Global probe settings; durations in seconds."""

    interval: float = 0.0
    timeout: float = 0.0
    threshold: StatusChangeThresholdSettings = field(
        default_factory=StatusChangeThresholdSettings
    )

    def normalize_timeout(self, timeout: float) -> float:
        """Resolve a local timeout against the global one and the default."""
        return normalize(self.timeout, timeout, 0, DEFAULT_TIMEOUT)

    def normalize_interval(self, interval: float) -> float:
        """Resolve a local probe interval against the global one and the default."""
        return normalize(self.interval, interval, 0, DEFAULT_PROBE_INTERVAL)

    def normalize_threshold(
        self, threshold: StatusChangeThresholdSettings
    ) -> StatusChangeThresholdSettings:
        """Resolve local status-change thresholds against the global ones."""
        return StatusChangeThresholdSettings(
            failure=normalize(
                self.threshold.failure, threshold.failure, 0, DEFAULT_STATUS_CHANGE_THRESHOLD
            ),
            success=normalize(
                self.threshold.success, threshold.success, 0, DEFAULT_STATUS_CHANGE_THRESHOLD
            ),
        )