"""Duration tracking for hook callbacks.

    with TimedOperation(
        histogram=hook_call_duration,
        labels={"hook": "hostusb", "operation": "OnDefineDomain", "status": "auto"},
        log_event="hook_call",
    ):
        adapter.on_define_domain(vmi, domain_xml)

A ``status`` label of ``"auto"`` is filled in on exit with ``success`` or
``error`` depending on whether the block raised.
"""
from __future__ import annotations

import logging
import time

logger = logging.getLogger(__name__)

AUTO_STATUS = "auto"


class TimedOperation:
    """Time a block, observe it on *histogram* and log the outcome.

    Exceptions from the block propagate; a broken histogram is only
    logged.
    """

    def __init__(
        self,
        *,
        histogram=None,
        labels: dict[str, str] | None = None,
        log_event: str = "timed_operation",
        log_level: int = logging.DEBUG,
    ):
        self.histogram = histogram
        self.labels = labels or {}
        self.log_event = log_event
        self.log_level = log_level
        self.elapsed: float = 0.0
        self.duration_ms: int = 0
        self.success: bool = True
        self._started: float = 0.0

    def __enter__(self) -> "TimedOperation":
        self._started = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed = time.monotonic() - self._started
        self.duration_ms = int(self.elapsed * 1000)
        self.success = exc_type is None
        self._observe()
        self._log(exc_val)
        return False

    def resolved_labels(self) -> dict[str, str]:
        labels = dict(self.labels)
        if labels.get("status") == AUTO_STATUS:
            labels["status"] = "success" if self.success else "error"
        return labels

    def _observe(self) -> None:
        if self.histogram is None:
            return
        try:
            self.histogram.labels(**self.resolved_labels()).observe(self.elapsed)
        except Exception as e:
            logger.warning("Failed to record %s duration: %s", self.log_event, e)

    def _log(self, error: BaseException | None) -> None:
        try:
            extra = {
                "event": self.log_event,
                "duration_ms": self.duration_ms,
                "success": self.success,
                **self.resolved_labels(),
            }
            if error is not None:
                extra["error"] = str(error)
            logger.log(
                self.log_level,
                "%s %s after %d ms",
                self.log_event,
                "completed" if self.success else "failed",
                self.duration_ms,
                extra=extra,
            )
        except Exception:
            pass
