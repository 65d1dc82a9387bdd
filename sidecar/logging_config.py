"""Structured logging for the hook sidecars.

Each sidecar writes to stdout so virt-launcher's pod logs pick it up.
``log_format=json`` emits one JSON object per line; ``text`` is meant
for local debugging.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from sidecar.config import settings

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _record_extras(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class SidecarJSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def __init__(self, hook_name: str = ""):
        super().__init__()
        self.hook_name = hook_name

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "kubevirt-hook-sidecar",
            "hook": self.hook_name,
        }
        extras = _record_extras(record)
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class SidecarTextFormatter(logging.Formatter):
    """Human-readable formatter prefixed with the hook name."""

    def __init__(self, hook_name: str = ""):
        super().__init__(
            fmt=f"%(asctime)s %(levelname)-8s [{hook_name or 'sidecar'}] %(name)s: %(message)s",
        )
        self.hook_name = hook_name


def setup_sidecar_logging(hook_name: str) -> None:
    """Configure the root logger from settings."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format.lower() == "json":
        handler.setFormatter(SidecarJSONFormatter(hook_name=hook_name))
    else:
        handler.setFormatter(SidecarTextFormatter(hook_name=hook_name))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # uvicorn installs its own handlers; route its records through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
