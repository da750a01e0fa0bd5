from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, TextIO

from config.settings import get_settings


_INITIALIZED: bool = False

LINE_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "step=%(step)s status=%(status)s duration_ms=%(duration_ms)s "
    "company=%(company)s error=%(error)s run_id=%(run_id)s"
)


class SafeExtraFormatter(logging.Formatter):
    """Key=value line formatter; extras a call site did not pass print as ``-``."""

    DEFAULTS: dict[str, Any] = {
        "step": "-",
        "status": "-",
        "duration_ms": "-",
        "company": "-",
        "error": "-",
        "run_id": "-",
    }

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        for key, value in self.DEFAULTS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return super().format(record)


class RunLogger(logging.LoggerAdapter):
    """Stamps every record with the pipeline run it belongs to."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("run_id", self.extra["run_id"])
        kwargs["extra"] = extra
        return msg, kwargs


def run_logger(name: str, run_id: str) -> RunLogger:
    return RunLogger(logging.getLogger(name), {"run_id": run_id})


def init_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Configure the root logger once; later calls are no-ops.

    Records go to stderr by default, leaving stdout to command output.
    """
    global _INITIALIZED
    if _INITIALIZED:
        return

    log_level_str = (level or get_settings().log_level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(log_level)
        handler.setFormatter(SafeExtraFormatter(fmt=LINE_FORMAT))
        root_logger.addHandler(handler)

    _INITIALIZED = True
