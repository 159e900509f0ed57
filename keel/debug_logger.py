#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Debug event log for keel.

Enabled with ``--debug`` or ``KEEL_DEBUG=1``. Each run gets its own file
under ``.keel/logs/`` holding one line per event::

    2026-01-01 12:00:00 | keel.executor        | DEBUG    | [BATCH_START] {"calls": ["read_file"]}

When disabled every call is a no-op, so callers never need to check.
"""

import json
import logging
import os
from datetime import datetime
from functools import partialmethod
from pathlib import Path
from typing import Any, Dict, Optional

from keel import config

LOG_FORMAT = '%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Longest argument / result text kept in a TOOL_EXECUTION record
ARGUMENT_PREVIEW_CHARS = 200
RESULT_PREVIEW_CHARS = 500


def prune_old_logs(log_dir: Path, keep: int) -> None:
    """Delete all but the ``keep`` most recently modified ``*.log`` files."""
    if keep < 1 or not log_dir.exists():
        return

    by_age = sorted(
        (path for path in log_dir.glob("*.log") if path.is_file()),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    for stale in by_age[keep:]:
        try:
            stale.unlink()
        except OSError:
            # Another process may still hold it open (Windows)
            continue


def _clip(value: Any, limit: int) -> str:
    text = str(value)
    return text if len(text) <= limit else text[:limit] + "..."


class DebugLogger:
    """Process-wide structured logger writing to ``keel.<component>`` loggers."""

    _instance: Optional['DebugLogger'] = None

    def __init__(self, enabled: bool = False, log_dir: Optional[Path] = None):
        self._enabled = enabled
        self._log_file: Optional[Path] = None
        self._handler: Optional[logging.Handler] = None

        if not enabled:
            return

        log_dir = log_dir or config.LOGS_DIR
        log_dir.mkdir(parents=True, exist_ok=True)
        started = datetime.now()
        self._log_file = log_dir / f"keel_debug_{started:%Y%m%d_%H%M%S}_{os.getpid()}.log"

        self._handler = logging.FileHandler(self._log_file, mode='w', encoding='utf-8')
        self._handler.setLevel(logging.DEBUG)
        self._handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root = logging.getLogger('keel')
        root.setLevel(logging.DEBUG)
        root.addHandler(self._handler)
        root.propagate = False

        prune_old_logs(log_dir, config.LOG_RETENTION_LIMIT)
        self.log("system", "DEBUG_SESSION_START", {
            "timestamp": started.isoformat(),
            "log_file": str(self._log_file),
            "cwd": str(config.ROOT),
        })

    @classmethod
    def initialize(cls, enabled: bool = False, log_dir: Optional[Path] = None) -> 'DebugLogger':
        """Create the process-wide logger. Later calls return the first instance unchanged."""
        if cls._instance is None:
            cls._instance = cls(enabled, log_dir)
        return cls._instance

    @classmethod
    def get_instance(cls) -> 'DebugLogger':
        if cls._instance is None:
            cls._instance = cls(enabled=config.DEBUG_ENABLED)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Close and forget the current instance."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def log_file_path(self) -> Optional[Path]:
        return self._log_file

    def log(self, component: str, event: str, data: Optional[Dict[str, Any]] = None, level: str = "INFO"):
        """Write ``[EVENT] {json}`` to the ``keel.<component>`` logger.

        Args:
            component: Subsystem name, e.g. 'parser', 'executor', 'mode_gate'
            event: Upper-case event name
            data: JSON-serializable payload; non-serializable values use ``str``
            level: DEBUG, INFO, WARNING or ERROR
        """
        if not self._enabled:
            return

        message = f"[{event}]"
        if data:
            message += " " + json.dumps(data, default=str, sort_keys=True)
        logging.getLogger(f'keel.{component}').log(
            getattr(logging, level.upper(), logging.INFO), message
        )

    def log_tool_execution(self, tool_name: str, arguments: dict, result: Any = None,
                           error: Optional[str] = None, duration_ms: Optional[float] = None,
                           call_id: Optional[str] = None):
        """Record one handler invocation from the registry."""
        if not self._enabled:
            return

        data: Dict[str, Any] = {
            "tool": tool_name,
            "arguments": {key: _clip(value, ARGUMENT_PREVIEW_CHARS) for key, value in arguments.items()},
        }
        if call_id:
            data["call_id"] = call_id
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 2)

        if error:
            data["error"] = str(error)
            self.log("tools", "TOOL_EXECUTION", data, "ERROR")
        else:
            data["result_preview"] = None if result is None else _clip(result, RESULT_PREVIEW_CHARS)
            self.log("tools", "TOOL_EXECUTION", data, "DEBUG")

    def log_error(self, component: str, error: Exception, context: Optional[Dict[str, Any]] = None):
        data: Dict[str, Any] = {"error_type": type(error).__name__, "error_message": str(error)}
        if context:
            data["context"] = context
        self.log(component, "ERROR", data, "ERROR")

    def _log_plain(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        if self._enabled:
            logging.getLogger('keel.general').log(level, msg, *args, **kwargs)

    # logging.Logger-style helpers for unstructured messages
    debug = partialmethod(_log_plain, logging.DEBUG)
    info = partialmethod(_log_plain, logging.INFO)
    warning = partialmethod(_log_plain, logging.WARNING)
    error = partialmethod(_log_plain, logging.ERROR)

    def close(self):
        """Write the end marker and detach this logger's file handler."""
        if not self._enabled or self._handler is None:
            return

        self.log("system", "DEBUG_SESSION_END", {"timestamp": datetime.now().isoformat()})
        logging.getLogger('keel').removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        self._enabled = False


def get_logger() -> DebugLogger:
    """Return the process-wide logger, creating a disabled-or-env-driven one on first use."""
    return DebugLogger.get_instance()
