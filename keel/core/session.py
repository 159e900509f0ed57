#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Per-conversation state threaded through the executor and tool handlers."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from keel import config
from keel.core.types import Mode

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.tools.registry import ToolRegistry


class CancellationSignal:
    """Thread-safe flag a UI thread raises to abandon the in-flight call."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def clear(self) -> None:
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return the flag."""
        return self._event.wait(timeout)


@dataclass
class Session:
    """Explicit session context.

    ``mode`` is written only by ``ModeGate.transition``; everything else reads
    it. Sessions share nothing, so several can run side by side.
    """
    registry: Optional["ToolRegistry"] = None
    mode: Mode = field(default_factory=lambda: Mode.parse(config.DEFAULT_MODE))
    cancellation: CancellationSignal = field(default_factory=CancellationSignal)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    cwd: Path = field(default_factory=lambda: config.ROOT)

    def resolve_path(self, path: str) -> Path:
        """Resolve a tool-supplied path against the session working directory."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = Path(self.cwd) / candidate
        return candidate.resolve(strict=False)
