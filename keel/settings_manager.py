#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Persistent settings management for keel."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from keel import config
from keel.core.mode_gate import ModeGate
from keel.core.types import Mode
from keel.debug_logger import get_logger
from keel.tools.errors import ToolValidationError

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session


@dataclass
class RuntimeSetting:
    """Runtime setting that can be viewed, updated and persisted."""

    key: str
    description: str
    section: str
    parser: Callable[[Any], Any]
    getter: Callable[[], Any]
    setter: Callable[[Any], None]
    default: Any


def _parse_positive_int(value: Any) -> int:
    """Parse and validate a positive integer setting."""

    parsed = int(str(value).strip())
    if parsed < 1:
        raise ValueError("Value must be at least 1")
    return parsed


def _parse_non_negative_int(value: Any) -> int:
    parsed = int(str(value).strip())
    if parsed < 0:
        raise ValueError("Value must be at least 0")
    return parsed


def _parse_mode(value: Any) -> str:
    return Mode.parse(value).value


RUNTIME_SETTINGS: Dict[str, RuntimeSetting] = {
    "default_mode": RuntimeSetting(
        key="default_mode",
        description="Mode new sessions start in (normal, auto-accept, plan)",
        section="Modes",
        parser=_parse_mode,
        getter=lambda: config.DEFAULT_MODE,
        setter=lambda value: setattr(config, "DEFAULT_MODE", value),
        default=config.DEFAULT_MODE,
    ),
    "log_retention": RuntimeSetting(
        key="log_retention",
        description="Number of .keel/logs files to keep (newest preserved)",
        section="Logging",
        parser=_parse_positive_int,
        getter=lambda: config.LOG_RETENTION_LIMIT,
        setter=lambda value: setattr(config, "LOG_RETENTION_LIMIT", value),
        default=config.LOG_RETENTION_LIMIT_DEFAULT,
    ),
    "context_lines": RuntimeSetting(
        key="context_lines",
        description="Lines shown around an edit in edit_file results",
        section="Editing",
        parser=_parse_non_negative_int,
        getter=lambda: config.CONTEXT_LINES,
        setter=lambda value: setattr(config, "CONTEXT_LINES", value),
        default=config.CONTEXT_LINES,
    ),
    "bash_timeout": RuntimeSetting(
        key="bash_timeout",
        description="Seconds before execute_bash kills a command",
        section="Shell",
        parser=_parse_positive_int,
        getter=lambda: config.BASH_TIMEOUT_SECONDS,
        setter=lambda value: setattr(config, "BASH_TIMEOUT_SECONDS", value),
        default=config.BASH_TIMEOUT_SECONDS,
    ),
}


def get_runtime_setting(key: str) -> Optional[RuntimeSetting]:
    """Return a runtime setting by key if it exists."""

    return RUNTIME_SETTINGS.get(key)


def set_runtime_setting(key: str, raw_value: Any) -> Any:
    """Update a runtime setting value using its parser for validation."""

    setting = get_runtime_setting(key)
    if not setting:
        raise KeyError(key)

    parsed_value = setting.parser(raw_value)
    setting.setter(parsed_value)
    return parsed_value


def get_runtime_settings_snapshot() -> Dict[str, Any]:
    """Return a snapshot of runtime setting values for persistence."""

    return {key: setting.getter() for key, setting in RUNTIME_SETTINGS.items()}


def apply_runtime_settings(saved: Dict[str, Any]) -> None:
    """Apply saved runtime settings from disk."""

    logger = get_logger()
    for key, value in saved.items():
        setting = get_runtime_setting(key)
        if not setting:
            continue
        try:
            setting.setter(setting.parser(value))
        except (TypeError, ValueError) as e:
            # Invalid persisted values must not break startup
            logger.log("settings", "INVALID_SAVED_SETTING", {"key": key, "value": value, "error": str(e)}, "WARNING")


def reset_runtime_settings() -> None:
    """Reset runtime settings to their defaults."""

    for setting in RUNTIME_SETTINGS.values():
        setting.setter(setting.default)


def load_settings() -> Dict[str, Any]:
    """Load persisted settings from disk if they exist."""

    settings_file = config.SETTINGS_FILE
    if not settings_file.exists():
        return {}
    try:
        data = json.loads(settings_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        get_logger().log_error("settings", e, {"path": str(settings_file)})
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(session: Optional["Session"] = None) -> Path:
    """Persist the current settings to disk."""

    settings: Dict[str, Any] = {"runtime_settings": get_runtime_settings_snapshot()}
    if session is not None:
        settings["session_mode"] = session.mode.value

    settings_file = config.SETTINGS_FILE
    settings_file.parent.mkdir(parents=True, exist_ok=True)
    settings_file.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    return settings_file


def apply_saved_settings(session: Optional["Session"] = None) -> Optional[Dict[str, Any]]:
    """Apply persisted settings to config and, optionally, a session's mode."""

    settings = load_settings()
    if not settings:
        return None

    if settings.get("runtime_settings"):
        apply_runtime_settings(settings.get("runtime_settings", {}))

    if session is not None:
        saved_mode = settings.get("session_mode") or config.DEFAULT_MODE
        try:
            ModeGate.transition(session, saved_mode)
        except ToolValidationError:
            get_logger().log("settings", "INVALID_SAVED_MODE", {"mode": saved_mode}, "WARNING")

    return settings


def reset_settings() -> None:
    """Reset settings to defaults and remove persisted configuration."""

    reset_runtime_settings()
    if config.SETTINGS_FILE.exists():
        config.SETTINGS_FILE.unlink()
