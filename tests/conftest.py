from pathlib import Path

import pytest

from keel import config
from keel.core.session import Session
from keel.core.types import Mode
from keel.debug_logger import DebugLogger
from keel.settings_manager import reset_runtime_settings
from keel.tools.builtin import build_default_registry


@pytest.fixture(autouse=True)
def reset_debug_logger(monkeypatch):
    """Reset the singleton logger before and after each test."""
    monkeypatch.setattr(config, "DEBUG_ENABLED", False)
    DebugLogger.reset()
    yield
    DebugLogger.reset()


@pytest.fixture(autouse=True)
def restore_runtime_settings():
    yield
    reset_runtime_settings()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """Point every workspace-relative config path at ``tmp_path``."""
    keel_dir = tmp_path / ".keel"
    monkeypatch.setattr(config, "ROOT", tmp_path)
    monkeypatch.setattr(config, "KEEL_DIR", keel_dir)
    monkeypatch.setattr(config, "LOGS_DIR", keel_dir / "logs")
    monkeypatch.setattr(config, "SETTINGS_FILE", keel_dir / "settings.json")
    monkeypatch.setattr(config, "POLICY_FILE", keel_dir / "policy.yaml")
    return tmp_path


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def session(workspace: Path, registry) -> Session:
    return Session(registry=registry, mode=Mode.NORMAL, cwd=workspace)
