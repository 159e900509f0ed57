#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Configuration constants and settings for keel."""

import os
import pathlib
import platform
from typing import Any, Dict, Optional

# Configuration
ROOT = pathlib.Path(os.getcwd()).resolve()
KEEL_DIR = ROOT / ".keel"
LOGS_DIR = KEEL_DIR / "logs"
SETTINGS_FILE = KEEL_DIR / "settings.json"
POLICY_FILE = pathlib.Path(os.getenv("KEEL_POLICY_FILE", str(KEEL_DIR / "policy.yaml")))


def set_workspace_root(path: pathlib.Path) -> None:
    """Point the workspace-relative paths at a new root directory."""
    global ROOT, KEEL_DIR, LOGS_DIR, SETTINGS_FILE, POLICY_FILE

    resolved = pathlib.Path(path).resolve()
    if not resolved.is_dir():
        raise ValueError(f"Workspace root must be a directory: {path}")

    ROOT = resolved
    KEEL_DIR = ROOT / ".keel"
    LOGS_DIR = KEEL_DIR / "logs"
    SETTINGS_FILE = KEEL_DIR / "settings.json"
    if not os.getenv("KEEL_POLICY_FILE"):
        POLICY_FILE = KEEL_DIR / "policy.yaml"


# Operating mode the session starts in (normal, auto-accept, plan)
DEFAULT_MODE = os.getenv("KEEL_DEFAULT_MODE", "normal").lower()

# Debug logging
DEBUG_ENABLED = os.getenv("KEEL_DEBUG", "false").lower() in {"1", "true", "yes"}

# Logging configuration
LOG_RETENTION_LIMIT_DEFAULT = int(os.getenv("KEEL_LOG_RETENTION", "7"))
LOG_RETENTION_LIMIT = LOG_RETENTION_LIMIT_DEFAULT

# Edit engine: number of lines shown around an edited range
CONTEXT_LINES = int(os.getenv("KEEL_CONTEXT_LINES", "3"))

# File reads
MAX_FILE_BYTES = int(os.getenv("KEEL_MAX_FILE_BYTES", str(5 * 1024 * 1024)))
READ_RETURN_LIMIT = int(os.getenv("KEEL_READ_RETURN_LIMIT", "80000"))
LIST_LIMIT = int(os.getenv("KEEL_LIST_LIMIT", "500"))

# find_files / search_file_contents result counts (requested values are capped)
FIND_FILES_DEFAULT_RESULTS = 50
SEARCH_DEFAULT_RESULTS = 30
SEARCH_MAX_RESULTS = int(os.getenv("KEEL_SEARCH_MAX_RESULTS", "100"))

# Directories skipped by listing and search
EXCLUDE_DIRS = {
    ".git", ".hg", ".svn", ".keel", "__pycache__", "node_modules",
    ".venv", "venv", ".mypy_cache", ".pytest_cache", "dist", "build",
}

# Shell execution
BASH_TIMEOUT_SECONDS = int(os.getenv("KEEL_BASH_TIMEOUT", "300"))
BASH_OUTPUT_LIMIT = int(os.getenv("KEEL_BASH_OUTPUT_LIMIT", "20000"))
BASH_POLL_INTERVAL = float(os.getenv("KEEL_BASH_POLL_INTERVAL", "0.1"))

# URL fetching
FETCH_TIMEOUT_SECONDS = int(os.getenv("KEEL_FETCH_TIMEOUT", "30"))
FETCH_CONTENT_LIMIT = int(os.getenv("KEEL_FETCH_CONTENT_LIMIT", "50000"))

# System information (cached)
_SYSTEM_INFO: Optional[Dict[str, Any]] = None


def get_system_info_cached() -> Dict[str, Any]:
    """Get cached system information."""
    global _SYSTEM_INFO
    if _SYSTEM_INFO is None:
        _SYSTEM_INFO = {
            "os": platform.system(),
            "os_release": platform.release(),
            "python_version": platform.python_version(),
            "is_windows": platform.system() == "Windows",
            "shell_type": "cmd" if platform.system() == "Windows" else "sh",
        }
    return _SYSTEM_INFO
