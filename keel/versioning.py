#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Version helpers for keel."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, Optional

from keel import config
from keel._version import KEEL_VERSION, KEEL_GIT_COMMIT


def get_version() -> str:
    """Return the package version using the single source of truth."""

    if KEEL_VERSION:
        return KEEL_VERSION

    try:
        from importlib.metadata import version

        return version("keel-agent")
    except Exception:
        return "unknown"


def get_git_commit(short: bool = True) -> Optional[str]:
    """Return the git commit hash, preferring the build-time value if present."""
    if KEEL_GIT_COMMIT and KEEL_GIT_COMMIT != "unknown":
        return KEEL_GIT_COMMIT[:7] if short else KEEL_GIT_COMMIT

    try:
        repo_root = Path(__file__).resolve().parent.parent
        if short:
            cmd = ["git", "rev-parse", "--short", "HEAD"]
        else:
            cmd = ["git", "rev-parse", "HEAD"]
        commit = subprocess.check_output(cmd, cwd=repo_root, stderr=subprocess.DEVNULL)
        return commit.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def build_version_output(mode: str) -> str:
    """Format detailed version information for display."""

    version = get_version()
    commit = get_git_commit(short=True)
    system_info: Dict[str, str] = config.get_system_info_cached()

    output = ["\nkeel - tool execution core"]
    output.append("=" * 60)
    if commit:
        output.append(f"  Version:          {version} (commit {commit})")
    else:
        output.append(f"  Version:          {version}")
    output.append(f"  Default mode:     {mode}")
    output.append("\nSystem:")
    output.append(f"  OS:               {system_info['os']} {system_info['os_release']}")
    output.append(f"  Python:           {system_info['python_version']}")

    return "\n".join(output)
