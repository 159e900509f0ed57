"""Centralized version constant for keel."""

# Note: KEEL_GIT_COMMIT is populated at build time so wheels/sdists carry
# the commit even when git metadata is unavailable at runtime.
KEEL_VERSION = "0.4.0"
KEEL_GIT_COMMIT = "unknown"

__all__ = ["KEEL_VERSION", "KEEL_GIT_COMMIT"]
