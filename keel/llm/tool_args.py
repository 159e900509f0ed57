#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Normalization of tool-call arguments.

Providers hand arguments over either as a dict or as a JSON-encoded string.
Everything downstream works on dicts, and deduplication compares a canonical
serialization so key order never matters.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from keel.debug_logger import get_logger


def parse_tool_arguments(raw: Any) -> Dict[str, Any]:
    """Return ``raw`` as a dict; unparseable input becomes ``{}``."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            get_logger().log("parser", "INVALID_TOOL_ARGUMENTS", {
                "error": str(e),
                "raw_preview": text[:200],
            }, "DEBUG")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def canonical_arguments(arguments: Any) -> str:
    return json.dumps(arguments, sort_keys=True, separators=(",", ":"), default=str)


def canonical_signature(name: str, arguments: Any) -> str:
    """Deterministic dedup key for a tool name plus its arguments."""
    return f"{name}:{canonical_arguments(arguments)}"
