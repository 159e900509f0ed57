#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Validation and deduplication of a batch of tool calls.

Rules, in order:

1. Calls with an empty id or a blank name are parser noise and are dropped
   without producing a result.
2. With a registry, unknown tool names become ``"<name> does not exist"``
   error results keyed by the call id. Without one, existence is not checked.
3. Later calls reusing an id are dropped.
4. Later calls with the same name and canonical arguments are dropped, even
   under a different id.

Survivors keep their first-seen order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Set

from keel.core.types import ToolCall, ToolResult
from keel.debug_logger import get_logger
from keel.llm.tool_args import canonical_signature

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.tools.registry import ToolRegistry


@dataclass
class FilterResult:
    valid: List[ToolCall] = field(default_factory=list)
    errors: List[ToolResult] = field(default_factory=list)


def filter_valid_tool_calls(calls: Iterable[ToolCall], registry: Optional["ToolRegistry"] = None) -> FilterResult:
    """Clean a batch before anything executes."""
    logger = get_logger()
    result = FilterResult()
    seen_ids: Set[str] = set()
    seen_signatures: Set[str] = set()

    for call in calls:
        if not call.id or not (call.name or "").strip():
            logger.log("filter", "DROPPED_EMPTY_CALL", {"id": call.id, "name": call.name}, "DEBUG")
            continue

        if registry is not None and not registry.has_tool(call.name):
            logger.log("filter", "UNKNOWN_TOOL", {"id": call.id, "name": call.name}, "DEBUG")
            result.errors.append(ToolResult.error(call, f"{call.name} does not exist"))
            continue

        if call.id in seen_ids:
            logger.log("filter", "DROPPED_DUPLICATE_ID", {"id": call.id, "name": call.name}, "DEBUG")
            continue

        signature = canonical_signature(call.name, call.arguments)
        if signature in seen_signatures:
            logger.log("filter", "DROPPED_DUPLICATE_SIGNATURE", {"id": call.id, "signature": signature[:200]}, "DEBUG")
            continue

        seen_ids.add(call.id)
        seen_signatures.add(signature)
        result.valid.append(call)

    return result
