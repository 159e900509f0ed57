#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Conversation history integrity.

Upstream generation occasionally leaves an assistant message with neither
text nor tool calls. Providers reject such histories, so before each model
call the message list is filtered: the empty assistant message goes, and so
does the run of ``tool`` messages right after it, since those results no
longer have an originating call. History is never mutated in place.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from keel.core.types import Message, ToolCall, ToolResult
from keel.debug_logger import get_logger


def is_empty_assistant_message(message: Message) -> bool:
    if message.get("role") != "assistant":
        return False
    content = message.get("content")
    has_text = isinstance(content, str) and content.strip() != ""
    if content is not None and not isinstance(content, str):
        # Structured content parts count as content
        has_text = bool(content)
    return not has_text and not message.get("tool_calls")


def filter_conversation(messages: Sequence[Message]) -> Dict[str, List[Message]]:
    """Return ``{"messages": filtered}`` when something was dropped, else ``{}``."""
    filtered: List[Message] = []
    removed = 0
    dropping_tools = False

    for message in messages:
        if is_empty_assistant_message(message):
            removed += 1
            dropping_tools = True
            continue
        if dropping_tools and message.get("role") == "tool":
            removed += 1
            continue
        dropping_tools = False
        filtered.append(message)

    if not removed:
        return {}

    get_logger().log("conversation", "FILTERED_EMPTY_ASSISTANT", {
        "removed": removed,
        "remaining": len(filtered),
    }, "DEBUG")
    return {"messages": filtered}


def tool_result_output(value: Any) -> str:
    """Deterministic display string for a tool result value."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class ToolExecutionRecord:
    tool_call_id: str
    tool_name: str
    arguments: Dict[str, Any]
    output: str


def describe_tool_step(tool_calls: Sequence[ToolCall], tool_results: Sequence[Any]) -> List[ToolExecutionRecord]:
    """Pair calls with results positionally for display or telemetry.

    Returns nothing unless both sequences have the same length. Results may
    be ToolResult objects, tool messages, or raw handler values.
    """
    if len(tool_calls) != len(tool_results):
        return []

    records = []
    for call, result in zip(tool_calls, tool_results):
        if isinstance(result, ToolResult):
            value: Any = result.content
        elif isinstance(result, dict) and result.get("role") == "tool":
            value = result.get("content")
        else:
            value = result
        records.append(ToolExecutionRecord(
            tool_call_id=call.id,
            tool_name=call.name,
            arguments=dict(call.arguments),
            output=tool_result_output(value),
        ))
    return records


class MessageBuilder:
    """Copy-on-write builder for the next request's message list."""

    def __init__(self, initial: Sequence[Message] = ()):
        self._messages: List[Message] = [dict(message) for message in initial]

    def add_message(self, message: Message) -> "MessageBuilder":
        self._messages.append(dict(message))
        return self

    def add_assistant_message(self, content: str, tool_calls: Sequence[ToolCall] = ()) -> "MessageBuilder":
        message: Message = {"role": "assistant", "content": content or ""}
        if tool_calls:
            message["tool_calls"] = [call.to_dict() for call in tool_calls]
        if is_empty_assistant_message(message):
            return self
        self._messages.append(message)
        return self

    def add_tool_results(self, results: Sequence[ToolResult]) -> "MessageBuilder":
        self._messages.extend(result.to_message() for result in results)
        return self

    def build(self) -> List[Message]:
        return [dict(message) for message in self._messages]

    def __len__(self) -> int:
        return len(self._messages)
