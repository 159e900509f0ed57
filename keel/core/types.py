#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Core data types shared by the parser, filter, gate and executor."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from keel.llm.tool_args import parse_tool_arguments


# Provider messages travel as plain dicts: {role, content, tool_calls?, tool_call_id?, name?}
Message = Dict[str, Any]


class Mode(Enum):
    """Session-wide gating state."""
    NORMAL = "normal"
    AUTO_ACCEPT = "auto-accept"
    PLAN = "plan"

    @classmethod
    def parse(cls, value: Any) -> "Mode":
        """Accept a Mode or its string value; raise ValueError otherwise."""
        if isinstance(value, Mode):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            if normalized == "autoaccept":
                normalized = "auto-accept"
            for mode in cls:
                if mode.value == normalized:
                    return mode
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid mode: {value!r} (expected one of: {valid})")


@dataclass
class ToolCall:
    """A single requested tool invocation."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        """Build from the provider shape ``{id, function: {name, arguments}}``.

        ``arguments`` may be a JSON string; it is normalized to a dict.
        """
        function = data.get("function") or {}
        name = function.get("name", data.get("name", ""))
        raw_args = function.get("arguments", data.get("arguments"))
        return cls(
            id=str(data.get("id") or ""),
            name=name if isinstance(name, str) else str(name or ""),
            arguments=parse_tool_arguments(raw_args),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "function": {"name": self.name, "arguments": dict(self.arguments)},
        }


@dataclass
class ToolResult:
    """Outcome of one attempted tool call, always carrying string content."""
    tool_call_id: str
    name: str
    content: str
    role: str = "tool"
    is_error: bool = False

    @classmethod
    def from_output(cls, call: ToolCall, output: Any) -> "ToolResult":
        if isinstance(output, str):
            content = output
        else:
            content = json.dumps(output, sort_keys=True, default=str)
        return cls(tool_call_id=call.id, name=call.name, content=content)

    @classmethod
    def error(cls, call: ToolCall, message: str) -> "ToolResult":
        return cls(tool_call_id=call.id, name=call.name, content=message, is_error=True)

    def to_message(self) -> Message:
        return {
            "role": self.role,
            "tool_call_id": self.tool_call_id,
            "name": self.name,
            "content": self.content,
        }


EDIT_MODES = ("insert", "replace", "delete", "move", "find_replace")


@dataclass
class EditArgs:
    """Arguments for one edit_file invocation."""
    path: str
    mode: str
    line_number: Any = None
    end_line: Any = None
    content: Optional[str] = None
    target_line: Any = None
    old_text: Optional[str] = None
    new_text: Optional[str] = None
    replace_all: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditArgs":
        replace_all = data.get("replace_all", False)
        if isinstance(replace_all, str):
            replace_all = replace_all.strip().lower() in {"1", "true", "yes"}
        content = data.get("content")
        old_text = data.get("old_text")
        new_text = data.get("new_text")
        return cls(
            path=str(data.get("path") or ""),
            mode=str(data.get("mode") or ""),
            line_number=data.get("line_number"),
            end_line=data.get("end_line"),
            content=None if content is None else str(content),
            target_line=data.get("target_line"),
            old_text=None if old_text is None else str(old_text),
            new_text=None if new_text is None else str(new_text),
            replace_all=bool(replace_all),
        )


@dataclass
class BatchResult:
    """What the executor hands back for one batch."""
    completed: bool
    results: List[ToolResult] = field(default_factory=list)
    cancelled: bool = False
    pending: List[ToolCall] = field(default_factory=list)

    def to_messages(self) -> List[Message]:
        return [result.to_message() for result in self.results]
