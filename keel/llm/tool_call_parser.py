#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Extract tool calls from plain-text model output.

Models without native structured calling are prompted to answer with
tag-style invocations::

    <read_file>
    <path>src/app.py</path>
    </read_file>

Some models instead emit a JSON tool call in ``message.content``. Both forms
are recovered here so execution can continue without another model turn.

Tag matching pairs an opening tag with the next closing tag of the same
name and is not nesting-aware: a tool or parameter name repeated inside its
own block breaks extraction of that block.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from keel.core.types import ToolCall
from keel.debug_logger import get_logger
from keel.llm.tool_args import parse_tool_arguments


TOOL_CALL_RE = re.compile(r"<(\w+)>(.*?)</\1>", re.DOTALL)
PARAMETER_RE = re.compile(r"<(\w+)>(.*?)</\1>", re.DOTALL)
NESTED_TAG_RE = re.compile(r"<\w+>")
CODE_BLOCK_RE = re.compile(r"```(?:\w+)?\s*\n?([\s\S]*?)\n?```")
TOOL_CALL_WRAPPER_RE = re.compile(r"</?tool_call>")

# Tags that show up in ordinary model prose and are never tool names
HTML_TAGS = {
    "div", "span", "p", "a", "ul", "ol", "li", "table", "tr", "td", "th",
    "thead", "tbody", "h1", "h2", "h3", "h4", "h5", "h6", "br", "hr",
    "strong", "em", "code", "pre", "blockquote", "img", "section",
    "article", "header", "footer", "nav", "aside",
}

_MALFORMED_PATTERNS = [
    (
        re.compile(r"\[(?:tool_use|Tool):\s*(\w+)\]", re.IGNORECASE),
        "Invalid syntax: [tool_use: name] or [Tool: name] format is not supported",
    ),
    (
        re.compile(r"<function=(\w+)>"),
        "Invalid syntax: <function=name> is not supported",
    ),
    (
        re.compile(r"<parameter=(\w+)>"),
        "Invalid syntax: <parameter=name> is not supported",
    ),
]

_OPEN_TOOL_TAG_RE = re.compile(r"<(\w+_\w+)>\s*<\w+>")

CORRECT_FORMAT_EXAMPLE = """Use one tool per block, with each parameter as its own named tag:

<read_file>
<path>src/app.py</path>
</read_file>

<edit_file>
<path>src/app.py</path>
<mode>replace</mode>
<line_number>3</line_number>
<content>print("hello")</content>
</edit_file>"""


@dataclass
class MalformedToolCall:
    error: str
    examples: str
    tool_name: Optional[str] = None


@dataclass
class ParseResult:
    """Combined outcome of text-based tool-call extraction."""
    success: bool
    tool_calls: List[ToolCall] = field(default_factory=list)
    cleaned_content: str = ""
    error: Optional[str] = None
    examples: Optional[str] = None


def _unwrap_content(text: str) -> str:
    processed = text
    block = CODE_BLOCK_RE.search(text)
    if block and block.group(1):
        processed = block.group(1).strip()
    return TOOL_CALL_WRAPPER_RE.sub("", processed).strip()


def _is_valid_tool_call(full_match: str, tool_name: str, inner: str) -> bool:
    if tool_name.lower() in HTML_TAGS:
        return False
    # Attribute-style syntax such as <function=x> is handled by malformed detection
    if "=" in full_match:
        return False
    return bool(NESTED_TAG_RE.search(inner)) or "_" in tool_name


def _parse_parameter_value(raw: str) -> Any:
    value = raw.strip()
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        return value


def _parse_parameters(inner: str) -> Dict[str, Any]:
    parameters: Dict[str, Any] = {}
    for match in PARAMETER_RE.finditer(inner):
        parameters[match.group(1)] = _parse_parameter_value(match.group(2))
    return parameters


def parse_tool_calls(text: str) -> List[ToolCall]:
    """Parse tag-style tool calls; ids are ``xml_call_<n>`` from 0 per parse."""
    if not text:
        return []

    processed = _unwrap_content(text)
    calls: List[ToolCall] = []
    for match in TOOL_CALL_RE.finditer(processed):
        tool_name, inner = match.group(1), match.group(2)
        if tool_name == "tool_call":
            continue
        if not _is_valid_tool_call(match.group(0), tool_name, inner):
            continue
        calls.append(ToolCall(
            id=f"xml_call_{len(calls)}",
            name=tool_name,
            arguments=_parse_parameters(inner),
        ))

    if calls:
        get_logger().log("parser", "XML_TOOL_CALLS_PARSED", {
            "count": len(calls),
            "tools": [call.name for call in calls],
        }, "DEBUG")
    return calls


def has_tool_calls(text: str) -> bool:
    """Fast pre-check using the same validation as ``parse_tool_calls``."""
    return bool(parse_tool_calls(text))


def _contains_valid_tool_call(text: str) -> bool:
    for match in TOOL_CALL_RE.finditer(text):
        if match.group(1) != "tool_call" and _is_valid_tool_call(match.group(0), match.group(1), match.group(2)):
            return True
    return False


def _collapse_whitespace(text: str) -> str:
    cleaned = re.sub(r"[ \t]+$", "", text, flags=re.MULTILINE)
    cleaned = re.sub(r"([^ \t\n]) {2,}", r"\1 ", cleaned)
    cleaned = re.sub(r"^[ \t]+$", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def remove_tool_calls_from_content(text: str) -> str:
    """Strip tool-call blocks so the remaining prose can still be shown."""
    if not text:
        return ""

    def _drop_block(match: re.Match) -> str:
        body = match.group(1) or ""
        return "" if _contains_valid_tool_call(TOOL_CALL_WRAPPER_RE.sub("", body)) else match.group(0)

    def _drop_call(match: re.Match) -> str:
        if _is_valid_tool_call(match.group(0), match.group(1), match.group(2)):
            return ""
        return match.group(0)

    cleaned = CODE_BLOCK_RE.sub(_drop_block, text)
    cleaned = TOOL_CALL_RE.sub(_drop_call, cleaned)
    cleaned = TOOL_CALL_WRAPPER_RE.sub("", cleaned)
    return _collapse_whitespace(cleaned)


def detect_malformed_tool_call(text: str) -> Optional[MalformedToolCall]:
    """Recognize common broken invocation syntaxes so the model can retry."""
    if not text:
        return None

    for pattern, error in _MALFORMED_PATTERNS:
        match = pattern.search(text)
        if match:
            return MalformedToolCall(error=error, examples=CORRECT_FORMAT_EXAMPLE, tool_name=match.group(1))

    for match in _OPEN_TOOL_TAG_RE.finditer(text):
        name = match.group(1)
        if f"</{name}>" not in text[match.end():]:
            return MalformedToolCall(
                error=f"Unclosed tool tag: <{name}> has no matching </{name}>",
                examples=CORRECT_FORMAT_EXAMPLE,
                tool_name=name,
            )
    return None


# ---------------------------------------------------------------------------
# JSON recovery
# ---------------------------------------------------------------------------

def _extract_json_snippet(text: str) -> Optional[str]:
    """Extract the most likely JSON object/array snippet from a text blob."""
    if not text:
        return None

    fenced = re.findall(r"```(?:json)?\s*(.*?)\s*```", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        # Prefer the first fenced block; models typically emit one.
        return fenced[0].strip()

    start_obj = text.find("{")
    start_arr = text.find("[")
    if start_obj == -1 and start_arr == -1:
        return None
    start = start_obj if start_arr == -1 else (start_arr if start_obj == -1 else min(start_obj, start_arr))

    end = max(text.rfind("}"), text.rfind("]"))
    if end == -1 or end <= start:
        return None
    return text[start:end + 1].strip()


def _call_from_object(obj: Dict[str, Any]) -> Optional[tuple]:
    # Accepted shapes:
    # 1) {"name": "read_file", "arguments": {...}}
    # 2) {"tool_name": "read_file", "parameters": {...}} / {"tool": ..., "args": {...}}
    # 3) {"function": {"name": "read_file", "arguments": "{...}"}}
    name = obj.get("name") or obj.get("tool_name") or obj.get("tool")
    args = obj.get("arguments", obj.get("parameters", obj.get("args")))

    if not name and isinstance(obj.get("function"), dict):
        fn = obj["function"]
        name = fn.get("name")
        args = fn.get("arguments")

    if not isinstance(name, str) or not name.strip():
        return None
    if args is None:
        return None
    if isinstance(args, str):
        args = parse_tool_arguments(args)
    if not isinstance(args, dict):
        return None
    return name.strip(), args


def parse_tool_calls_from_json(text: str, *, allowed_tools: Optional[Iterable[str]] = None) -> List[ToolCall]:
    """Recover JSON tool calls emitted as text; ids are ``json_call_<n>``."""
    snippet = _extract_json_snippet(text or "")
    if not snippet:
        return []

    try:
        parsed = json.loads(snippet)
    except json.JSONDecodeError:
        return []

    if isinstance(parsed, dict) and isinstance(parsed.get("tool_calls"), list):
        candidates = parsed["tool_calls"]
    elif isinstance(parsed, dict):
        candidates = [parsed]
    elif isinstance(parsed, list):
        candidates = parsed
    else:
        return []

    allowed = set(allowed_tools) if allowed_tools is not None else None
    calls: List[ToolCall] = []
    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        recovered = _call_from_object(candidate)
        if not recovered:
            continue
        name, args = recovered
        if allowed is not None and name not in allowed:
            continue
        calls.append(ToolCall(id=f"json_call_{len(calls)}", name=name, arguments=args))

    if calls:
        get_logger().log("parser", "JSON_TOOL_CALLS_RECOVERED", {
            "count": len(calls),
            "tools": [call.name for call in calls],
        }, "DEBUG")
    return calls


def _remove_json_tool_call(text: str) -> str:
    def _drop_block(match: re.Match) -> str:
        return "" if parse_tool_calls_from_json(match.group(0)) else match.group(0)

    cleaned = re.sub(r"```(?:json)?\s*.*?\s*```", _drop_block, text, flags=re.DOTALL | re.IGNORECASE)
    if cleaned == text:
        snippet = _extract_json_snippet(text)
        if snippet:
            cleaned = text.replace(snippet, "", 1)
    return _collapse_whitespace(cleaned)


def extract_tool_calls(text: str, *, allowed_tools: Optional[Iterable[str]] = None) -> ParseResult:
    """Run malformed detection, then tag parsing, then JSON recovery."""
    content = text or ""

    malformed = detect_malformed_tool_call(content)
    if malformed:
        get_logger().log("parser", "MALFORMED_TOOL_CALL", {
            "error": malformed.error,
            "tool": malformed.tool_name,
        }, "WARNING")
        return ParseResult(
            success=False,
            cleaned_content=content,
            error=malformed.error,
            examples=malformed.examples,
        )

    calls = parse_tool_calls(content)
    if calls:
        return ParseResult(success=True, tool_calls=calls, cleaned_content=remove_tool_calls_from_content(content))

    calls = parse_tool_calls_from_json(content, allowed_tools=allowed_tools)
    if calls:
        return ParseResult(success=True, tool_calls=calls, cleaned_content=_remove_json_tool_call(content))

    return ParseResult(success=True, cleaned_content=content.strip())
