#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Preview data for confirmation prompts and result display.

Formatters return plain data; colors, boxes and diff rendering belong to the
presentation layer. A preview built before execution (``result=None``)
shows what the call is about to do; afterwards it carries the result text.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from keel import config
from keel.core.types import EditArgs
from keel.tools import edit_engine
from keel.tools.errors import KeelToolError

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session


@dataclass
class PreviewLine:
    """One row of a preview body; ``kind`` is context, added or removed."""
    kind: str
    text: str
    line_number: Optional[int] = None


@dataclass
class ToolPreview:
    title: str
    fields: Dict[str, str] = field(default_factory=dict)
    lines: List[PreviewLine] = field(default_factory=list)
    note: Optional[str] = None
    result: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_text(self) -> str:
        """Plain-text rendering for terminals without a richer UI."""
        out = [self.title]
        out.extend(f"  {key}: {value}" for key, value in self.fields.items())
        markers = {"added": "+", "removed": "-", "context": " "}
        for line in self.lines:
            number = "" if line.line_number is None else f"{line.line_number:>5} "
            out.append(f"{markers.get(line.kind, ' ')} {number}{line.text}")
        if self.note:
            out.append(f"  note: {self.note}")
        return "\n".join(out)


def _read_lines(path: str, session: "Session") -> Optional[List[str]]:
    p = session.resolve_path(path)
    if not p.is_file():
        return None
    with open(p, "r", encoding="utf-8", errors="replace", newline="") as f:
        return edit_engine.split_lines(f.read())


def _context(lines: List[str], start: int, end: int) -> List[PreviewLine]:
    return [PreviewLine("context", lines[n - 1], n) for n in range(start, end + 1) if 1 <= n <= len(lines)]


def _line_edit_rows(edit: EditArgs, lines: List[str]) -> List[PreviewLine]:
    line_number, end_line, target_line = edit_engine.validate_edit_args(edit, lines)
    ctx = config.CONTEXT_LINES
    rows = _context(lines, line_number - ctx, line_number - 1)

    if edit.mode == "insert":
        rows += [PreviewLine("added", text) for text in edit_engine.split_lines(edit.content)]
        rows += _context(lines, line_number, line_number + ctx - 1)
        return rows

    rows += [PreviewLine("removed", lines[n - 1], n) for n in range(line_number, end_line + 1)]
    if edit.mode == "replace":
        rows += [PreviewLine("added", text) for text in edit_engine.split_lines(edit.content)]
    elif edit.mode == "move":
        rows += _context(lines, end_line + 1, end_line + ctx)
        rows.append(PreviewLine("context", f"... moved before line {target_line} ..."))
        rows += [PreviewLine("added", lines[n - 1]) for n in range(line_number, end_line + 1)]
        return rows
    rows += _context(lines, end_line + 1, end_line + ctx)
    return rows


def _find_replace_rows(edit: EditArgs, lines: List[str]) -> List[PreviewLine]:
    rows: List[PreviewLine] = []
    new_text = edit.new_text or ""
    for number, text in enumerate(lines, 1):
        if edit.old_text not in text:
            continue
        replaced = text.replace(edit.old_text, new_text) if edit.replace_all else text.replace(edit.old_text, new_text, 1)
        rows.append(PreviewLine("removed", text, number))
        rows.append(PreviewLine("added", replaced, number))
        if not edit.replace_all:
            break
    return rows


def format_edit_file(args: Dict[str, Any], session: "Session", result: Optional[str] = None) -> ToolPreview:
    edit = EditArgs.from_dict(args)
    preview = ToolPreview(title="edit_file", fields={"Path": edit.path, "Mode": edit.mode}, result=result)
    if edit.mode in edit_engine.LINE_MODES and edit.line_number is not None:
        end = edit.end_line if edit.end_line is not None else edit.line_number
        preview.fields["Range"] = (
            f"line {edit.line_number}" if str(end) == str(edit.line_number) else f"lines {edit.line_number}-{end}"
        )
        if edit.mode == "move" and edit.target_line is not None:
            preview.fields["Target"] = f"line {edit.target_line}"
    if edit.mode == "find_replace" and edit.replace_all:
        preview.fields["Replace all"] = "yes"

    if result is not None:
        return preview

    lines = _read_lines(edit.path, session)
    if lines is None:
        preview.note = "File not found - operation will fail"
        return preview
    try:
        if edit.mode == "find_replace":
            preview.lines = _find_replace_rows(edit, lines)
            if not preview.lines and edit.old_text and "\n" not in edit.old_text:
                preview.note = "Text not found in file - operation will fail"
            elif not preview.lines:
                preview.note = "Multi-line replacement; see result after execution"
        else:
            preview.lines = _line_edit_rows(edit, lines)
    except KeelToolError as e:
        preview.note = f"{e.message} - operation will fail"
    return preview


def format_write_file(args: Dict[str, Any], session: "Session", result: Optional[str] = None) -> ToolPreview:
    path = str(args.get("path") or "")
    content = "" if args.get("content") is None else str(args.get("content"))
    new_lines = edit_engine.split_lines(content) if content else []
    exists = bool(path) and session.resolve_path(path).is_file()
    preview = ToolPreview(
        title="write_file",
        fields={
            "Path": path,
            "Action": "overwrite" if exists else "create",
            "Lines": str(len(new_lines)),
        },
        result=result,
    )
    if result is None:
        preview.lines = [PreviewLine("added", text, n) for n, text in enumerate(new_lines, 1)]
    return preview


def format_execute_bash(args: Dict[str, Any], session: "Session", result: Optional[str] = None) -> ToolPreview:
    preview = ToolPreview(
        title="execute_bash",
        fields={
            "Command": str(args.get("command") or ""),
            "Directory": os.fspath(session.cwd),
        },
        result=result,
    )
    if args.get("timeout") is not None:
        preview.fields["Timeout"] = f"{args['timeout']}s"
    return preview


def format_switch_mode(args: Dict[str, Any], session: "Session", result: Optional[str] = None) -> ToolPreview:
    preview = ToolPreview(
        title="switch_mode",
        fields={"From": session.mode.value, "To": str(args.get("mode") or "")},
        result=result,
    )
    if args.get("reason"):
        preview.fields["Reason"] = str(args["reason"])
    return preview
