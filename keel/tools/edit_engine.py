#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Line-addressed file editing.

Pure transformations with no file I/O: line modes work on a list of lines
(1-indexed in every argument and message), ``find_replace`` works on the raw
string. All arguments are validated before anything is transformed, so an
invalid request never produces a partial edit.

Line-count changes per mode: insert ``+k``, delete ``-k``, replace
``k_new - k_old``, move ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from keel import config
from keel.core.types import EDIT_MODES, EditArgs
from keel.tools.errors import ToolNotFoundError, ToolValidationError

LINE_MODES = ("insert", "replace", "delete", "move")
NO_CHANGES_MESSAGE = "No changes made - text already matches"


@dataclass
class LineEditResult:
    lines: List[str]
    description: str
    start_line: int
    end_line: int


@dataclass
class FindReplaceResult:
    content: str
    changed: bool
    replacements: int
    start_line: int = 1
    end_line: int = 1


def split_lines(content: str) -> List[str]:
    return content.split("\n")


def join_lines(lines: List[str]) -> str:
    return "\n".join(lines)


def coerce_line_number(value: Any, field_name: str) -> int:
    """Accept positive integers and integral numeric strings."""
    if isinstance(value, bool):
        raise ToolValidationError(f"Invalid {field_name}: {value}. Must be a positive integer.")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        number = int(value.strip())
    else:
        raise ToolValidationError(f"Invalid {field_name}: {value}. Must be a positive integer.")
    if number < 1:
        raise ToolValidationError(f"Invalid {field_name}: {value}. Must be a positive integer.")
    return number


def _plural(count: int) -> str:
    return "line" if count == 1 else "lines"


def _range_desc(start: int, end: int) -> str:
    return f"line {start}" if start == end else f"lines {start}-{end}"


def validate_edit_args(args: EditArgs, lines: Optional[List[str]] = None) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Check arguments; return normalized (line_number, end_line, target_line).

    Without ``lines`` only the shape is checked; with them the ranges are
    checked against the file too.
    """
    if not args.path:
        raise ToolValidationError("path is required")
    if args.mode not in EDIT_MODES:
        raise ToolValidationError(
            f"Invalid mode: {args.mode!r}. Must be one of: {', '.join(EDIT_MODES)}"
        )

    if args.mode == "find_replace":
        if not args.old_text:
            raise ToolValidationError("old_text is required for find_replace mode")
        return None, None, None

    if args.line_number is None:
        raise ToolValidationError(f'line_number is required for mode "{args.mode}"')
    line_number = coerce_line_number(args.line_number, "line_number")
    # Insert only uses line_number; a stray end_line is ignored
    if args.mode == "insert" or args.end_line is None:
        end_line = line_number
    else:
        end_line = coerce_line_number(args.end_line, "end_line")

    target_line = None
    if args.mode == "move":
        if args.target_line is None:
            raise ToolValidationError("target_line is required for move mode")
        target_line = coerce_line_number(args.target_line, "target_line")

    if args.mode in ("insert", "replace") and args.content is None:
        raise ToolValidationError(f'content is required for mode "{args.mode}"')

    if end_line < line_number:
        raise ToolValidationError(f"End line {end_line} is out of range or before start line")

    if lines is None:
        return line_number, end_line, target_line

    total = len(lines)
    if args.mode == "insert":
        if line_number > total + 1:
            raise ToolValidationError(
                f"Line number {line_number} is out of range for insert (valid range: 1-{total + 1})"
            )
    else:
        if line_number > total:
            raise ToolValidationError(f"Line number {line_number} is out of range (file has {total} lines)")
        if end_line > total:
            raise ToolValidationError(f"End line {end_line} is out of range or before start line")

    if args.mode == "move":
        if target_line > total + 1:
            raise ToolValidationError(f"Target line {target_line} is invalid")
        if line_number < target_line <= end_line:
            raise ToolValidationError(
                f"Target line {target_line} is inside the moved range {_range_desc(line_number, end_line)}"
            )

    return line_number, end_line, target_line


def apply_line_edit(lines: List[str], args: EditArgs) -> LineEditResult:
    """Apply insert/replace/delete/move to ``lines`` and return a new list."""
    if args.mode not in LINE_MODES:
        raise ToolValidationError(f"Mode {args.mode!r} is not a line-based edit")

    line_number, end_line, target_line = validate_edit_args(args, lines)
    new_lines = list(lines)
    start_idx = line_number - 1
    removed = end_line - line_number + 1

    if args.mode == "insert":
        inserted = split_lines(args.content)
        new_lines[start_idx:start_idx] = inserted
        description = f"Inserted {len(inserted)} {_plural(len(inserted))} at line {line_number}"
    elif args.mode == "replace":
        replacement = split_lines(args.content)
        new_lines[start_idx:start_idx + removed] = replacement
        description = (
            f"Replaced {_range_desc(line_number, end_line)} with "
            f"{len(replacement)} {_plural(len(replacement))}"
        )
    elif args.mode == "delete":
        del new_lines[start_idx:start_idx + removed]
        description = f"Deleted {_range_desc(line_number, end_line)}"
    else:
        moved = new_lines[start_idx:start_idx + removed]
        del new_lines[start_idx:start_idx + removed]
        adjusted = target_line - len(moved) if target_line > line_number else target_line
        new_lines[adjusted - 1:adjusted - 1] = moved
        description = f"Moved {_range_desc(line_number, end_line)} to line {target_line}"

    start, end = calculate_actual_edit_range(
        args.mode, line_number, end_line, args.content, target_line, total_lines=len(new_lines)
    )
    return LineEditResult(lines=new_lines, description=description, start_line=start, end_line=end)


def _occurrences(content: str, old_text: str) -> List[int]:
    """Start offsets of non-overlapping matches, as str.replace sees them."""
    positions = []
    index = content.find(old_text)
    while index != -1:
        positions.append(index)
        index = content.find(old_text, index + len(old_text))
    return positions


def apply_find_replace(content: str, args: EditArgs) -> FindReplaceResult:
    """Replace the first occurrence of ``old_text``, or all with ``replace_all``."""
    validate_edit_args(args)
    old_text, new_text = args.old_text, args.new_text or ""

    positions = _occurrences(content, old_text)
    if not positions:
        raise ToolNotFoundError(f'Text "{old_text}" not found in file')

    if args.replace_all:
        new_content = content.replace(old_text, new_text)
    else:
        positions = positions[:1]
        new_content = content.replace(old_text, new_text, 1)

    if new_content == content:
        return FindReplaceResult(content=content, changed=False, replacements=0)

    shift = len(new_text) - len(old_text)
    first_new = positions[0]
    last_new = positions[-1] + shift * (len(positions) - 1)
    start_line = new_content[:first_new].count("\n") + 1
    end_line = new_content[:last_new].count("\n") + 1 + new_text.count("\n")
    return FindReplaceResult(
        content=new_content,
        changed=True,
        replacements=len(positions),
        start_line=start_line,
        end_line=end_line,
    )


def calculate_actual_edit_range(mode: str, line_number: int, end_line: Optional[int] = None,
                                content: Optional[str] = None, target_line: Optional[int] = None,
                                total_lines: Optional[int] = None) -> Tuple[int, int]:
    """Where the edited lines sit in the new content (1-indexed, inclusive)."""
    end_line = line_number if end_line is None else end_line

    if mode in ("insert", "replace"):
        count = len(split_lines(content or ""))
        start, end = line_number, line_number + count - 1
    elif mode == "delete":
        start = end = line_number
    elif mode == "move":
        count = end_line - line_number + 1
        target = target_line if target_line is not None else line_number
        start = target - count if target > line_number else target
        end = start + count - 1
    else:
        start, end = line_number, end_line

    if total_lines is not None:
        upper = max(total_lines, 1)
        start = min(max(start, 1), upper)
        end = min(max(end, start), upper)
    return start, end


def generate_post_edit_context(lines: List[str], start_line: int, end_line: int,
                               context_lines: Optional[int] = None) -> str:
    """Numbered excerpt around the edited range; edited lines carry a ``>`` mark."""
    if not lines:
        return ""
    if context_lines is None:
        context_lines = config.CONTEXT_LINES

    total = len(lines)
    start_line = min(max(start_line, 1), total)
    end_line = min(max(end_line, start_line), total)
    first = max(1, start_line - context_lines)
    last = min(total, end_line + context_lines)
    width = len(str(last))

    rows = []
    for number in range(first, last + 1):
        marker = ">" if start_line <= number <= end_line else " "
        rows.append(f"{marker} {number:>{width}} | {lines[number - 1]}")

    return f"\n\nLines {first}-{last} after edit:\n" + "\n".join(rows)
