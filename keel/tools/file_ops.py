#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""File tools for keel: read, list, search, write and edit."""

from __future__ import annotations

import json
import os
import pathlib
import re
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from keel import config
from keel.core.types import EditArgs
from keel.debug_logger import get_logger
from keel.tools import edit_engine
from keel.tools.errors import KeelToolError, ToolNotFoundError, ToolValidationError

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session


# ========== Helper Functions ==========

def _require_path(args: Dict[str, Any]) -> str:
    path = args.get("path")
    if not isinstance(path, str) or not path.strip():
        raise ToolValidationError("path is required")
    return path.strip()


def _rel_to_cwd(path: pathlib.Path, session: "Session") -> str:
    """Forward-slash path relative to the session directory, for results."""
    try:
        rel = path.relative_to(pathlib.Path(session.cwd).resolve())
    except ValueError:
        rel = pathlib.Path(os.path.relpath(path, session.cwd))
    return str(rel).replace("\\", "/") or "."


def _should_skip(path: pathlib.Path) -> bool:
    return any(part in config.EXCLUDE_DIRS for part in path.parts)


def _read_text(path: pathlib.Path) -> str:
    # newline="" keeps CRLF files byte-identical outside the edited lines
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: pathlib.Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def _existing_file(args: Dict[str, Any], session: "Session") -> pathlib.Path:
    path = _require_path(args)
    p = session.resolve_path(path)
    if not p.exists():
        raise ToolNotFoundError(f"File not found: {path}", context={"file_path": path})
    if p.is_dir():
        raise ToolValidationError(f"Path is a directory, not a file: {path}")
    return p


# ========== Tool Handlers ==========

def read_file(args: Dict[str, Any], session: "Session") -> str:
    """Return file contents with 1-based line numbers."""
    p = _existing_file(args, session)
    if p.stat().st_size > config.MAX_FILE_BYTES:
        raise ToolValidationError(f"Too large (> {config.MAX_FILE_BYTES} bytes): {args['path']}")

    lines = edit_engine.split_lines(_read_text(p))
    start = edit_engine.coerce_line_number(args["start_line"], "start_line") if args.get("start_line") is not None else 1
    end = edit_engine.coerce_line_number(args["end_line"], "end_line") if args.get("end_line") is not None else len(lines)
    if start > len(lines):
        raise ToolValidationError(f"start_line {start} is past the end of the file ({len(lines)} lines)")
    end = min(end, len(lines))
    if end < start:
        raise ToolValidationError(f"end_line {end} is before start_line {start}")

    width = len(str(end))
    body = "\n".join(f"{number:>{width}}: {lines[number - 1]}" for number in range(start, end + 1))
    if len(body) > config.READ_RETURN_LIMIT:
        body = body[:config.READ_RETURN_LIMIT] + "\n...[truncated]..."
    return body


def list_directory(args: Dict[str, Any], session: "Session") -> str:
    """List directory entries as JSON; ``recursive`` walks subdirectories."""
    path = args.get("path") or "."
    p = session.resolve_path(path)
    if not p.exists():
        raise ToolNotFoundError(f"Directory not found: {path}", context={"path": path})
    if not p.is_dir():
        raise ToolValidationError(f"Not a directory: {path}")

    recursive = bool(args.get("recursive", False))
    candidates = p.rglob("*") if recursive else p.iterdir()
    entries: List[Dict[str, str]] = []
    truncated = False
    for child in sorted(candidates, key=lambda c: (str(c.parent), not c.is_dir(), c.name.lower())):
        if _should_skip(child.relative_to(p)):
            continue
        if len(entries) >= config.LIST_LIMIT:
            truncated = True
            break
        entries.append({
            "name": child.name,
            "path": _rel_to_cwd(child, session),
            "type": "dir" if child.is_dir() else "file",
        })

    return json.dumps({
        "path": _rel_to_cwd(p, session),
        "count": len(entries),
        "entries": entries,
        "truncated": truncated,
    }, ensure_ascii=False)


def _result_limit(args: Dict[str, Any], default: int) -> int:
    raw = args.get("max_results")
    if raw is None:
        return default
    return min(edit_engine.coerce_line_number(raw, "max_results"), config.SEARCH_MAX_RESULTS)


def _expand_braces(pattern: str) -> List[str]:
    """``*.{ts,tsx}`` -> ``["*.ts", "*.tsx"]``; only the first group is expanded."""
    match = re.search(r"\{([^}]+)\}", pattern)
    if not match:
        return [pattern]
    head, tail = pattern[:match.start()], pattern[match.end():]
    return [f"{head}{choice.strip()}{tail}" for choice in match.group(1).split(",")]


def _glob_patterns(pattern: str) -> List[str]:
    if pattern.startswith("./"):
        pattern = pattern[2:]
    patterns = []
    for expanded in _expand_braces(pattern):
        if "/" not in expanded:
            # A bare name or wildcard matches at any depth
            expanded = f"**/{expanded}"
        elif expanded.endswith("/**"):
            expanded += "/*"
        patterns.append(expanded)
    return patterns


def _is_text_file(path: pathlib.Path) -> bool:
    """No null bytes in the first 8KB."""
    try:
        with open(path, "rb") as f:
            return b"\x00" not in f.read(8192)
    except OSError:
        return False


def _walk_files(root: pathlib.Path):
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in config.EXCLUDE_DIRS)
        for filename in sorted(filenames):
            yield pathlib.Path(dirpath) / filename


def _match_count(count: int, truncated: bool, limit: int) -> str:
    noun = "match" if count == 1 else "matches"
    shown = f" (showing first {limit})" if truncated else ""
    return f"Found {count} {noun}{shown}:"


def find_files(args: Dict[str, Any], session: "Session") -> str:
    """Find files and directories whose path matches a glob pattern."""
    pattern = args.get("pattern")
    if not isinstance(pattern, str) or not pattern.strip():
        raise ToolValidationError("pattern is required")
    pattern = pattern.strip()
    if pathlib.PurePath(pattern).is_absolute() or ".." in pathlib.PurePath(pattern).parts:
        raise ToolValidationError(f"pattern must be relative to the working directory: {pattern}")
    limit = _result_limit(args, config.FIND_FILES_DEFAULT_RESULTS)

    root = pathlib.Path(session.cwd).resolve()
    found = set()
    for glob_pattern in _glob_patterns(pattern):
        for match in root.glob(glob_pattern):
            if not _should_skip(match.relative_to(root)):
                found.add(_rel_to_cwd(match, session))

    if not found:
        return f'No files or directories found matching pattern "{pattern}"'
    paths = sorted(found)
    truncated = len(paths) > limit
    paths = paths[:limit]
    get_logger().log("file_ops", "FIND_FILES", {"pattern": pattern, "found": len(found)}, "DEBUG")
    return _match_count(len(paths), truncated, limit) + "\n\n" + "\n".join(paths)


def search_file_contents(args: Dict[str, Any], session: "Session") -> str:
    """Search text files under the working directory for a literal string."""
    query = args.get("query")
    if not isinstance(query, str) or not query:
        raise ToolValidationError("query is required")
    limit = _result_limit(args, config.SEARCH_DEFAULT_RESULTS)
    case_sensitive = args.get("case_sensitive", False)
    if isinstance(case_sensitive, str):
        case_sensitive = case_sensitive.strip().lower() in {"true", "1", "yes"}
    rex = re.compile(re.escape(query), 0 if case_sensitive else re.IGNORECASE)

    root = pathlib.Path(session.cwd).resolve()
    matches: List[str] = []
    truncated = False
    for path in _walk_files(root):
        try:
            too_large = path.stat().st_size > config.MAX_FILE_BYTES
        except OSError:
            continue
        if too_large or not _is_text_file(path):
            continue
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            for number, line in enumerate(f, 1):
                if not rex.search(line):
                    continue
                if len(matches) >= limit:
                    truncated = True
                    break
                matches.append(f"{_rel_to_cwd(path, session)}:{number}\n  {line.strip()}")
        if truncated:
            break

    if not matches:
        return f'No matches found for "{query}"'
    return _match_count(len(matches), truncated, limit) + "\n\n" + "\n\n".join(matches)


def write_file(args: Dict[str, Any], session: "Session") -> str:
    """Create or overwrite a file, creating parent directories."""
    path = _require_path(args)
    content = args.get("content")
    if content is None:
        raise ToolValidationError("content is required")
    content = str(content)

    p = session.resolve_path(path)
    if p.is_dir():
        raise ToolValidationError(f"Path is a directory, not a file: {path}")
    existed = p.exists()
    p.parent.mkdir(parents=True, exist_ok=True)
    _write_text(p, content)

    line_count = len(edit_engine.split_lines(content)) if content else 0
    verb = "Overwrote" if existed else "Created"
    get_logger().log("file_ops", "FILE_WRITTEN", {"path": str(p), "lines": line_count, "existed": existed}, "DEBUG")
    return f"{verb} {_rel_to_cwd(p, session)} ({line_count} lines)"


def edit_file(args: Dict[str, Any], session: "Session") -> str:
    """Read, transform in memory, write back in one call.

    No lock is taken; a concurrent external write between the read and the
    write is lost.
    """
    edit = EditArgs.from_dict(args)
    edit_engine.validate_edit_args(edit)
    p = _existing_file(args, session)
    original = _read_text(p)

    if edit.mode == "find_replace":
        outcome = edit_engine.apply_find_replace(original, edit)
        if not outcome.changed:
            return edit_engine.NO_CHANGES_MESSAGE
        _write_text(p, outcome.content)
        context = edit_engine.generate_post_edit_context(
            edit_engine.split_lines(outcome.content), outcome.start_line, outcome.end_line
        )
        noun = "occurrence" if outcome.replacements == 1 else "occurrences"
        return f"Successfully replaced {outcome.replacements} {noun}.{context}"

    result = edit_engine.apply_line_edit(edit_engine.split_lines(original), edit)
    _write_text(p, edit_engine.join_lines(result.lines))
    context = edit_engine.generate_post_edit_context(result.lines, result.start_line, result.end_line)
    get_logger().log("file_ops", "FILE_EDITED", {
        "path": str(p),
        "mode": edit.mode,
        "range": [result.start_line, result.end_line],
    }, "DEBUG")
    return f"Successfully {result.description}.{context}"


# ========== Validators ==========

def validate_edit_file(args: Dict[str, Any], session: "Session") -> Optional[str]:
    """Check arguments and line ranges without writing anything."""
    try:
        edit = EditArgs.from_dict(args)
        edit_engine.validate_edit_args(edit)
        p = _existing_file(args, session)
        if edit.mode != "find_replace":
            edit_engine.validate_edit_args(edit, edit_engine.split_lines(_read_text(p)))
        elif edit.old_text not in _read_text(p):
            return f'Text "{edit.old_text}" not found in file'
    except KeelToolError as e:
        return e.message
    return None


def validate_write_file(args: Dict[str, Any], session: "Session") -> Optional[str]:
    try:
        path = _require_path(args)
    except ToolValidationError as e:
        return e.message
    if args.get("content") is None:
        return "content is required"
    if session.resolve_path(path).is_dir():
        return f"Path is a directory, not a file: {path}"
    return None
