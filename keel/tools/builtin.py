#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Built-in tool catalog."""

from keel.core.types import EDIT_MODES, Mode
from keel.tools.command_runner import execute_bash, validate_execute_bash
from keel.tools.file_ops import (
    edit_file,
    find_files,
    list_directory,
    read_file,
    search_file_contents,
    validate_edit_file,
    validate_write_file,
    write_file,
)
from keel.tools.mode_tool import switch_mode, validate_switch_mode
from keel.tools.previews import (
    format_edit_file,
    format_execute_bash,
    format_switch_mode,
    format_write_file,
)
from keel.tools.registry import ToolDefinition, ToolRegistry
from keel.tools.web_tools import fetch_url, validate_fetch_url


PATH_ALIASES = {"file_path": "path", "filepath": "path", "file": "path"}


def _builtin_definitions():
    return [
        ToolDefinition(
            name="read_file",
            description="Read a text file. Returns the contents with 1-based line numbers.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Path to the file, relative to the working directory."},
                    "start_line": {"type": "number", "description": "First line to return (1-based). Optional."},
                    "end_line": {"type": "number", "description": "Last line to return (inclusive). Optional."},
                },
                "required": ["path"],
            },
            handler=read_file,
            read_only=True,
            mutating=False,
            aliases=PATH_ALIASES,
        ),
        ToolDefinition(
            name="list_directory",
            description="List files and directories. Set recursive to walk subdirectories.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Directory to list (default: working directory)."},
                    "recursive": {"type": "boolean", "description": "List subdirectories too.", "default": False},
                },
                "required": [],
            },
            handler=list_directory,
            read_only=True,
            mutating=False,
            aliases={"dir": "path", "directory": "path"},
        ),
        ToolDefinition(
            name="find_files",
            description=(
                "Find files and directories by path pattern. Use this instead of find or ls in execute_bash. "
                'Examples: "*.py" (any depth), "src/**/*.ts" (recursive), "docs/*.md" (one directory), '
                '"*.{ts,tsx}" (several extensions). Does not search file contents.'
            ),
            parameters={
                "type": "object",
                "properties": {
                    "pattern": {"type": "string", "description": "Glob pattern relative to the working directory."},
                    "max_results": {"type": "number", "description": "Maximum paths to return (default: 50, max: 100)."},
                },
                "required": ["pattern"],
            },
            handler=find_files,
            read_only=True,
            mutating=False,
            aliases={"maxResults": "max_results", "glob": "pattern"},
        ),
        ToolDefinition(
            name="search_file_contents",
            description=(
                "Search for text inside files. Returns file paths with line numbers and the matching lines. "
                "Case-insensitive unless case_sensitive is true."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Literal text to search for."},
                    "max_results": {"type": "number", "description": "Maximum matches to return (default: 30, max: 100)."},
                    "case_sensitive": {"type": "boolean", "description": "Match case exactly.", "default": False},
                },
                "required": ["query"],
            },
            handler=search_file_contents,
            read_only=True,
            mutating=False,
            aliases={"maxResults": "max_results", "caseSensitive": "case_sensitive", "pattern": "query"},
        ),
        ToolDefinition(
            name="fetch_url",
            description="Fetch the text content of an http(s) URL.",
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Absolute http or https URL."},
                },
                "required": ["url"],
            },
            handler=fetch_url,
            read_only=True,
            mutating=False,
            validator=validate_fetch_url,
        ),
        ToolDefinition(
            name="write_file",
            description="Create a file or overwrite an existing one with the given content.",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Path of the file to write."},
                    "content": {"type": "string", "description": "Complete file content."},
                },
                "required": ["path", "content"],
            },
            handler=write_file,
            validator=validate_write_file,
            formatter=format_write_file,
            aliases=PATH_ALIASES,
        ),
        ToolDefinition(
            name="edit_file",
            description=(
                "Edit specific lines in a file (insert, replace, delete, or move lines by line number), "
                "or find and replace text."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "The path to the file to edit."},
                    "mode": {
                        "type": "string",
                        "enum": list(EDIT_MODES),
                        "description": (
                            "'insert' adds lines before line_number, 'replace' replaces a line range, "
                            "'delete' removes lines, 'move' relocates lines, 'find_replace' replaces text."
                        ),
                    },
                    "line_number": {"type": "number", "description": "Starting line number (1-based)."},
                    "end_line": {"type": "number", "description": "Ending line for range operations. Defaults to line_number."},
                    "content": {"type": "string", "description": "Content for insert/replace. Lines separated by \\n."},
                    "target_line": {"type": "number", "description": "Destination line for move."},
                    "old_text": {"type": "string", "description": "Text to find (find_replace only)."},
                    "new_text": {"type": "string", "description": "Replacement text (find_replace only)."},
                    "replace_all": {
                        "type": "boolean",
                        "description": "Replace every occurrence instead of the first (find_replace only).",
                        "default": False,
                    },
                },
                "required": ["path", "mode"],
            },
            handler=edit_file,
            validator=validate_edit_file,
            formatter=format_edit_file,
            aliases=PATH_ALIASES,
        ),
        ToolDefinition(
            name="execute_bash",
            description="Run a shell command in the working directory and return stdout, stderr and exit code.",
            parameters={
                "type": "object",
                "properties": {
                    "command": {"type": "string", "description": "The command line to run."},
                    "timeout": {"type": "number", "description": "Seconds before the command is killed."},
                },
                "required": ["command"],
            },
            handler=execute_bash,
            validator=validate_execute_bash,
            formatter=format_execute_bash,
            aliases={"cmd": "command"},
        ),
        ToolDefinition(
            name="switch_mode",
            description=(
                "Ask the user to change the session mode. Use 'plan' for read-only analysis, "
                "'normal' to confirm each change, 'auto-accept' to apply changes without prompts."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "mode": {"type": "string", "enum": [mode.value for mode in Mode]},
                    "reason": {"type": "string", "description": "Why the change is needed."},
                },
                "required": ["mode"],
            },
            handler=switch_mode,
            mutating=False,
            validator=validate_switch_mode,
            formatter=format_switch_mode,
        ),
    ]


def build_default_registry() -> ToolRegistry:
    """Registry holding every built-in tool."""
    return ToolRegistry(_builtin_definitions())
