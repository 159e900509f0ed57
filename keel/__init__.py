#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""keel - tool execution core for coding agents."""

from keel.versioning import get_version

__version__ = get_version()

# Core types
from keel.core.types import (
    BatchResult,
    Mode,
    ToolCall,
    ToolResult,
)

# Session and execution
from keel.core.session import CancellationSignal, Session
from keel.core.executor import ToolExecutor, create_cancellation_results
from keel.core.mode_gate import GateDecision, ModeGate, ModePolicy
from keel.core.tool_filters import FilterResult, filter_valid_tool_calls
from keel.core.conversation import MessageBuilder, describe_tool_step, filter_conversation

# Parsing
from keel.llm.tool_call_parser import ParseResult, extract_tool_calls, parse_tool_calls

# Tools
from keel.tools.builtin import build_default_registry
from keel.tools.registry import ToolDefinition, ToolRegistry
from keel.tools.errors import KeelToolError, ToolError, ToolErrorType

__all__ = [
    "__version__",
    "BatchResult",
    "Mode",
    "ToolCall",
    "ToolResult",
    "CancellationSignal",
    "Session",
    "ToolExecutor",
    "create_cancellation_results",
    "GateDecision",
    "ModeGate",
    "ModePolicy",
    "FilterResult",
    "filter_valid_tool_calls",
    "MessageBuilder",
    "describe_tool_step",
    "filter_conversation",
    "ParseResult",
    "extract_tool_calls",
    "parse_tool_calls",
    "build_default_registry",
    "ToolDefinition",
    "ToolRegistry",
    "KeelToolError",
    "ToolError",
    "ToolErrorType",
]
