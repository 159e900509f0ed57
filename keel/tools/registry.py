#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tool registry and invocation for keel."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from keel.debug_logger import get_logger
from keel.tools.errors import ToolNotFoundError

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session
    from keel.tools.previews import ToolPreview


Handler = Callable[[Dict[str, Any], "Session"], Any]
Validator = Callable[[Dict[str, Any], "Session"], Optional[str]]
Formatter = Callable[[Dict[str, Any], "Session", Optional[str]], "ToolPreview"]


@dataclass
class ToolDefinition:
    """A registered tool.

    ``read_only`` tools run without confirmation outside auto-accept mode and
    are the only tools allowed in plan mode. ``mutating`` marks tools that
    write files or run commands. ``validator`` returns an error message (or
    None) before the user is asked to confirm; ``formatter`` builds preview
    data for the presentation layer. ``aliases`` maps alternate argument
    names models tend to emit onto the canonical ones.
    """
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Handler
    read_only: bool = False
    mutating: bool = True
    validator: Optional[Validator] = None
    formatter: Optional[Formatter] = None
    aliases: Dict[str, str] = field(default_factory=dict)

    def to_declaration(self) -> Dict[str, Any]:
        """Model-facing ``{name, description, parameters}`` shape."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


def _stringify(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, sort_keys=True, default=str)


class ToolRegistry:
    """Explicit name -> ToolDefinition table injected into each Session."""

    def __init__(self, definitions: Optional[List[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: ToolDefinition) -> None:
        if not definition.name or not definition.name.strip():
            raise ValueError("Tool name must be non-blank")
        if definition.name in self._tools:
            raise ValueError(f"Tool already registered: {definition.name}")
        self._tools[definition.name] = definition

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDefinition:
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(f"{name} does not exist", context={"tool": name})
        return definition

    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[Dict[str, Any]]:
        return [definition.to_declaration() for definition in self._tools.values()]

    def normalize_arguments(self, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Unwrap ``{"arguments": {...}}`` nesting and apply argument aliases."""
        args = dict(arguments or {})
        # Some models wrap tool args one level deep
        while len(args) == 1 and isinstance(args.get("arguments"), dict):
            args = dict(args["arguments"])

        definition = self._tools.get(name)
        if definition is not None:
            for alt, canonical in definition.aliases.items():
                if canonical not in args and alt in args:
                    args[canonical] = args.pop(alt)
        return args

    def validate(self, name: str, arguments: Dict[str, Any], session: "Session") -> Optional[str]:
        """Run the tool's validator, if any; return an error message or None."""
        definition = self.get(name)
        if definition.validator is None:
            return None
        return definition.validator(self.normalize_arguments(name, arguments), session)

    def preview(self, name: str, arguments: Dict[str, Any], session: "Session",
                result: Optional[str] = None) -> Optional["ToolPreview"]:
        definition = self._tools.get(name)
        if definition is None or definition.formatter is None:
            return None
        return definition.formatter(self.normalize_arguments(name, arguments), session, result)

    def invoke(self, name: str, arguments: Dict[str, Any], session: "Session") -> str:
        """Run the handler and return its output as a string.

        Handler exceptions propagate; the executor turns them into results.
        """
        definition = self.get(name)
        args = self.normalize_arguments(name, arguments)
        debug_logger = get_logger()

        start_time = time.time()
        try:
            result = _stringify(definition.handler(args, session))
        except Exception as e:
            debug_logger.log_tool_execution(name, args, error=f"{type(e).__name__}: {e}")
            raise
        duration = (time.time() - start_time) * 1000
        debug_logger.log_tool_execution(name, args, result, duration_ms=duration)
        return result
