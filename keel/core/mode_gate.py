#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Mode gating for tool calls.

Three session modes decide whether a call is blocked or needs the user's
confirmation:

- ``normal``: everything except read-only tools asks for confirmation.
- ``auto-accept``: nothing asks, except ``switch_mode`` and any tool the
  policy file lists under ``always_confirm``.
- ``plan``: tools that write files or run commands are blocked; read-only
  tools run without asking.

``switch_mode`` is never blocked and always confirmed, in every mode.
Tools the registry does not know are treated as mutating.

An optional YAML policy file extends the classification of tools that are
not declared mutating::

    read_only_tools: [grep_repo]
    always_confirm: [execute_bash]
    plan_blocked: [fetch_url]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Set, Tuple

import yaml

from keel import config
from keel.core.types import Mode
from keel.debug_logger import get_logger
from keel.tools.errors import ToolValidationError, mode_blocked_error

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session
    from keel.tools.registry import ToolRegistry


SWITCH_MODE_TOOL = "switch_mode"


@dataclass
class GateDecision:
    blocked: bool
    requires_confirmation: bool
    reason: Optional[str] = None


@dataclass
class ModePolicy:
    """Per-workspace overrides for tool classification."""
    read_only_tools: Set[str] = field(default_factory=set)
    always_confirm: Set[str] = field(default_factory=set)
    plan_blocked: Set[str] = field(default_factory=set)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> Tuple["ModePolicy", Optional[Exception]]:
        """Load policy from a YAML file.

        Returns:
            Tuple of (policy, error). A missing file is not an error; a broken
            one returns the default policy together with the exception so the
            caller can decide whether to continue.
        """
        policy = cls()
        logger = get_logger()

        if not yaml_path.exists():
            return policy, None

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)

            if not data:
                return policy, None
            if not isinstance(data, dict):
                raise ValueError(f"Policy file must contain a mapping, got {type(data).__name__}")

            policy.read_only_tools = _name_set(data.get("read_only_tools"), "read_only_tools")
            policy.always_confirm = _name_set(data.get("always_confirm"), "always_confirm")
            policy.plan_blocked = _name_set(data.get("plan_blocked"), "plan_blocked")

            logger.log("mode_gate", "POLICY_LOADED", {
                "path": str(yaml_path),
                "read_only_tools": sorted(policy.read_only_tools),
                "always_confirm": sorted(policy.always_confirm),
                "plan_blocked": sorted(policy.plan_blocked),
            })
            return policy, None

        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.log_error("mode_gate", e, {"path": str(yaml_path)})
            return cls(), e

    @classmethod
    def load_default(cls) -> "ModePolicy":
        policy, error = cls.from_yaml(config.POLICY_FILE)
        if error:
            get_logger().warning("Ignoring invalid mode policy %s: %s", config.POLICY_FILE, error)
        return policy


def _name_set(value: Any, key: str) -> Set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        return {value}
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of tool names")
    return set(value)


def _classify(tool_name: str, registry: Optional["ToolRegistry"], policy: ModePolicy) -> Tuple[bool, bool]:
    """Return (read_only, mutating) for a tool name.

    ``read_only_tools`` in the policy only covers tools the registry does not
    declare mutating; a policy file can never unblock a write or a shell call.
    """
    if registry is not None and registry.has_tool(tool_name):
        definition = registry.get(tool_name)
        if definition.mutating:
            return False, True
        return definition.read_only or tool_name in policy.read_only_tools, False
    if tool_name in policy.read_only_tools:
        return True, False
    return False, True


def decide(tool_name: str, mode: Mode, registry: Optional["ToolRegistry"] = None,
           policy: Optional[ModePolicy] = None) -> GateDecision:
    """Map (tool, mode) to a blocked / requires-confirmation decision."""
    policy = policy or ModePolicy()
    mode = Mode.parse(mode)

    if tool_name == SWITCH_MODE_TOOL:
        return GateDecision(blocked=False, requires_confirmation=True,
                            reason="Mode changes always require confirmation")

    read_only, mutating = _classify(tool_name, registry, policy)

    if mode == Mode.PLAN:
        if mutating or tool_name in policy.plan_blocked:
            return GateDecision(
                blocked=True,
                requires_confirmation=False,
                reason=mode_blocked_error(tool_name, mode.value).message,
            )
        return GateDecision(blocked=False, requires_confirmation=not read_only)

    if mode == Mode.AUTO_ACCEPT:
        return GateDecision(blocked=False, requires_confirmation=tool_name in policy.always_confirm)

    return GateDecision(blocked=False, requires_confirmation=not read_only)


class ModeGate:
    """Gate bound to one registry and policy; sole writer of ``Session.mode``."""

    def __init__(self, registry: Optional["ToolRegistry"] = None, policy: Optional[ModePolicy] = None):
        self.registry = registry
        self.policy = policy or ModePolicy()

    def decide(self, tool_name: str, mode: Mode) -> GateDecision:
        return decide(tool_name, mode, self.registry, self.policy)

    @staticmethod
    def transition(session: "Session", requested_mode: Any) -> Mode:
        """Move ``session`` to ``requested_mode`` and return the previous mode."""
        try:
            new_mode = Mode.parse(requested_mode)
        except ValueError as e:
            raise ToolValidationError(str(e), context={"requested_mode": str(requested_mode)}) from e

        previous = session.mode
        session.mode = new_mode
        get_logger().log("mode_gate", "MODE_TRANSITION", {
            "session": session.session_id,
            "from": previous.value,
            "to": new_mode.value,
        })
        return previous

    @staticmethod
    def available_modes() -> List[str]:
        return [mode.value for mode in Mode]
