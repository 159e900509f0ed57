#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tests for mode gating decisions, policy loading and mode transitions."""

import pytest

from keel.core.mode_gate import ModeGate, ModePolicy, decide
from keel.core.session import Session
from keel.core.types import Mode
from keel.tools.errors import ToolValidationError

READ_ONLY = ["read_file", "list_directory", "find_files", "search_file_contents", "fetch_url"]
MUTATING = ["write_file", "edit_file", "execute_bash"]


@pytest.mark.parametrize("tool", MUTATING)
def test_plan_blocks_mutating_tools(registry, tool):
    decision = decide(tool, Mode.PLAN, registry)

    assert decision.blocked is True
    assert decision.requires_confirmation is False
    assert decision.reason.startswith(f"{tool} is not allowed in plan mode.")
    assert "switch_mode" in decision.reason


@pytest.mark.parametrize("tool", READ_ONLY)
def test_plan_allows_read_only_tools_without_confirmation(registry, tool):
    decision = decide(tool, Mode.PLAN, registry)

    assert decision.blocked is False
    assert decision.requires_confirmation is False


@pytest.mark.parametrize("tool", MUTATING + READ_ONLY)
def test_auto_accept_never_asks(registry, tool):
    decision = decide(tool, Mode.AUTO_ACCEPT, registry)

    assert decision.blocked is False
    assert decision.requires_confirmation is False


@pytest.mark.parametrize("tool", MUTATING)
def test_normal_confirms_mutating_tools(registry, tool):
    assert decide(tool, Mode.NORMAL, registry).requires_confirmation is True


@pytest.mark.parametrize("tool", READ_ONLY)
def test_normal_skips_confirmation_for_read_only_tools(registry, tool):
    assert decide(tool, Mode.NORMAL, registry).requires_confirmation is False


@pytest.mark.parametrize("mode", list(Mode))
def test_switch_mode_always_confirmed_never_blocked(registry, mode):
    decision = decide("switch_mode", mode, registry)

    assert decision.blocked is False
    assert decision.requires_confirmation is True


def test_unknown_tools_are_treated_as_mutating(registry):
    assert decide("mystery_tool", Mode.PLAN, registry).blocked is True
    assert decide("mystery_tool", Mode.NORMAL, registry).requires_confirmation is True
    assert decide("read_file", Mode.PLAN, None).blocked is True


def test_decide_accepts_mode_strings(registry):
    assert decide("write_file", "plan", registry).blocked is True
    assert decide("write_file", "auto_accept", registry).requires_confirmation is False


def test_policy_overrides_classification(registry):
    policy = ModePolicy(
        read_only_tools={"grep_repo"},
        always_confirm={"write_file"},
        plan_blocked={"fetch_url"},
    )

    assert decide("grep_repo", Mode.PLAN, registry, policy).blocked is False
    assert decide("grep_repo", Mode.NORMAL, registry, policy).requires_confirmation is False
    assert decide("write_file", Mode.AUTO_ACCEPT, registry, policy).requires_confirmation is True
    assert decide("fetch_url", Mode.PLAN, registry, policy).blocked is True


@pytest.mark.parametrize("tool", MUTATING)
def test_policy_cannot_mark_mutating_tools_read_only(registry, tool):
    policy = ModePolicy(read_only_tools=set(MUTATING))

    plan = decide(tool, Mode.PLAN, registry, policy)
    assert plan.blocked is True
    assert plan.requires_confirmation is False
    assert decide(tool, Mode.NORMAL, registry, policy).requires_confirmation is True


def test_policy_from_yaml(tmp_path):
    policy_file = tmp_path / "policy.yaml"
    policy_file.write_text(
        "read_only_tools: [grep_repo]\n"
        "always_confirm:\n"
        "  - execute_bash\n"
        "plan_blocked: fetch_url\n",
        encoding="utf-8",
    )

    policy, error = ModePolicy.from_yaml(policy_file)

    assert error is None
    assert policy.read_only_tools == {"grep_repo"}
    assert policy.always_confirm == {"execute_bash"}
    assert policy.plan_blocked == {"fetch_url"}


def test_policy_from_missing_or_empty_yaml(tmp_path):
    policy, error = ModePolicy.from_yaml(tmp_path / "absent.yaml")
    assert error is None
    assert policy == ModePolicy()

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    policy, error = ModePolicy.from_yaml(empty)
    assert error is None
    assert policy == ModePolicy()


@pytest.mark.parametrize(
    "content",
    [
        "read_only_tools: [unclosed\n",
        "- just\n- a list\n",
        "always_confirm: {execute_bash: true}\n",
    ],
)
def test_policy_from_invalid_yaml_returns_error(tmp_path, content):
    policy_file = tmp_path / "policy.yaml"
    policy_file.write_text(content, encoding="utf-8")

    policy, error = ModePolicy.from_yaml(policy_file)

    assert error is not None
    assert policy == ModePolicy()


def test_load_default_reads_workspace_policy(workspace):
    (workspace / ".keel").mkdir()
    (workspace / ".keel" / "policy.yaml").write_text("always_confirm: [execute_bash]\n", encoding="utf-8")

    assert ModePolicy.load_default().always_confirm == {"execute_bash"}


def test_transition_updates_session_and_returns_previous():
    session = Session(mode=Mode.NORMAL)

    previous = ModeGate.transition(session, "plan")

    assert previous == Mode.NORMAL
    assert session.mode == Mode.PLAN


def test_transition_rejects_unknown_mode():
    session = Session(mode=Mode.NORMAL)

    with pytest.raises(ToolValidationError, match="Invalid mode"):
        ModeGate.transition(session, "yolo")
    assert session.mode == Mode.NORMAL


def test_sessions_are_independent():
    first = Session(mode=Mode.NORMAL)
    second = Session(mode=Mode.NORMAL)

    ModeGate.transition(first, Mode.AUTO_ACCEPT)

    assert second.mode == Mode.NORMAL
    assert first.session_id != second.session_id


def test_available_modes():
    assert ModeGate.available_modes() == ["normal", "auto-accept", "plan"]
