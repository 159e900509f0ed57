import json
import signal
import sys

import pytest

from keel import main as cli


def _run(monkeypatch, capsys, *argv):
    monkeypatch.setattr(sys, "argv", ["keel", *argv])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    captured = capsys.readouterr()
    events = [json.loads(line) for line in captured.out.splitlines() if line.startswith("{")]
    return exc_info.value.code, events, captured


def test_runs_read_only_call_without_prompt(workspace, monkeypatch, capsys):
    (workspace / "a.txt").write_text("alpha", encoding="utf-8")
    response = workspace / "response.txt"
    response.write_text("Reading.\n<read_file><path>a.txt</path></read_file>", encoding="utf-8")

    code, events, _ = _run(monkeypatch, capsys, str(response), "--workspace", str(workspace))

    assert code == 0
    assert events[0] == {"event": "assistant_text", "content": "Reading."}
    assert events[1]["event"] == "tool_result"
    assert events[1]["content"] == "1: alpha"
    assert events[-1]["event"] == "batch"
    assert events[-1]["completed"] is True


def test_declined_prompt_exits_incomplete(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text("<write_file><path>b.txt</path><content>hi</content></write_file>", encoding="utf-8")
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")

    code, events, _ = _run(monkeypatch, capsys, str(response), "--workspace", str(workspace))

    assert code == 3
    assert events[-1]["pending"] == ["xml_call_0"]
    assert not (workspace / "b.txt").exists()


def test_ctrl_c_at_prompt_abandons_batch(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text(
        "<write_file><path>b.txt</path><content>hi</content></write_file>\n"
        "<read_file><path>response.txt</path></read_file>",
        encoding="utf-8",
    )

    def interrupted_input(prompt=""):
        handler = signal.getsignal(signal.SIGINT)
        handler(signal.SIGINT, None)
        return "y"

    monkeypatch.setattr("builtins.input", interrupted_input)

    code, events, _ = _run(monkeypatch, capsys, str(response), "--workspace", str(workspace))

    assert code == 3
    assert events[-1]["cancelled"] is True
    assert events[-1]["pending"] == ["xml_call_0", "xml_call_1"]
    assert not (workspace / "b.txt").exists()


def test_yes_flag_applies_changes(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text("<write_file><path>b.txt</path><content>hi</content></write_file>", encoding="utf-8")

    code, events, _ = _run(monkeypatch, capsys, str(response), "--workspace", str(workspace), "--yes")

    assert code == 0
    assert (workspace / "b.txt").read_text(encoding="utf-8") == "hi"


def test_plan_mode_with_history_prints_next_request(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text(
        "<write_file><path>b.txt</path><content>hi</content></write_file>\n"
        "<teleport><to>mars</to></teleport>",
        encoding="utf-8",
    )
    history = workspace / "history.json"
    history.write_text(json.dumps([
        {"role": "user", "content": "start"},
        {"role": "assistant", "content": ""},
        {"role": "tool", "tool_call_id": "old", "name": "read_file", "content": "stale"},
    ]), encoding="utf-8")

    code, events, _ = _run(
        monkeypatch, capsys, str(response), "--workspace", str(workspace), "--mode", "plan", "--history", str(history)
    )

    assert code == 0
    results = {e["tool_call_id"]: e["content"] for e in events if e["event"] == "tool_result"}
    assert results["xml_call_1"] == "teleport does not exist"
    assert results["xml_call_0"].startswith("Error: write_file is not allowed in plan mode.")

    messages = next(e for e in events if e["event"] == "messages")["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "tool", "tool"]
    assert [c["id"] for c in messages[1]["tool_calls"]] == ["xml_call_0", "xml_call_1"]


def test_malformed_response_exits_with_guidance(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text("<function=read_file><parameter=path>a</parameter></function>", encoding="utf-8")

    code, events, _ = _run(monkeypatch, capsys, str(response), "--workspace", str(workspace))

    assert code == 1
    assert events[0]["event"] == "malformed_tool_call"
    assert "<read_file>" in events[0]["examples"]


def test_list_tools(workspace, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["keel", "--list-tools", "--workspace", str(workspace)])

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 0
    names = [tool["name"] for tool in json.loads(capsys.readouterr().out)]
    assert "edit_file" in names and "switch_mode" in names


def test_invalid_policy_file_is_reported(workspace, monkeypatch, capsys):
    policy = workspace / "policy.yaml"
    policy.write_text("- not a mapping\n", encoding="utf-8")

    code, _, captured = _run(monkeypatch, capsys, "--workspace", str(workspace), "--policy", str(policy))

    assert code == 2
    assert "invalid policy file" in captured.err


def test_set_overrides_setting_for_listing(workspace, monkeypatch, capsys):
    argv = ["keel", "--workspace", str(workspace), "--set", "bash_timeout=45", "--list-settings"]
    monkeypatch.setattr(sys, "argv", argv)

    with pytest.raises(SystemExit) as exc_info:
        cli.main()

    assert exc_info.value.code == 0
    settings = {item["key"]: item for item in json.loads(capsys.readouterr().out)}
    assert settings["bash_timeout"]["value"] == 45
    assert settings["bash_timeout"]["section"] == "Shell"
    assert set(settings) == {"default_mode", "log_retention", "context_lines", "bash_timeout"}


def test_set_default_mode_applies_to_session(workspace, monkeypatch, capsys):
    response = workspace / "response.txt"
    response.write_text("<write_file><path>b.txt</path><content>hi</content></write_file>", encoding="utf-8")

    code, events, _ = _run(
        monkeypatch, capsys, str(response), "--workspace", str(workspace), "--set", "default_mode=auto_accept"
    )

    assert code == 0
    assert events[-1]["mode"] == "auto-accept"
    assert (workspace / "b.txt").read_text(encoding="utf-8") == "hi"


@pytest.mark.parametrize("assignment, message", [("nope=1", "unknown setting 'nope'"), ("bash_timeout=0", "invalid value")])
def test_set_rejects_bad_assignments(workspace, monkeypatch, capsys, assignment, message):
    code, _, captured = _run(monkeypatch, capsys, "--workspace", str(workspace), "--set", assignment)

    assert code == 2
    assert message in captured.err


def test_reset_settings_removes_file(workspace, monkeypatch, capsys):
    settings_file = workspace / ".keel" / "settings.json"
    settings_file.parent.mkdir(parents=True)
    settings_file.write_text('{"runtime_settings": {"bash_timeout": 9}}', encoding="utf-8")

    code, _, _ = _run(monkeypatch, capsys, "--workspace", str(workspace), "--reset-settings")

    assert code == 0
    assert not settings_file.exists()
