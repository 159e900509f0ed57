import pytest

from keel.core.session import CancellationSignal, Session
from keel.core.types import BatchResult, EditArgs, Mode, ToolCall, ToolResult
from keel.versioning import build_version_output, get_version


@pytest.mark.parametrize(
    "value, expected",
    [
        ("normal", Mode.NORMAL),
        ("Auto-Accept", Mode.AUTO_ACCEPT),
        ("auto_accept", Mode.AUTO_ACCEPT),
        ("autoaccept", Mode.AUTO_ACCEPT),
        (" plan ", Mode.PLAN),
        (Mode.PLAN, Mode.PLAN),
    ],
)
def test_mode_parse(value, expected):
    assert Mode.parse(value) == expected


@pytest.mark.parametrize("value", ["turbo", "", None, 3])
def test_mode_parse_rejects_unknown(value):
    with pytest.raises(ValueError, match="expected one of: normal, auto-accept, plan"):
        Mode.parse(value)


def test_edit_args_from_dict_coerces_values():
    edit = EditArgs.from_dict({
        "path": "a.py",
        "mode": "find_replace",
        "old_text": 1,
        "new_text": None,
        "replace_all": "yes",
    })

    assert edit.old_text == "1"
    assert edit.new_text is None
    assert edit.replace_all is True
    assert EditArgs.from_dict({"path": "a", "mode": "delete", "replace_all": "false"}).replace_all is False


def test_batch_result_to_messages():
    call = ToolCall("c1", "read_file")
    batch = BatchResult(completed=True, results=[ToolResult.error(call, "Error: nope")])

    assert batch.to_messages() == [
        {"role": "tool", "tool_call_id": "c1", "name": "read_file", "content": "Error: nope"},
    ]


def test_cancellation_signal():
    signal = CancellationSignal()
    assert signal.cancelled is False
    assert signal.wait(0.01) is False

    signal.cancel()
    assert signal.cancelled is True
    assert signal.wait(0.01) is True

    signal.clear()
    assert signal.cancelled is False


def test_session_resolves_relative_paths(tmp_path):
    session = Session(cwd=tmp_path)

    assert session.resolve_path("sub/a.py") == (tmp_path / "sub" / "a.py").resolve()
    assert session.resolve_path(str(tmp_path / "b.py")) == (tmp_path / "b.py").resolve()


def test_version_output_mentions_mode():
    output = build_version_output("plan")

    assert get_version() in output
    assert "Default mode:     plan" in output
