import copy

from keel.core.conversation import (
    MessageBuilder,
    describe_tool_step,
    filter_conversation,
    is_empty_assistant_message,
    tool_result_output,
)
from keel.core.types import ToolCall, ToolResult


def _user(text):
    return {"role": "user", "content": text}


def _tool(call_id, content="ok"):
    return {"role": "tool", "tool_call_id": call_id, "name": "read_file", "content": content}


def test_empty_assistant_and_following_tool_messages_are_removed():
    messages = [_user("hi"), {"role": "assistant", "content": ""}, _tool("c1"), _user("again")]

    assert filter_conversation(messages) == {"messages": [_user("hi"), _user("again")]}


def test_only_the_immediate_run_of_tool_messages_is_removed():
    messages = [
        _user("one"),
        {"role": "assistant", "content": "   "},
        _tool("c1"),
        _tool("c2"),
        _user("two"),
        _tool("c3"),
    ]

    filtered = filter_conversation(messages)["messages"]

    assert filtered == [_user("one"), _user("two"), _tool("c3")]


def test_clean_history_signals_no_change():
    messages = [
        _user("hi"),
        {"role": "assistant", "content": "", "tool_calls": [{"id": "c1", "function": {"name": "read_file"}}]},
        _tool("c1"),
        {"role": "assistant", "content": "done"},
    ]

    assert filter_conversation(messages) == {}


def test_filtering_is_idempotent_and_does_not_mutate_input():
    messages = [_user("a"), {"role": "assistant", "content": None}, _tool("c1"), _user("b")]
    snapshot = copy.deepcopy(messages)

    once = filter_conversation(messages)["messages"]

    assert messages == snapshot
    assert filter_conversation(once) == {}


def test_is_empty_assistant_message():
    assert is_empty_assistant_message({"role": "assistant", "content": "\n\t "}) is True
    assert is_empty_assistant_message({"role": "assistant"}) is True
    assert is_empty_assistant_message({"role": "assistant", "content": [{"type": "text", "text": "x"}]}) is False
    assert is_empty_assistant_message({"role": "assistant", "content": "", "tool_calls": [{"id": "c"}]}) is False
    assert is_empty_assistant_message({"role": "user", "content": ""}) is False


def test_tool_result_output_is_deterministic():
    assert tool_result_output({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
    assert tool_result_output([1, "x"]) == '[1, "x"]'
    assert tool_result_output(None) == ""
    assert tool_result_output(42) == "42"
    assert tool_result_output("text") == "text"


def test_describe_tool_step_pairs_positionally():
    calls = [ToolCall("c1", "read_file", {"path": "a"}), ToolCall("c2", "list_directory")]
    results = [
        ToolResult(tool_call_id="c1", name="read_file", content="1: x"),
        {"role": "tool", "tool_call_id": "c2", "content": "[]"},
    ]

    records = describe_tool_step(calls, results)

    assert [(r.tool_call_id, r.tool_name, r.output) for r in records] == [
        ("c1", "read_file", "1: x"),
        ("c2", "list_directory", "[]"),
    ]
    assert records[0].arguments == {"path": "a"}


def test_describe_tool_step_canonicalizes_raw_values():
    records = describe_tool_step([ToolCall("c1", "t")], [{"z": 1, "a": [True]}])

    assert records[0].output == '{"a": [true], "z": 1}'


def test_describe_tool_step_requires_equal_lengths():
    assert describe_tool_step([ToolCall("c1", "t")], []) == []


def test_message_builder_copies_and_skips_empty_assistant():
    history = [_user("hi")]
    call = ToolCall("c1", "read_file", {"path": "a"})

    builder = MessageBuilder(history)
    builder.add_assistant_message("")
    builder.add_assistant_message("Reading", [call])
    builder.add_tool_results([ToolResult(tool_call_id="c1", name="read_file", content="1: x")])
    messages = builder.build()

    assert history == [_user("hi")]
    assert len(builder) == 3
    assert messages[1] == {
        "role": "assistant",
        "content": "Reading",
        "tool_calls": [{"id": "c1", "function": {"name": "read_file", "arguments": {"path": "a"}}}],
    }
    assert messages[2]["tool_call_id"] == "c1"
    assert filter_conversation(messages) == {}
