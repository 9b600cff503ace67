from __future__ import annotations

import json

from aideo.agent.function_registry import function_names
from aideo.agent.messages import CallKind
from aideo.agent.text_fallback import extract, strip_calls

NAMES = function_names()


def test_extracts_invocation_form():
    text = 'Sure. add_todos({"todos": [{"text": "buy milk"}]}) Done.'

    calls = extract(text, NAMES)

    assert len(calls) == 1
    assert calls[0].kind is CallKind.TEXT
    assert calls[0].name == "add_todos"
    assert json.loads(calls[0].arguments) == {"todos": [{"text": "buy milk"}]}
    assert strip_calls(text, calls) == "Sure.  Done."


def test_extracts_backticked_invocation():
    text = 'Calling `get_statistics({})` now'

    calls = extract(text, NAMES)

    assert [call.name for call in calls] == ["get_statistics"]
    assert calls[0].original_text == "`get_statistics({})`"


def test_extracts_tagged_block_with_string_arguments():
    text = (
        "<function_call>"
        '{"name": "complete_todo", "arguments": "{\\"search\\": \\"milk\\"}"}'
        "</function_call>"
    )

    calls = extract(text, NAMES)

    assert len(calls) == 1
    assert calls[0].name == "complete_todo"
    assert json.loads(calls[0].arguments) == {"search": "milk"}


def test_multiple_calls_keep_textual_order():
    text = 'query_todos({}) then <tool_call>{"name": "get_statistics", "arguments": {}}</tool_call>'

    calls = extract(text, NAMES)

    assert [call.name for call in calls] == ["query_todos", "get_statistics"]


def test_ignores_unknown_names_and_mere_mentions():
    assert extract('drop_everything({"now": true})', NAMES) == []
    assert extract("You can use add_todos to create tasks.", NAMES) == []
    assert extract("my.add_todos({})", NAMES) == []


def test_ignores_unparseable_bodies():
    assert extract('add_todos({"todos": [})', NAMES) == []
    assert extract("add_todos([1, 2])", NAMES) == []
    assert extract('<function_call>{"name": "add_todos", "arguments": "not json"}</function_call>', NAMES) == []


def test_empty_input():
    assert extract("", NAMES) == []
    assert extract(None, NAMES) == []
    assert extract("query_todos({})", []) == []
