from __future__ import annotations

from jsonschema import Draft7Validator

from aideo.agent.function_registry import (
    FUNCTION_DEFINITIONS,
    function_infos,
    function_names,
    get_definition,
    to_legacy_functions,
    to_tools,
)

EXPECTED_NAMES = {"add_todos", "complete_todo", "delete_todo", "query_todos", "get_statistics"}


def test_catalog_has_exactly_five_functions():
    assert function_names() == EXPECTED_NAMES
    assert len(FUNCTION_DEFINITIONS) == 5


def test_parameters_are_valid_json_schemas():
    for definition in FUNCTION_DEFINITIONS:
        Draft7Validator.check_schema(definition.parameters)
        assert definition.parameters["type"] == "object"


def test_add_todos_schema_requires_text_per_item():
    validator = Draft7Validator(get_definition("add_todos").parameters)

    assert not list(validator.iter_errors({"todos": [{"text": "buy milk", "priority": "high"}]}))
    assert list(validator.iter_errors({"todos": [{"priority": "high"}]}))
    assert list(validator.iter_errors({"todos": [{"text": "x", "priority": "urgent"}]}))
    assert list(validator.iter_errors({}))


def test_both_encodings_carry_the_same_catalog():
    legacy = to_legacy_functions()
    tools = to_tools()

    assert [fn["name"] for fn in legacy] == [tool["function"]["name"] for tool in tools]
    assert all(tool["type"] == "function" for tool in tools)
    assert legacy[0] == tools[0]["function"]


def test_wire_copies_do_not_alias_definitions():
    legacy = to_legacy_functions()
    legacy[0]["parameters"]["properties"].clear()

    assert get_definition("add_todos").parameters["properties"]


def test_function_infos_and_unknown_lookup():
    infos = function_infos()
    assert {info["name"] for info in infos} == EXPECTED_NAMES
    assert all(info["description"] for info in infos)
    assert get_definition("drop_table") is None
