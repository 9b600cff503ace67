"""Catalog of the functions the model may call, in both request encodings."""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

_TARGET_PROPERTIES = {
    "id": {
        "type": "string",
        "description": "Task ID, or the short ID shown in the task list, when known",
    },
    "search": {
        "type": "string",
        "description": "Keyword to find the task by when the ID is not known",
    },
}


@dataclass(frozen=True, slots=True)
class FunctionDefinition:
    name: str
    description: str
    parameters: dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": copy.deepcopy(self.parameters),
        }


FUNCTION_DEFINITIONS: tuple[FunctionDefinition, ...] = (
    FunctionDefinition(
        name="add_todos",
        description=(
            "Add one or more tasks. Use this when the user asks to create tasks, "
            "add something to the list, or plan out a goal."
        ),
        parameters={
            "type": "object",
            "properties": {
                "todos": {
                    "type": "array",
                    "description": "Tasks to add",
                    "items": {
                        "type": "object",
                        "properties": {
                            "text": {
                                "type": "string",
                                "description": "Task content; concrete and actionable",
                            },
                            "priority": {
                                "type": "string",
                                "enum": ["low", "medium", "high"],
                                "description": "Task priority",
                            },
                        },
                        "required": ["text"],
                    },
                },
            },
            "required": ["todos"],
        },
    ),
    FunctionDefinition(
        name="complete_todo",
        description="Mark a task as completed. Use this when the user says a task is done or finished.",
        parameters={
            "type": "object",
            "properties": dict(_TARGET_PROPERTIES),
        },
    ),
    FunctionDefinition(
        name="delete_todo",
        description="Delete a task. Use this when the user wants to delete, remove or drop a task.",
        parameters={
            "type": "object",
            "properties": {
                **_TARGET_PROPERTIES,
                "delete_all_completed": {
                    "type": "boolean",
                    "description": "Delete every completed task instead of a single one",
                },
            },
        },
    ),
    FunctionDefinition(
        name="query_todos",
        description="List tasks. Use this when the user asks what tasks exist or wants to see the to-do list.",
        parameters={
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["pending", "in_progress", "completed", "cancelled"],
                    "description": "Filter by status",
                },
                "completed": {
                    "type": "boolean",
                    "description": "Filter by completion",
                },
                "search": {
                    "type": "string",
                    "description": "Keyword search",
                },
            },
        },
    ),
    FunctionDefinition(
        name="get_statistics",
        description="Get task statistics. Use this when the user asks how many tasks are done or how progress is going.",
        parameters={
            "type": "object",
            "properties": {},
        },
    ),
)

_BY_NAME: dict[str, FunctionDefinition] = {fd.name: fd for fd in FUNCTION_DEFINITIONS}


def get_definition(name: str) -> FunctionDefinition | None:
    return _BY_NAME.get(name)


def function_names() -> frozenset[str]:
    return frozenset(_BY_NAME)


def to_legacy_functions() -> list[dict[str, Any]]:
    """``functions`` array of the legacy request encoding."""
    return [fd.to_wire() for fd in FUNCTION_DEFINITIONS]


def to_tools() -> list[dict[str, Any]]:
    """``tools`` array of the modern request encoding."""
    return [{"type": "function", "function": fd.to_wire()} for fd in FUNCTION_DEFINITIONS]


def function_infos() -> list[dict[str, str]]:
    return [{"name": fd.name, "description": fd.description} for fd in FUNCTION_DEFINITIONS]
