#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for the tool registry.

Covers registration, argument normalization and invocation.
"""

import unittest

from keel.core.session import Session
from keel.tools.builtin import build_default_registry
from keel.tools.errors import ToolNotFoundError
from keel.tools.registry import ToolDefinition, ToolRegistry


def _echo(args, session):
    return args


class TestToolRegistry(unittest.TestCase):
    """Registry behaviour."""

    def setUp(self):
        self.registry = ToolRegistry([
            ToolDefinition(
                name="echo_args",
                description="Return the arguments",
                parameters={"type": "object", "properties": {}, "required": []},
                handler=_echo,
                read_only=True,
                mutating=False,
                aliases={"file_path": "path"},
            )
        ])
        self.session = Session(registry=self.registry)

    def test_has_tool(self):
        self.assertTrue(self.registry.has_tool("echo_args"))
        self.assertFalse(self.registry.has_tool("teleport"))

    def test_get_unknown_tool_raises(self):
        with self.assertRaises(ToolNotFoundError) as ctx:
            self.registry.get("teleport")
        self.assertEqual(ctx.exception.message, "teleport does not exist")

    def test_duplicate_registration_rejected(self):
        with self.assertRaises(ValueError):
            self.registry.register(ToolDefinition("echo_args", "dup", {}, _echo))

    def test_blank_name_rejected(self):
        with self.assertRaises(ValueError):
            self.registry.register(ToolDefinition("  ", "blank", {}, _echo))

    def test_invoke_stringifies_non_string_output(self):
        result = self.registry.invoke("echo_args", {"b": 1, "a": 2}, self.session)
        self.assertEqual(result, '{"a": 2, "b": 1}')

    def test_alias_is_mapped_to_canonical_name(self):
        normalized = self.registry.normalize_arguments("echo_args", {"file_path": "x.py"})
        self.assertEqual(normalized, {"path": "x.py"})

    def test_canonical_name_wins_over_alias(self):
        normalized = self.registry.normalize_arguments("echo_args", {"file_path": "alt", "path": "main"})
        self.assertEqual(normalized["path"], "main")

    def test_nested_arguments_are_unwrapped(self):
        normalized = self.registry.normalize_arguments("echo_args", {"arguments": {"arguments": {"path": "x"}}})
        self.assertEqual(normalized, {"path": "x"})

    def test_normalize_does_not_mutate_input(self):
        original = {"file_path": "x.py"}
        self.registry.normalize_arguments("echo_args", original)
        self.assertEqual(original, {"file_path": "x.py"})

    def test_validate_without_validator(self):
        self.assertIsNone(self.registry.validate("echo_args", {}, self.session))


def test_builtin_registry_declarations():
    registry = build_default_registry()

    assert registry.names() == [
        "read_file",
        "list_directory",
        "find_files",
        "search_file_contents",
        "fetch_url",
        "write_file",
        "edit_file",
        "execute_bash",
        "switch_mode",
    ]
    declarations = {d["name"]: d for d in registry.definitions()}
    edit = declarations["edit_file"]["parameters"]
    assert edit["required"] == ["path", "mode"]
    assert edit["properties"]["mode"]["enum"] == ["insert", "replace", "delete", "move", "find_replace"]
    assert edit["properties"]["replace_all"]["default"] is False
    switch = declarations["switch_mode"]["parameters"]
    assert switch["required"] == ["mode"]
    assert switch["properties"]["mode"]["enum"] == ["normal", "auto-accept", "plan"]
    for declaration in declarations.values():
        assert set(declaration) == {"name", "description", "parameters"}
        assert declaration["parameters"]["type"] == "object"


def test_builtin_read_only_flags():
    registry = build_default_registry()

    read_only = {name for name in registry.names() if registry.get(name).read_only}
    assert read_only == {"read_file", "list_directory", "find_files", "search_file_contents", "fetch_url"}
    assert registry.get("switch_mode").mutating is False
