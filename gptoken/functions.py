from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol


class Tool(Protocol):
    tool_category: str
    tool_namespace: str

    def generate_documentation(self) -> str: ...


@dataclass(frozen=True)
class Function:
    """A callable tool described by a JSON schema, as declared in a chat request."""

    name: str
    description: str = ""
    parameters: Mapping[str, Any] = field(default_factory=dict)

    tool_category = "functions"
    tool_namespace = "functions"

    @classmethod
    def adapter(
        cls,
        name_of: Callable[[Any], str],
        description_of: Callable[[Any], str],
        parameters_of: Callable[[Any], Mapping[str, Any]],
    ) -> Callable[[Any], Function]:
        """Build a function turning any caller-side object into a Function."""
        return lambda obj: cls(name_of(obj) or "", description_of(obj) or "", parameters_of(obj) or {})

    def generate_documentation(self) -> str:
        return document_function(self)

    def __str__(self):
        return self.generate_documentation()


def generate_documentation(tools: Iterable[Tool]) -> str:
    """Render tool declarations as the prompt text the model sees for them."""
    by_category: dict[str, dict[str, list[Tool]]] = {}
    for tool in tools:
        by_category.setdefault(tool.tool_category, {}).setdefault(tool.tool_namespace, []).append(tool)

    out = ["# Tools\n\n"]
    for category, namespaces in by_category.items():
        out.append(f"## {category}\n\n")
        for namespace, namespace_tools in namespaces.items():
            out.append(f"namespace {namespace} {{\n\n")
            for tool in namespace_tools:
                out.append(tool.generate_documentation())
                out.append("\n\n")
            out.append(f"}} // namespace {namespace}\n\n")
    return "".join(out).rstrip()


def document_function(function: Function) -> str:
    out: list[str] = []
    if function.description:
        _put_description(out, function.description)
    out.append(f"type {function.name} = (_: ")
    _put_parameters(out, function.parameters, "")
    out.append(") => any;")
    return "".join(out)


def _put_description(out: list[str], description: str) -> None:
    for line in description.splitlines():
        out.append(f"// {line}\n")


def _put_parameters(out: list[str], schema: Mapping[str, Any], indent: str) -> None:
    properties = schema.get("properties") or {}
    required = schema.get("required") or []
    out.append("{\n")
    for name, value in properties.items():
        if not indent:
            description = value.get("description", "")
            if isinstance(description, str):
                _put_description(out, description.strip())
        out.append(indent)
        out.append(name)
        # only top-level properties are marked optional
        if not indent and name not in required:
            out.append("?")
        out.append(": ")
        _put_parameter_type(out, value, indent)
        out.append(",\n")
    out.append("}")


def _put_parameter_type(out: list[str], value: Mapping[str, Any], indent: str) -> None:
    type_name = value.get("type")
    if not isinstance(type_name, str):
        out.append("any")
        return
    if "enum" in value:
        out.append(" | ".join(json.dumps(v, ensure_ascii=False) for v in value["enum"]))
        return
    items = value.get("items")
    if isinstance(items, Mapping) and "type" in items:
        _put_parameter_type(out, items, indent)
        out.append("[]")
        return
    if type_name in ("integer", "number"):
        out.append("number")
    elif type_name in ("boolean", "string"):
        out.append(type_name)
    elif type_name == "object":
        _put_parameters(out, value, "  ")
    else:
        out.append("any")
