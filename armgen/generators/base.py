"""Shared pieces of the source generators.

Every generator returns ``GeneratedFile`` values and renders Python source
text through the helpers here, so all generated modules share one header
format, one literal style and one type-expression syntax.
"""

from dataclasses import dataclass
import json
from typing import Any

from ..core.ir import (
    ArrayType,
    EnumType,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    SchemaIR,
    TypeDefinition,
    UnionType,
)
from ..core.naming import SymbolTable, package_name

INDENT = "    "

PRIMITIVE_EXPRESSIONS = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
    "any": "Any",
}


@dataclass(frozen=True)
class GeneratedFile:
    """One generated source file.

    ``path`` is relative to the output root and always uses ``/``.
    """

    path: str
    content: str
    kind: str

    @property
    def data(self) -> bytes:
        return self.content.encode("utf-8")


def output_package(ir: SchemaIR) -> str:
    """Package directory all files generated from ``ir`` live in."""
    return package_name(ir.provider, ir.api_version)


def module_docstring(summary: str, ir: SchemaIR) -> str:
    """Docstring that opens every generated module."""
    return docstring(
        f"{summary}\n\nGenerated by armgen from {ir.provider} "
        f"(API version {ir.api_version}). DO NOT EDIT."
    )


def docstring(text: str, indent: str = "") -> str:
    """Render ``text`` as a triple-quoted docstring at ``indent``."""
    text = text.replace("\\", "\\\\").strip()
    # A quote right before the closing delimiter would end the string early
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    text = text.replace('"""', '\\"\\"\\"')
    lines = text.splitlines() or [""]
    if len(lines) == 1:
        return f'{indent}"""{lines[0]}"""'

    body = [f'{indent}"""{lines[0]}']
    body.extend(f"{indent}{line}".rstrip() for line in lines[1:])
    body.append(f'{indent}"""')
    return "\n".join(body)


def comment_lines(lines: list[str], indent: str = "", marker: str = "#:") -> list[str]:
    """Render documentation lines as ``#:`` comments."""
    rendered = []
    for line in lines:
        for part in line.splitlines() or [""]:
            rendered.append(f"{indent}{marker} {part}".rstrip())
    return rendered


def string_literal(value: str) -> str:
    """Double-quoted Python string literal."""
    return json.dumps(value, ensure_ascii=False)


def render_literal(value: Any, level: int = 0) -> str:
    """Render plain data as a deterministic, indented Python literal.

    Dict order is preserved; lists of scalars stay on one line.
    """
    pad = INDENT * (level + 1)
    closing = INDENT * level

    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [
            f"{pad}{render_literal(key, level + 1)}: {render_literal(item, level + 1)},"
            for key, item in value.items()
        ]
        return "{\n" + "\n".join(items) + f"\n{closing}}}"

    if isinstance(value, list | tuple):
        if not value:
            return "[]"
        if all(not isinstance(item, dict | list | tuple) for item in value):
            return "[" + ", ".join(render_literal(item) for item in value) + "]"
        items = [f"{pad}{render_literal(item, level + 1)}," for item in value]
        return "[\n" + "\n".join(items) + f"\n{closing}]"

    if isinstance(value, str):
        return string_literal(value)
    return repr(value)


class TypeExpressionRenderer:
    """Renders IR nodes as Python type expressions.

    Named nodes become symbol references: quoted forward references inside
    the types module, ``<module>.<Symbol>`` attribute references elsewhere.
    """

    def __init__(self, symbols: SymbolTable, module: str | None = None):
        self.symbols = symbols
        self.module = module
        self.used: set[str] = set()

    def symbol(self, name: str) -> str:
        if self.module:
            return f"{self.module}.{name}"
        return f'"{name}"'

    def render(self, node: TypeDefinition) -> str:
        name = self.symbols.name_of(node)
        if name is not None:
            return self.symbol(name)

        if isinstance(node, ReferenceType):
            return self.symbol(self.symbols.reference_name(node.key))
        if isinstance(node, PrimitiveType):
            expression = PRIMITIVE_EXPRESSIONS[node.name]
            if expression == "Any":
                self.used.add("Any")
            return expression
        if isinstance(node, ArrayType):
            return f"list[{self.render(node.element)}]"
        if isinstance(node, ObjectType):
            if node.additional is not None:
                return f"dict[str, {self.render(node.additional)}]"
            self.used.add("Any")
            return "dict[str, Any]"
        if isinstance(node, UnionType):
            self.used.add("Union")
            members = ", ".join(self.render(member) for member in node.members)
            return f"Union[{members}]"
        if isinstance(node, EnumType):
            raise ValueError("Enum nodes are always named")
        raise TypeError(f"Unknown node {node!r}")


def documentation_lines(
    description: str, node: TypeDefinition, deprecated: bool = False
) -> list[str]:
    """Documentation for a property: description, deprecation, constraints."""
    lines = [line for line in description.strip().splitlines() if line.strip()]
    if deprecated:
        lines.append("Deprecated.")
    lines.extend(constraint_lines(node))
    return lines


def constraint_lines(node: TypeDefinition, prefix: str = "") -> list[str]:
    """Constraints of ``node`` and of the nodes rendered inline with it.

    Array elements and dictionary values are part of the same type
    expression, so their constraints are documented with it. Named nodes
    document their own constraints where they are declared.
    """
    lines = []
    if isinstance(node, PrimitiveType | ArrayType):
        lines.extend(f"{prefix}{line}" for line in node.constraints.describe())
    if isinstance(node, ArrayType):
        lines.extend(constraint_lines(node.element, f"{prefix}Each item: "))
    elif isinstance(node, ObjectType) and not node.properties and node.additional is not None:
        lines.extend(constraint_lines(node.additional, f"{prefix}Each value: "))
    return lines
