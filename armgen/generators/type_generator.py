"""Type generator producing typed property-bag declarations.

This module turns a ``SchemaIR`` into one Python module per provider and API
version containing ``TypedDict`` declarations for objects and resource
property bags, ``Enum`` classes for enumerations and ``TypeAlias``
declarations for unions and everything else. Constraints are documented in
``#:`` comments only; enforcement belongs to the validators module.
"""

import keyword

from ..core.ir import EnumType, ObjectType, PropertyDefinition, SchemaIR, UnionType
from ..core.logging import get_logger
from ..core.naming import TYPES_MODULE, Declaration, SymbolTable, to_constant
from .base import (
    INDENT,
    GeneratedFile,
    TypeExpressionRenderer,
    comment_lines,
    constraint_lines,
    docstring,
    documentation_lines,
    module_docstring,
    output_package,
    render_literal,
    string_literal,
)

logger = get_logger(__name__)


class TypeGenerator:
    """Generate typed declarations from schema IR.

    Output is a pure function of the IR: the same IR always yields the same
    bytes.
    """

    def generate(
        self, ir: SchemaIR, symbols: SymbolTable | None = None
    ) -> tuple[GeneratedFile, ...]:
        """Generate the types module for one schema document.

        Args:
            ir: Parsed schema
            symbols: Symbol table shared with the other generators; built
                from ``ir`` when omitted

        Returns:
            A single ``<package>/resource_types.py`` file

        Raises:
            NameCollisionError: If two sources derive the same symbol
        """
        symbols = symbols or SymbolTable(ir)
        renderer = TypeExpressionRenderer(symbols)
        typing_extensions: set[str] = set()
        uses_enum = False

        blocks: list[str] = []
        for declaration in symbols.declarations:
            node = declaration.node
            if isinstance(node, EnumType) and not _has_equal_values(node.values):
                uses_enum = True
                blocks.append(self._render_enum(declaration.name, node))
            elif isinstance(node, EnumType):
                # Enum would alias members that compare equal, such as 1 and True
                typing_extensions.add("TypeAlias")
                renderer.used.add("Literal")
                values = ", ".join(render_literal(value) for value in node.values)
                blocks.append(f"{declaration.name}: TypeAlias = Literal[{values}]")
            elif isinstance(node, ObjectType) and node.properties:
                typing_extensions.add("TypedDict")
                blocks.append(
                    self._render_typed_dict(declaration, node, renderer, typing_extensions)
                )
            else:
                typing_extensions.add("TypeAlias")
                blocks.append(self._render_alias(declaration, renderer))

        # No postponed annotations: TypedDict reads NotRequired and ReadOnly at class creation
        lines = [module_docstring(self._summary(ir), ir), ""]
        if uses_enum:
            lines.append("from enum import Enum")
        typing_names = sorted(renderer.used & {"Any", "Literal", "Union"})
        if typing_names:
            lines.append(f"from typing import {', '.join(typing_names)}")
        if uses_enum or typing_names:
            lines.append("")
        if typing_extensions:
            lines.append(
                f"from typing_extensions import {', '.join(sorted(typing_extensions))}"
            )

        content = "\n".join(lines).rstrip() + "\n"
        for block in blocks:
            content += "\n\n" + block + "\n"

        logger.debug(
            "Types generated",
            provider=ir.provider,
            api_version=ir.api_version,
            declarations=len(blocks),
        )
        return (
            GeneratedFile(
                path=f"{output_package(ir)}/{TYPES_MODULE}.py",
                content=content,
                kind="types",
            ),
        )

    @staticmethod
    def _summary(ir: SchemaIR) -> str:
        return f"Typed declarations for {ir.provider} resources."

    @staticmethod
    def _render_enum(name: str, node: EnumType) -> str:
        base = "str, Enum" if node.is_string_enum else "Enum"
        lines = [f"class {name}({base}):", docstring(f"Allowed values for {name}.", INDENT), ""]

        members: set[str] = set()
        for value in node.values:
            member = to_constant(value)
            suffix = 2
            while member in members:
                member = f"{to_constant(value)}_{suffix}"
                suffix += 1
            members.add(member)
            lines.append(f"{INDENT}{member} = {render_literal(value)}")

        return "\n".join(lines)

    def _render_typed_dict(
        self,
        declaration: Declaration,
        node: ObjectType,
        renderer: TypeExpressionRenderer,
        typing_extensions: set[str],
    ) -> str:
        fields = [
            (prop, self._field_type(prop, node, renderer, typing_extensions))
            for prop in node.properties
        ]

        if all(_is_field_identifier(prop.name) for prop in node.properties):
            lines = [f"class {declaration.name}(TypedDict):"]
            lines.append(docstring(self._describe(declaration), INDENT))
            for prop, annotation in fields:
                lines.append("")
                lines.extend(
                    comment_lines(
                        documentation_lines(prop.description, prop.type, prop.deprecated),
                        INDENT,
                    )
                )
                lines.append(f"{INDENT}{prop.name}: {annotation}")
            return "\n".join(lines)

        # Keys that are not identifiers need the functional syntax
        lines = comment_lines(self._describe(declaration).splitlines())
        lines.append(f"{declaration.name} = TypedDict(")
        lines.append(f"{INDENT}{string_literal(declaration.name)},")
        lines.append(f"{INDENT}{{")
        for prop, annotation in fields:
            lines.extend(
                comment_lines(
                    documentation_lines(prop.description, prop.type, prop.deprecated),
                    INDENT * 2,
                    marker="#",
                )
            )
            lines.append(f"{INDENT * 2}{string_literal(prop.name)}: {annotation},")
        lines.append(f"{INDENT}}},")
        lines.append(")")
        return "\n".join(lines)

    @staticmethod
    def _field_type(
        prop: PropertyDefinition,
        node: ObjectType,
        renderer: TypeExpressionRenderer,
        typing_extensions: set[str],
    ) -> str:
        annotation = renderer.render(prop.type)
        if prop.readonly:
            typing_extensions.add("ReadOnly")
            annotation = f"ReadOnly[{annotation}]"
        if prop.name not in node.required:
            typing_extensions.add("NotRequired")
            annotation = f"NotRequired[{annotation}]"
        return annotation

    @staticmethod
    def _describe(declaration: Declaration) -> str:
        if declaration.resource is not None:
            summary = f"Property bag for ``{declaration.resource.resource_type}``."
            if declaration.description:
                summary = f"{summary}\n\n{declaration.description.strip()}"
        else:
            summary = f"{declaration.name} object."

        node = declaration.node
        if isinstance(node, ObjectType) and node.additional is not None:
            extra = constraint_lines(node.additional, "Each additional value: ")
            if extra:
                summary += "\n\n" + "\n".join(extra)
        return summary

    @staticmethod
    def _render_alias(declaration: Declaration, renderer: TypeExpressionRenderer) -> str:
        node = declaration.node
        if isinstance(node, UnionType):
            # The declaration itself is the named node; render its members
            members = ", ".join(renderer.render(member) for member in node.members)
            renderer.used.add("Union")
            expression = f"Union[{members}]"
            documentation = [
                line
                for index, member in enumerate(node.members, start=1)
                for line in constraint_lines(member, f"Option {index}: ")
            ]
        else:
            expression = renderer.render(node)
            documentation = constraint_lines(node)
        lines = comment_lines(documentation)
        lines.append(f"{declaration.name}: TypeAlias = {expression}")
        return "\n".join(lines)


def _is_field_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def _has_equal_values(values: tuple) -> bool:
    """Whether two enum values of different JSON types compare equal."""
    return any(
        first == second
        for index, first in enumerate(values)
        for second in values[index + 1 :]
    )
