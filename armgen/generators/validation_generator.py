"""Validation generator producing declarative constraint schemas.

The generated ``validators`` module holds one constraint schema per
definition and per resource, built from the same ``Constraints`` values the
type generator documents, and delegates enforcement to
``armgen.runtime.SchemaValidator``, which compiles each schema into a
pydantic-core validator on first use.
"""

from typing import Any

from ..core.exceptions import NameCollisionError
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
from ..core.logging import get_logger
from ..core.naming import (
    VALIDATORS_MODULE,
    SymbolTable,
    schema_constant,
    validator_function,
)
from .base import (
    INDENT,
    GeneratedFile,
    docstring,
    module_docstring,
    output_package,
    render_literal,
    string_literal,
)

logger = get_logger(__name__)


class ConstraintSchemaBuilder:
    """Lowers IR nodes into the plain-dict schemas ``SchemaValidator`` reads."""

    def __init__(self, symbols: SymbolTable):
        self.symbols = symbols

    def build(self, node: TypeDefinition, name: str | None = None) -> dict[str, Any]:
        """Build the constraint schema for ``node``.

        Args:
            node: IR node
            name: Symbol of ``node`` when it is a declaration root

        Returns:
            Constraint schema dict
        """
        name = name or self.symbols.name_of(node)

        if isinstance(node, ReferenceType):
            return {"kind": "ref", "ref": self.symbols.reference_name(node.key)}
        if isinstance(node, PrimitiveType):
            return {"kind": "primitive", "type": node.name, **node.constraints.to_dict()}
        if isinstance(node, EnumType):
            return {"kind": "enum", "name": name or "enum", "values": list(node.values)}
        if isinstance(node, ArrayType):
            return {
                "kind": "array",
                "items": self.build(node.element),
                **node.constraints.to_dict(),
            }
        if isinstance(node, ObjectType):
            return self._build_object(node, name)
        if isinstance(node, UnionType):
            schema: dict[str, Any] = {"kind": "union"}
            if name:
                schema["name"] = name
            schema["members"] = [self.build(member) for member in node.members]
            return schema
        raise TypeError(f"Unknown node {node!r}")

    def _build_object(self, node: ObjectType, name: str | None) -> dict[str, Any]:
        schema: dict[str, Any] = {"kind": "object"}
        if name:
            schema["name"] = name
        if node.properties:
            schema["properties"] = {
                prop.name: self.build(prop.type) for prop in node.properties
            }
        required = [prop.name for prop in node.properties if prop.name in node.required]
        if required:
            schema["required"] = required
        if node.additional is not None:
            schema["additional"] = self.build(node.additional)
        if not node.allow_extra:
            schema["allow_extra"] = False
        return schema


class ValidationGenerator:
    """Generate the validators module from schema IR."""

    def generate(
        self, ir: SchemaIR, symbols: SymbolTable | None = None
    ) -> tuple[GeneratedFile, ...]:
        """Generate the validators module for one schema document.

        Args:
            ir: Parsed schema
            symbols: Symbol table shared with the other generators; built
                from ``ir`` when omitted

        Returns:
            A single ``<package>/validators.py`` file

        Raises:
            NameCollisionError: If two resources derive the same validator name
        """
        symbols = symbols or SymbolTable(ir)
        builder = ConstraintSchemaBuilder(symbols)

        definitions = {
            symbols.reference_name(key): builder.build(
                ir.definitions[key], symbols.reference_name(key)
            )
            for key in sorted(ir.definitions)
        }

        lines = [
            module_docstring(f"Validators for {ir.provider} resources.", ir),
            "",
            "from __future__ import annotations",
            "",
            "from collections.abc import Callable",
            "from typing import Any",
            "",
            "from armgen.runtime import SchemaValidator, ValidationResult",
            "",
            f"DEFINITIONS: dict[str, dict[str, Any]] = {render_literal(definitions)}",
        ]

        functions: dict[str, str] = {}
        registry: list[tuple[str, str]] = []
        for resource in ir.resources:
            function = validator_function(resource)
            if function in functions:
                raise NameCollisionError(
                    function,
                    f"resource '{functions[function]}'",
                    f"resource '{resource.resource_type}'",
                )
            functions[function] = resource.resource_type

            constant = schema_constant(resource)
            schema = builder.build(resource.as_object(), symbols.resource_names[resource.name])
            lines.extend(
                ["", f"{constant}: dict[str, Any] = {render_literal(schema)}"]
            )
            registry.append((resource.resource_type, function))

        lines.extend(["", "_validator = SchemaValidator(DEFINITIONS)"])

        for resource in ir.resources:
            function = validator_function(resource)
            lines.extend(
                [
                    "",
                    "",
                    f"def {function}(value: Any) -> ValidationResult:",
                    docstring(
                        f"Validate a ``{resource.resource_type}`` property bag.", INDENT
                    ),
                    f"{INDENT}return _validator.validate({schema_constant(resource)}, value)",
                ]
            )

        lines.extend(["", "", "VALIDATORS: dict[str, Callable[[Any], ValidationResult]] = {"])
        for resource_type, function in registry:
            lines.append(f"{INDENT}{string_literal(resource_type)}: {function},")
        lines.append("}")

        logger.debug(
            "Validators generated",
            provider=ir.provider,
            api_version=ir.api_version,
            definitions=len(definitions),
            resources=len(registry),
        )
        return (
            GeneratedFile(
                path=f"{output_package(ir)}/{VALIDATORS_MODULE}.py",
                content="\n".join(lines) + "\n",
                kind="validators",
            ),
        )
