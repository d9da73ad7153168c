"""Resource factory producing L1 construct wrapper modules.

Each resource becomes one module holding a ``ResourceConstruct`` subclass
that validates its property bag through the generated validator at
construction time and emits a deployment template fragment.
"""

from ..core.exceptions import NameCollisionError
from ..core.ir import PropertyDefinition, ResourceDefinition, SchemaIR
from ..core.logging import get_logger
from ..core.naming import (
    TYPES_MODULE,
    VALIDATORS_MODULE,
    SymbolTable,
    construct_symbol,
    resource_module_name,
    safe_identifier,
    to_snake,
    validator_function,
)
from .base import (
    INDENT,
    GeneratedFile,
    TypeExpressionRenderer,
    docstring,
    documentation_lines,
    module_docstring,
    output_package,
    string_literal,
)

logger = get_logger(__name__)

# Attribute names ResourceConstruct already defines
RESERVED_ATTRIBUTES = frozenset(
    {"props", "identity", "to_template", "to_json", "validate_props"}
)


def attribute_name(prop: PropertyDefinition) -> str:
    """Python attribute exposing a schema property."""
    name = safe_identifier(to_snake(prop.name))
    if name in RESERVED_ATTRIBUTES:
        name = f"{name}_"
    return name


def deployment_scope(resource_type: str) -> str:
    """``DeploymentScope`` member a resource type deploys at.

    Resource groups themselves are created in a subscription; everything
    else defaults to a resource group.
    """
    if "/resourceGroups" in resource_type:
        return "SUBSCRIPTION"
    return "RESOURCE_GROUP"


class ResourceFactory:
    """Generate resource wrapper modules from schema IR."""

    def generate(
        self, ir: SchemaIR, symbols: SymbolTable | None = None
    ) -> tuple[GeneratedFile, ...]:
        """Generate one wrapper module per resource plus the package ``__init__``.

        Args:
            ir: Parsed schema
            symbols: Symbol table shared with the other generators; built
                from ``ir`` when omitted

        Returns:
            Wrapper files in resource order, then ``__init__.py``

        Raises:
            NameCollisionError: If two resources map to the same module or two
                properties map to the same attribute
        """
        symbols = symbols or SymbolTable(ir)
        package = output_package(ir)

        modules: dict[str, str] = {}
        files: list[GeneratedFile] = []
        for resource in ir.resources:
            module = resource_module_name(resource)
            if module in modules:
                raise NameCollisionError(
                    module,
                    f"resource '{modules[module]}'",
                    f"resource '{resource.resource_type}'",
                )
            modules[module] = resource.resource_type
            files.append(
                GeneratedFile(
                    path=f"{package}/{module}.py",
                    content=self._render_wrapper(ir, resource, symbols),
                    kind="resource",
                )
            )

        files.append(
            GeneratedFile(
                path=f"{package}/__init__.py",
                content=self._render_package_init(ir),
                kind="package",
            )
        )

        logger.debug(
            "Resource wrappers generated",
            provider=ir.provider,
            api_version=ir.api_version,
            resources=len(ir.resources),
        )
        return tuple(files)

    def generate_resource(
        self, ir: SchemaIR, index: int, symbols: SymbolTable | None = None
    ) -> GeneratedFile:
        """Generate the wrapper module of a single resource.

        Args:
            ir: Parsed schema
            index: Position of the resource in ``ir.resources``
            symbols: Shared symbol table

        Raises:
            IndexError: If ``index`` is out of range
        """
        if not 0 <= index < len(ir.resources):
            raise IndexError(
                f"Resource index {index} out of range "
                f"(document has {len(ir.resources)} resources)"
            )
        resource = ir.resources[index]
        symbols = symbols or SymbolTable(ir)
        return GeneratedFile(
            path=f"{output_package(ir)}/{resource_module_name(resource)}.py",
            content=self._render_wrapper(ir, resource, symbols),
            kind="resource",
        )

    def _render_wrapper(
        self, ir: SchemaIR, resource: ResourceDefinition, symbols: SymbolTable
    ) -> str:
        class_name = construct_symbol(resource)
        props_name = symbols.resource_names[resource.name]
        validator = validator_function(resource)
        renderer = TypeExpressionRenderer(symbols, module=TYPES_MODULE)

        attributes: dict[str, str] = {}
        for prop in resource.properties:
            name = attribute_name(prop)
            if name in attributes:
                raise NameCollisionError(
                    f"{class_name}.{name}",
                    f"property '{attributes[name]}'",
                    f"property '{prop.name}'",
                )
            attributes[name] = prop.name

        property_order = _tuple_literal([prop.name for prop in resource.properties])

        body = [
            f"class {class_name}(ResourceConstruct):",
            docstring(self._class_doc(resource), INDENT),
            "",
            f"{INDENT}RESOURCE_TYPE: ClassVar[str] = {string_literal(resource.resource_type)}",
            f"{INDENT}API_VERSION: ClassVar[str] = {string_literal(ir.api_version)}",
            f"{INDENT}DEPLOYMENT_SCOPE: ClassVar[DeploymentScope] = "
            f"DeploymentScope.{deployment_scope(resource.resource_type)}",
            f"{INDENT}PROPERTY_ORDER: ClassVar[tuple[str, ...]] = {property_order}",
            "",
            f"{INDENT}def __init__(self, props: {TYPES_MODULE}.{props_name}) -> None:",
            f"{INDENT * 2}super().__init__(props)",
            "",
            f"{INDENT}@staticmethod",
            f"{INDENT}def validate_props(props: Any) -> ValidationResult:",
            f"{INDENT * 2}return {validator}(props)",
        ]

        for prop in resource.properties:
            body.append("")
            body.extend(self._render_property(resource, prop, attribute_name(prop), renderer))

        body.append("")
        body.extend(self._render_to_template(resource))

        typing_names = {"TYPE_CHECKING", "Any", "ClassVar"} | (renderer.used & {"Union"})
        header = [
            module_docstring(f"L1 construct for ``{resource.resource_type}``.", ir),
            "",
            "from __future__ import annotations",
            "",
            f"from typing import {', '.join(sorted(typing_names))}",
            "",
            "from armgen.runtime import DeploymentScope, ResourceConstruct, ValidationResult",
            "",
            f"from .{VALIDATORS_MODULE} import {validator}",
            "",
            "if TYPE_CHECKING:",
            f"{INDENT}from . import {TYPES_MODULE}",
        ]
        return "\n".join(header) + "\n\n\n" + "\n".join(body) + "\n"

    @staticmethod
    def _class_doc(resource: ResourceDefinition) -> str:
        summary = f"``{resource.resource_type}`` resource."
        if resource.description:
            return f"{summary}\n\n{resource.description.strip()}"
        return summary

    @staticmethod
    def _render_property(
        resource: ResourceDefinition,
        prop: PropertyDefinition,
        name: str,
        renderer: TypeExpressionRenderer,
    ) -> list[str]:
        annotation = renderer.render(prop.type)
        key = string_literal(prop.name)
        if prop.name in resource.required:
            access = f"self._props[{key}]"
        else:
            annotation = f"{annotation} | None"
            access = f"self._props.get({key})"

        doc = documentation_lines(prop.description, prop.type, prop.deprecated)
        if prop.readonly:
            doc.append("Read-only.")
        lines = [
            f"{INDENT}@property",
            f"{INDENT}def {name}(self) -> {annotation}:",
        ]
        if doc:
            lines.append(docstring("\n".join(doc), INDENT * 2))
        lines.append(f"{INDENT * 2}return {access}")
        return lines

    @staticmethod
    def _render_to_template(resource: ResourceDefinition) -> list[str]:
        lines = [
            f"{INDENT}def to_template(self) -> dict[str, Any]:",
            docstring("Emit the deployment template fragment of this resource.", INDENT * 2),
            f"{INDENT * 2}template: dict[str, Any] = {{",
            f'{INDENT * 3}"type": self.RESOURCE_TYPE,',
            f'{INDENT * 3}"apiVersion": self.API_VERSION,',
            f"{INDENT * 2}}}",
        ]
        for prop in resource.properties:
            key = string_literal(prop.name)
            if prop.name in resource.required:
                lines.append(f"{INDENT * 2}template[{key}] = self._emit({key})")
            else:
                lines.append(f"{INDENT * 2}if self._has({key}):")
                lines.append(f"{INDENT * 3}template[{key}] = self._emit({key})")
        lines.append(f"{INDENT * 2}template.update(self._extra_properties())")
        lines.append(f"{INDENT * 2}return template")
        return lines

    @staticmethod
    def _render_package_init(ir: SchemaIR) -> str:
        lines = [
            module_docstring(f"L1 constructs for {ir.provider} resources.", ir),
        ]
        exports = []
        imports = []
        for resource in ir.resources:
            name = construct_symbol(resource)
            exports.append(name)
            imports.append(f"from .{resource_module_name(resource)} import {name}")

        if imports:
            lines.append("")
            lines.extend(imports)
        lines.append("")
        lines.append("__all__ = [")
        lines.extend(f"{INDENT}{string_literal(name)}," for name in sorted(exports))
        lines.append("]")
        return "\n".join(lines) + "\n"


def _tuple_literal(names: list[str]) -> str:
    if len(names) == 1:
        return f"({string_literal(names[0])},)"
    return "(" + ", ".join(string_literal(name) for name in names) + ")"
