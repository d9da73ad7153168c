"""Deterministic naming of generated symbols.

Every generator asks the same ``SymbolTable`` for the name of a definition,
a resource property bag or an inline enum/object/union, so one IR node gets
one symbol across the types, validators and resource wrapper modules.
"""

from dataclasses import dataclass
import keyword
import re

from .exceptions import NameCollisionError
from .ir import (
    ArrayType,
    EnumType,
    ObjectType,
    ResourceDefinition,
    SchemaIR,
    TypeDefinition,
    UnionType,
)

TYPES_MODULE = "resource_types"
VALIDATORS_MODULE = "validators"
RESERVED_MODULES = frozenset({TYPES_MODULE, VALIDATORS_MODULE, "__init__"})

# Names imported by generated type modules
RESERVED_SYMBOLS = frozenset(
    {
        "Any",
        "Enum",
        "Literal",
        "NotRequired",
        "ReadOnly",
        "TypeAlias",
        "TypedDict",
        "Union",
    }
)

_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+|[0-9]+")
_SPLIT = re.compile(r"[^A-Za-z0-9]+")


def split_words(text: str) -> list[str]:
    """Split an identifier-ish string into words.

    Handles camelCase, PascalCase, acronyms and any non-alphanumeric separator.
    """
    words: list[str] = []
    for chunk in _SPLIT.split(text):
        words.extend(_WORDS.findall(chunk))
    return words


def to_pascal(text: str) -> str:
    """Convert to PascalCase, keeping the inner casing of each word."""
    name = "".join(word[0].upper() + word[1:] for word in split_words(text))
    if not name:
        return "Unnamed"
    if name[0].isdigit():
        name = f"N{name}"
    return name


def to_snake(text: str) -> str:
    """Convert to snake_case."""
    name = "_".join(word.lower() for word in split_words(text))
    if not name:
        return "unnamed"
    if name[0].isdigit():
        name = f"n_{name}"
    return name


def to_constant(value: object) -> str:
    """Derive an enum member name from a literal value."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int | float):
        # Floats render with '.', 'e', '+' or '-'
        text = re.sub(r"[^A-Za-z0-9]", "_", str(value).replace("-", "minus_"))
        return f"VALUE_{text.upper()}"

    name = "_".join(word.upper() for word in split_words(str(value)))
    if not name:
        return "EMPTY"
    if name[0].isdigit():
        name = f"V_{name}"
    return name


def safe_identifier(name: str) -> str:
    """Append an underscore to Python keywords."""
    if keyword.iskeyword(name) or keyword.issoftkeyword(name):
        return f"{name}_"
    return name


def resource_base_name(resource_type: str) -> str:
    """PascalCase name of a resource type without its provider namespace.

    ``Microsoft.Network/virtualNetworks/subnets`` -> ``VirtualNetworksSubnets``
    """
    _, _, local = resource_type.partition("/")
    return to_pascal(local or resource_type)


def package_name(provider: str, api_version: str) -> str:
    """Output package for one provider + API version.

    ``Microsoft.Network`` + ``2024-07-01`` -> ``microsoft_network_2024_07_01``
    """
    return f"{to_snake(provider)}_{to_snake(api_version).removeprefix('n_')}"


def resource_module_name(resource: ResourceDefinition) -> str:
    """Module name of a resource wrapper."""
    name = to_snake(resource_base_name(resource.resource_type))
    if name in RESERVED_MODULES or keyword.iskeyword(name):
        name = f"{name}_resource"
    return name


def props_symbol(resource: ResourceDefinition) -> str:
    """Generated property bag type name: ``Arm<Name>Props``."""
    return f"Arm{resource_base_name(resource.resource_type)}Props"


def construct_symbol(resource: ResourceDefinition) -> str:
    """Generated wrapper class name: ``Arm<Name>``."""
    return f"Arm{resource_base_name(resource.resource_type)}"


def validator_function(resource: ResourceDefinition) -> str:
    """Generated validator entry point name."""
    return f"validate_{to_snake(props_symbol(resource))}"


def schema_constant(resource: ResourceDefinition) -> str:
    """Generated constant holding a resource's constraint schema."""
    return f"{to_snake(props_symbol(resource)).upper()}_SCHEMA"


@dataclass(frozen=True)
class Declaration:
    """A named declaration the type generator emits."""

    name: str
    node: TypeDefinition
    origin: str
    description: str = ""
    resource: ResourceDefinition | None = None


class SymbolTable:
    """Symbols assigned to one IR instance.

    Inline nodes are keyed by identity, which is stable for the lifetime of the
    IR the table was built from.
    """

    def __init__(self, ir: SchemaIR):
        """Assign symbols for every nameable node in ``ir``.

        Raises:
            NameCollisionError: If two sources derive the same symbol
        """
        self.ir = ir
        self.declarations: list[Declaration] = []
        self.definition_names: dict[str, str] = {}
        self.resource_names: dict[str, str] = {}
        self._inline: dict[int, str] = {}
        self._claimed: dict[str, str] = {
            name: "a generated module import" for name in RESERVED_SYMBOLS
        }

        for resource in ir.resources:
            for name in (props_symbol(resource), construct_symbol(resource)):
                self._claim(name, f"resource '{resource.resource_type}'")

        for key in sorted(ir.definitions):
            name = to_pascal(key)
            self._claim(name, f"definition '{key}'")
            self.definition_names[key] = name

        for key in sorted(ir.definitions):
            name = self.definition_names[key]
            node = ir.definitions[key]
            self.declarations.append(
                Declaration(name=name, node=node, origin=f"definition '{key}'")
            )
            self._walk_children(node, name)

        for resource in ir.resources:
            name = props_symbol(resource)
            node = resource.as_object()
            self.resource_names[resource.name] = name
            self.declarations.append(
                Declaration(
                    name=name,
                    node=node,
                    origin=f"resource '{resource.resource_type}'",
                    description=resource.description,
                    resource=resource,
                )
            )
            self._walk_children(node, construct_symbol(resource))

    def name_of(self, node: TypeDefinition) -> str | None:
        """Symbol of an inline node, or None if it is rendered as an expression."""
        return self._inline.get(id(node))

    def reference_name(self, key: str) -> str:
        """Symbol of the definition a reference points at."""
        return self.definition_names[key]

    def _claim(self, name: str, origin: str) -> None:
        if name in self._claimed:
            raise NameCollisionError(name, self._claimed[name], origin)
        self._claimed[name] = origin

    def _walk_children(self, node: TypeDefinition, owner: str) -> None:
        """Name the nameable nodes nested under an already named ``node``."""
        if isinstance(node, ObjectType):
            for prop in node.properties:
                self._visit(prop.type, f"{owner}{to_pascal(prop.name)}")
            if node.additional is not None:
                self._visit(node.additional, f"{owner}Value")
        elif isinstance(node, ArrayType):
            self._visit(node.element, f"{owner}Item")
        elif isinstance(node, UnionType):
            for index, member in enumerate(node.members, start=1):
                self._visit(member, f"{owner}Option{index}")

    def _visit(self, node: TypeDefinition, name: str) -> None:
        if _is_nameable(node):
            self._claim(name, f"inline type at '{name}'")
            self._inline[id(node)] = name
            self.declarations.append(
                Declaration(name=name, node=node, origin=f"inline type '{name}'")
            )
            self._walk_children(node, name)
        else:
            self._walk_children(node, name)


def _is_nameable(node: TypeDefinition) -> bool:
    if isinstance(node, EnumType | UnionType):
        return True
    return isinstance(node, ObjectType) and bool(node.properties)
