"""Intermediate representation produced by the schema parser.

This module defines the immutable data structures every generator consumes.
All collections are tuples, frozensets or read-only mappings so that
generators running concurrently over one IR instance cannot change it.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from .constraints import Constraints

PRIMITIVE_NAMES = ("string", "integer", "number", "boolean", "null", "any")


@dataclass(frozen=True)
class PrimitiveType:
    """A scalar JSON value, optionally constrained."""

    kind: ClassVar[str] = "primitive"

    name: str
    constraints: Constraints = field(default_factory=Constraints)

    def __post_init__(self) -> None:
        if self.name not in PRIMITIVE_NAMES:
            raise ValueError(f"Unknown primitive type '{self.name}'")


@dataclass(frozen=True)
class PropertyDefinition:
    """Definition of a single object or resource property."""

    name: str
    type: "TypeDefinition"
    readonly: bool = False
    description: str = ""
    deprecated: bool = False


@dataclass(frozen=True)
class ObjectType:
    """A JSON object with declared properties and/or dictionary values.

    ``additional`` is the value type of an open dictionary. ``allow_extra`` is
    false only when the source schema closes the object explicitly.
    """

    kind: ClassVar[str] = "object"

    properties: tuple[PropertyDefinition, ...] = ()
    required: frozenset[str] = frozenset()
    additional: "TypeDefinition | None" = None
    allow_extra: bool = True

    def __post_init__(self) -> None:
        missing = self.required - {prop.name for prop in self.properties}
        if missing:
            raise ValueError(f"Required properties not declared: {sorted(missing)}")

    def property_names(self) -> list[str]:
        """Property names in declaration order."""
        return [prop.name for prop in self.properties]


@dataclass(frozen=True)
class ArrayType:
    """A JSON array of a single element type."""

    kind: ClassVar[str] = "array"

    element: "TypeDefinition"
    constraints: Constraints = field(default_factory=Constraints)


@dataclass(frozen=True)
class EnumType:
    """An ordered, de-duplicated set of literal values."""

    kind: ClassVar[str] = "enum"

    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError("Enum must contain at least one value")

    def __eq__(self, other: object) -> bool:
        # 1 == True in Python; literal identity includes the JSON type
        if not isinstance(other, EnumType):
            return NotImplemented
        return _typed(self.values) == _typed(other.values)

    def __hash__(self) -> int:
        return hash(_typed(self.values))

    @property
    def is_string_enum(self) -> bool:
        """Whether every value is a string."""
        return all(isinstance(value, str) for value in self.values)


@dataclass(frozen=True)
class UnionType:
    """Ordered alternatives from a ``oneOf`` construct."""

    kind: ClassVar[str] = "union"

    members: tuple["TypeDefinition", ...]

    def __post_init__(self) -> None:
        if len(self.members) < 2:
            raise ValueError("Union must contain at least two members")


@dataclass(frozen=True)
class ReferenceType:
    """Indirection to a named entry of ``SchemaIR.definitions``."""

    kind: ClassVar[str] = "reference"

    key: str


TypeDefinition = (
    PrimitiveType | ObjectType | ArrayType | EnumType | UnionType | ReferenceType
)


def _typed(values: tuple[Any, ...]) -> tuple[tuple[str, Any], ...]:
    return tuple((type(value).__name__, value) for value in values)


@dataclass(frozen=True)
class ResourceDefinition:
    """One deployable resource type within a schema document."""

    name: str
    resource_type: str
    properties: tuple[PropertyDefinition, ...] = ()
    required: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        if not self.resource_type:
            raise ValueError("Resource type must not be empty")
        missing = self.required - {prop.name for prop in self.properties}
        if missing:
            raise ValueError(
                f"Resource '{self.resource_type}' requires undeclared "
                f"properties: {sorted(missing)}"
            )

    def as_object(self) -> ObjectType:
        """View the resource property bag as an object type."""
        return ObjectType(properties=self.properties, required=self.required)


@dataclass(frozen=True)
class SchemaMetadata:
    """Descriptive document fields. Never affects generated code shape."""

    title: str = ""
    description: str = ""
    source_path: str = ""
    schema_id: str = ""


@dataclass(frozen=True)
class ParseWarning:
    """A keyword the parser ignored."""

    path: str
    keyword: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class SchemaIR:
    """Canonical, immutable result of parsing one schema document."""

    provider: str
    api_version: str
    resources: tuple[ResourceDefinition, ...]
    definitions: Mapping[str, TypeDefinition]
    metadata: SchemaMetadata = field(default_factory=SchemaMetadata)
    warnings: tuple[ParseWarning, ...] = ()

    def __post_init__(self) -> None:
        if not self.provider:
            raise ValueError("Provider must not be empty")
        if not isinstance(self.definitions, MappingProxyType):
            object.__setattr__(
                self, "definitions", MappingProxyType(dict(self.definitions))
            )

    def resolve(self, key: str) -> TypeDefinition:
        """Look up a definition by reference key.

        Raises:
            KeyError: If the key is not defined
        """
        return self.definitions[key]

    @property
    def identity(self) -> tuple[str, str]:
        """Stable key for downstream lookups."""
        return (self.provider, self.api_version)


def iter_references(node: TypeDefinition) -> Iterator[ReferenceType]:
    """Yield every reference reachable from ``node`` without following them."""
    if isinstance(node, ReferenceType):
        yield node
    elif isinstance(node, ObjectType):
        for prop in node.properties:
            yield from iter_references(prop.type)
        if node.additional is not None:
            yield from iter_references(node.additional)
    elif isinstance(node, ArrayType):
        yield from iter_references(node.element)
    elif isinstance(node, UnionType):
        for member in node.members:
            yield from iter_references(member)
