"""Schema parser that lowers resource-manager JSON schemas into the IR.

This module reads one schema document (``id``, ``title``,
``resourceDefinitions``, ``definitions``) and produces an immutable
``SchemaIR``. Only a closed set of JSON Schema features is understood;
anything else is rejected with a ``SchemaParseError`` or ignored with a
recorded warning, never reinterpreted.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import json
from pathlib import Path
import re
from typing import Any

from .constraints import (
    ARRAY_KEYWORDS,
    CONSTRAINT_KEYWORDS,
    NUMERIC_KEYWORDS,
    STRING_KEYWORDS,
    extract_constraints,
)
from .exceptions import DanglingReferenceError, SchemaParseError
from .ir import (
    ArrayType,
    EnumType,
    ObjectType,
    ParseWarning,
    PrimitiveType,
    PropertyDefinition,
    ReferenceType,
    ResourceDefinition,
    SchemaIR,
    SchemaMetadata,
    TypeDefinition,
    UnionType,
    iter_references,
)
from .logging import get_logger

logger = get_logger(__name__)

COMMON_DEFINITIONS_URL = (
    "https://schema.management.azure.com/schemas/common/definitions.json"
)
EXPRESSION_REF = f"{COMMON_DEFINITIONS_URL}#/definitions/expression"

DEFAULT_EXTERNALS: dict[str, dict[str, Any]] = {
    EXPRESSION_REF: {
        "type": "string",
        "pattern": r"^\[.*\]$",
        "description": "Deployment template expression",
    },
}

LOCAL_DEFINITION_PREFIX = "#/definitions/"

ANNOTATION_KEYWORDS = frozenset(
    {"description", "title", "readOnly", "deprecated", "$schema", "id", "$id", "examples"}
)
SHAPE_KEYWORDS = frozenset(
    {
        "type",
        "properties",
        "required",
        "additionalProperties",
        "items",
        "enum",
        "const",
        "oneOf",
        "$ref",
    }
) | frozenset(CONSTRAINT_KEYWORDS)
REJECTED_KEYWORDS = frozenset(
    {"allOf", "anyOf", "not", "patternProperties", "if", "then", "else", "dependencies"}
)

# Resource properties that carry the resource identity rather than user data
IDENTITY_PROPERTIES = ("type", "apiVersion")

_SCHEMA_ID_VERSION = re.compile(r"schemas/([^/]+)/[^/]+\.json")
_JSON_TYPES = {
    "string": "string",
    "integer": "integer",
    "number": "number",
    "boolean": "boolean",
    "null": "null",
}


@dataclass(frozen=True)
class ParserOptions:
    """Parser configuration.

    Attributes:
        externals: Full ``$ref`` string -> raw schema for references that
            point outside the document
        strip_expressions: Drop template-expression branches from unions
            when another branch remains
    """

    externals: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: dict(DEFAULT_EXTERNALS)
    )
    strip_expressions: bool = True


@dataclass
class _ParseState:
    """Mutable bookkeeping for a single ``parse`` call."""

    document: dict[str, Any]
    raw_definitions: dict[str, Any]
    definitions: dict[str, TypeDefinition] = field(default_factory=dict)
    external_keys: dict[str, str] = field(default_factory=dict)
    warnings: list[ParseWarning] = field(default_factory=list)

    def warn(self, path: str, keyword: str, message: str) -> None:
        self.warnings.append(ParseWarning(path=path, keyword=keyword, message=message))


class SchemaParser:
    """Parses resource-manager JSON schemas into intermediate representation.

    A parser instance holds only configuration, so one instance can parse
    documents from several threads at once.
    """

    def __init__(self, options: ParserOptions | None = None):
        """Initialize parser.

        Args:
            options: Parser configuration (defaults to ``ParserOptions()``)
        """
        self.options = options or ParserOptions()

    def parse_file(self, path: str | Path) -> SchemaIR:
        """Read and parse a schema file.

        Args:
            path: Path to a JSON schema document

        Returns:
            Parsed schema IR

        Raises:
            SchemaParseError: If the file cannot be read or parsed
        """
        schema_path = Path(path)
        try:
            content = schema_path.read_bytes()
        except OSError as e:
            raise SchemaParseError("#", f"cannot read {schema_path}: {e}", e) from e
        return self.parse(content, source_path=str(schema_path))

    def parse(
        self, document: bytes | str | Mapping[str, Any], source_path: str = ""
    ) -> SchemaIR:
        """Parse one schema document.

        Parsing is all-or-nothing: either a complete IR is returned or an
        exception is raised.

        Args:
            document: Raw JSON text/bytes or an already decoded JSON object
            source_path: Identifier of the document, recorded in metadata

        Returns:
            Schema intermediate representation

        Raises:
            SchemaParseError: If the document is malformed or uses unsupported
                features
            DanglingReferenceError: If a reference cannot be resolved
        """
        raw = self._decode(document)

        raw_definitions = raw.get("definitions", {})
        if not isinstance(raw_definitions, dict):
            raise SchemaParseError("#/definitions", "definitions must be an object")
        raw_resources = raw.get("resourceDefinitions", {})
        if not isinstance(raw_resources, dict):
            raise SchemaParseError(
                "#/resourceDefinitions", "resourceDefinitions must be an object"
            )

        state = _ParseState(document=raw, raw_definitions=raw_definitions)

        api_version = self._extract_api_version(raw, raw_resources)

        resources = tuple(
            self._parse_resource(name, node, api_version, state)
            for name, node in raw_resources.items()
        )

        for key, node in raw_definitions.items():
            if key not in state.definitions:
                state.definitions[key] = self._parse_type(
                    node, f"{LOCAL_DEFINITION_PREFIX}{key}", state
                )

        provider = self._extract_provider(raw, resources)

        self._check_reference_integrity(resources, state)
        self._check_unguarded_cycles(state.definitions)

        ir = SchemaIR(
            provider=provider,
            api_version=api_version,
            resources=resources,
            definitions=state.definitions,
            metadata=SchemaMetadata(
                title=str(raw.get("title", "")),
                description=str(raw.get("description", "")),
                source_path=source_path,
                schema_id=str(raw.get("id") or raw.get("$id") or ""),
            ),
            warnings=tuple(state.warnings),
        )

        logger.debug(
            "Schema parsed",
            source=source_path,
            provider=ir.provider,
            api_version=ir.api_version,
            resources=len(ir.resources),
            definitions=len(ir.definitions),
            warnings=len(ir.warnings),
        )
        return ir

    @staticmethod
    def _decode(document: bytes | str | Mapping[str, Any]) -> dict[str, Any]:
        """Decode raw input into a JSON object."""
        if isinstance(document, Mapping):
            return dict(document)

        try:
            raw = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SchemaParseError("#", f"invalid JSON: {e}", e) from e

        if not isinstance(raw, dict):
            raise SchemaParseError("#", "schema document root must be an object")
        return raw

    @staticmethod
    def _extract_api_version(
        raw: dict[str, Any], raw_resources: dict[str, Any]
    ) -> str:
        """Determine the document API version.

        Order: the version segment of the schema id, a top-level
        ``apiVersion`` field, then the first resource's ``apiVersion`` enum.
        """
        schema_id = raw.get("id") or raw.get("$id") or ""
        if isinstance(schema_id, str):
            match = _SCHEMA_ID_VERSION.search(schema_id)
            if match:
                return match.group(1)

        if isinstance(raw.get("apiVersion"), str) and raw["apiVersion"]:
            return raw["apiVersion"]

        for node in raw_resources.values():
            literal = _identity_literal(node, "apiVersion")
            if literal:
                return literal

        raise SchemaParseError(
            "#", "cannot determine apiVersion: no schema id, apiVersion or resource version"
        )

    @staticmethod
    def _extract_provider(
        raw: dict[str, Any], resources: tuple[ResourceDefinition, ...]
    ) -> str:
        title = raw.get("title")
        if isinstance(title, str) and title.strip():
            return title.strip()

        for resource in resources:
            namespace = resource.resource_type.split("/", 1)[0]
            if namespace:
                return namespace

        raise SchemaParseError("#/title", "cannot determine provider: missing title")

    def _parse_resource(
        self, name: str, node: Any, api_version: str, state: _ParseState
    ) -> ResourceDefinition:
        """Parse a single resource definition.

        Args:
            name: Resource definition key
            node: Raw resource definition
            api_version: Document API version
            state: Parse bookkeeping

        Returns:
            Resource definition with identity properties removed
        """
        path = f"#/resourceDefinitions/{name}"
        if not isinstance(node, dict):
            raise SchemaParseError(path, "resource definition must be an object")
        self._reject_keywords(node, path)

        raw_properties = node.get("properties")
        if not isinstance(raw_properties, dict):
            raise SchemaParseError(path, "resource definition has no properties")

        resource_type = _identity_literal(node, "type")
        if not resource_type:
            raise SchemaParseError(
                f"{path}/properties/type", "resource definition missing its type"
            )

        declared_version = _identity_literal(node, "apiVersion")
        if declared_version and declared_version != api_version:
            raise SchemaParseError(
                f"{path}/properties/apiVersion",
                f"resource apiVersion '{declared_version}' does not match "
                f"document apiVersion '{api_version}'",
            )

        properties = tuple(
            self._parse_property(prop_name, prop_node, f"{path}/properties", state)
            for prop_name, prop_node in raw_properties.items()
            if prop_name not in IDENTITY_PROPERTIES
        )
        required = self._parse_required(
            node, path, [prop.name for prop in properties], skip=IDENTITY_PROPERTIES
        )

        return ResourceDefinition(
            name=name,
            resource_type=resource_type,
            properties=properties,
            required=required,
            description=str(node.get("description", "")),
        )

    def _parse_property(
        self, name: str, node: Any, parent_path: str, state: _ParseState
    ) -> PropertyDefinition:
        path = f"{parent_path}/{_escape(name)}"
        if not isinstance(node, dict):
            raise SchemaParseError(path, "property definition must be an object")

        return PropertyDefinition(
            name=name,
            type=self._parse_type(node, path, state),
            readonly=node.get("readOnly") is True,
            description=str(node.get("description", "")),
            deprecated=node.get("deprecated") is True,
        )

    @staticmethod
    def _parse_required(
        node: dict[str, Any],
        path: str,
        property_names: list[str],
        skip: tuple[str, ...] = (),
    ) -> frozenset[str]:
        required = node.get("required", [])
        if not isinstance(required, list) or not all(
            isinstance(item, str) for item in required
        ):
            raise SchemaParseError(f"{path}/required", "required must be a list of names")

        names = [item for item in required if item not in skip]
        missing = [item for item in names if item not in property_names]
        if missing:
            raise SchemaParseError(
                f"{path}/required",
                f"required properties not declared: {', '.join(missing)}",
            )
        return frozenset(names)

    def _parse_type(self, node: Any, path: str, state: _ParseState) -> TypeDefinition:
        """Parse a type definition node.

        Args:
            node: Raw type definition
            path: Location of the node
            state: Parse bookkeeping

        Returns:
            Type definition
        """
        if not isinstance(node, dict):
            raise SchemaParseError(path, "type definition must be an object")
        self._check_keywords(node, path, state)

        if "$ref" in node:
            return self._parse_reference(node["$ref"], path, state)
        if "oneOf" in node:
            return self._parse_union(node, path, state)
        if "enum" in node or "const" in node:
            self._warn_constraints(node, path, {}, state)
            return self._parse_enum(node, path)

        type_value = node.get("type")
        if isinstance(type_value, list):
            return self._parse_type_list(node, type_value, path, state)
        if type_value is None:
            type_value = self._infer_type(node)
        if not isinstance(type_value, str):
            raise SchemaParseError(f"{path}/type", "type must be a string or a list")

        if type_value == "object":
            return self._parse_object(node, path, state)
        if type_value == "array":
            return self._parse_array(node, path, state)
        if type_value == "any":
            self._warn_constraints(node, path, {}, state)
            return PrimitiveType("any")
        if type_value not in _JSON_TYPES:
            raise SchemaParseError(f"{path}/type", f"unsupported type '{type_value}'")

        return self._parse_primitive(node, _JSON_TYPES[type_value], path, state)

    @staticmethod
    def _infer_type(node: dict[str, Any]) -> str:
        if "properties" in node or "additionalProperties" in node:
            return "object"
        if "items" in node:
            return "array"
        return "any"

    def _parse_primitive(
        self, node: dict[str, Any], name: str, path: str, state: _ParseState
    ) -> PrimitiveType:
        if name == "string":
            keywords = STRING_KEYWORDS
        elif name in ("integer", "number"):
            keywords = NUMERIC_KEYWORDS
        else:
            keywords = {}

        self._warn_constraints(node, path, keywords, state)
        return PrimitiveType(name, extract_constraints(node, path, keywords))

    def _parse_type_list(
        self, node: dict[str, Any], types: list[Any], path: str, state: _ParseState
    ) -> TypeDefinition:
        """Lower ``"type": [...]`` into a union of single-type nodes."""
        if not types or not all(isinstance(item, str) for item in types):
            raise SchemaParseError(f"{path}/type", "type list must contain type names")

        members = [
            self._parse_type({**node, "type": type_name}, path, state)
            for type_name in types
        ]
        return _collapse_union(members)

    def _parse_reference(self, ref: Any, path: str, state: _ParseState) -> TypeDefinition:
        """Resolve a ``$ref`` into a reference node.

        References are never inlined, which keeps recursive shapes finite.
        """
        if not isinstance(ref, str):
            raise SchemaParseError(f"{path}/$ref", "$ref must be a string")

        if ref.startswith(LOCAL_DEFINITION_PREFIX):
            key = _unescape(ref[len(LOCAL_DEFINITION_PREFIX) :])
            if "/" in ref[len(LOCAL_DEFINITION_PREFIX) :]:
                raise DanglingReferenceError(path, ref)
            if key not in state.raw_definitions:
                raise DanglingReferenceError(path, ref)
            return ReferenceType(key)

        if ref in self.options.externals:
            return ReferenceType(self._register_external(ref, path, state))

        raise DanglingReferenceError(path, ref)

    def _register_external(self, ref: str, path: str, state: _ParseState) -> str:
        """Import a declared external definition into the IR definitions."""
        if ref in state.external_keys:
            return state.external_keys[ref]

        key = ref.rsplit("/", 1)[-1] or ref
        if key in state.raw_definitions or key in state.external_keys.values():
            raise SchemaParseError(
                path,
                f"external reference '{ref}' clashes with definition '{key}'",
            )

        state.external_keys[ref] = key
        state.definitions[key] = self._parse_type(
            dict(self.options.externals[ref]), ref, state
        )
        return key

    def _parse_union(
        self, node: dict[str, Any], path: str, state: _ParseState
    ) -> TypeDefinition:
        """Parse a ``oneOf`` union.

        Each branch is parsed independently; structurally identical branches
        are de-duplicated and a single remaining branch collapses to itself.
        """
        branches = node["oneOf"]
        if not isinstance(branches, list) or not branches:
            raise SchemaParseError(f"{path}/oneOf", "oneOf must be a non-empty list")
        if "type" in node:
            state.warn(path, "type", "'type' next to 'oneOf' is ignored")

        indexed = list(enumerate(branches))
        if self.options.strip_expressions:
            kept = [(i, b) for i, b in indexed if not _is_expression_branch(b)]
            if kept:
                indexed = kept

        members = [
            self._parse_type(branch, f"{path}/oneOf/{i}", state)
            for i, branch in indexed
        ]
        return _collapse_union(members)

    @staticmethod
    def _parse_enum(node: dict[str, Any], path: str) -> EnumType:
        """Parse ``enum``/``const``, keeping first occurrences in declaration order."""
        if "enum" in node and "const" in node:
            raise SchemaParseError(path, "enum and const cannot be combined")

        values = node["enum"] if "enum" in node else [node["const"]]
        if not isinstance(values, list) or not values:
            raise SchemaParseError(f"{path}/enum", "enum must be a non-empty list")

        unique: list[Any] = []
        seen: set[tuple[str, Any]] = set()
        for value in values:
            if isinstance(value, dict | list):
                raise SchemaParseError(
                    f"{path}/enum", "enum values must be strings, numbers, booleans or null"
                )
            marker = (type(value).__name__, value)
            if marker not in seen:
                seen.add(marker)
                unique.append(value)

        return EnumType(tuple(unique))

    def _parse_object(
        self, node: dict[str, Any], path: str, state: _ParseState
    ) -> ObjectType:
        raw_properties = node.get("properties", {})
        if not isinstance(raw_properties, dict):
            raise SchemaParseError(f"{path}/properties", "properties must be an object")
        self._warn_constraints(node, path, {}, state)

        properties = tuple(
            self._parse_property(name, prop, f"{path}/properties", state)
            for name, prop in raw_properties.items()
        )
        required = self._parse_required(node, path, [prop.name for prop in properties])

        additional_raw = node.get("additionalProperties", True)
        additional: TypeDefinition | None = None
        allow_extra = True
        if additional_raw is False:
            allow_extra = False
        elif isinstance(additional_raw, dict):
            additional = self._parse_type(
                additional_raw, f"{path}/additionalProperties", state
            )
        elif additional_raw is not True:
            raise SchemaParseError(
                f"{path}/additionalProperties",
                "additionalProperties must be a boolean or a schema",
            )

        return ObjectType(
            properties=properties,
            required=required,
            additional=additional,
            allow_extra=allow_extra,
        )

    def _parse_array(
        self, node: dict[str, Any], path: str, state: _ParseState
    ) -> ArrayType:
        items = node.get("items")
        if items is None:
            element: TypeDefinition = PrimitiveType("any")
        elif isinstance(items, list):
            raise SchemaParseError(f"{path}/items", "tuple-typed items are not supported")
        else:
            element = self._parse_type(items, f"{path}/items", state)

        self._warn_constraints(node, path, ARRAY_KEYWORDS, state)
        return ArrayType(element, extract_constraints(node, path, ARRAY_KEYWORDS))

    @staticmethod
    def _reject_keywords(node: dict[str, Any], path: str) -> None:
        rejected = sorted(REJECTED_KEYWORDS.intersection(node))
        if rejected:
            raise SchemaParseError(
                path, f"unsupported keyword(s): {', '.join(rejected)}"
            )

    def _check_keywords(
        self, node: dict[str, Any], path: str, state: _ParseState
    ) -> None:
        """Reject unsupported keywords and combinations; warn on unknown ones."""
        self._reject_keywords(node, path)

        present = set(node)
        if "$ref" in present:
            extra = sorted((present & SHAPE_KEYWORDS) - {"$ref"})
            if extra:
                raise SchemaParseError(
                    path, f"$ref cannot be combined with {', '.join(extra)}"
                )
        if "oneOf" in present:
            extra = sorted(present & {"enum", "const", "properties", "items"})
            if extra:
                raise SchemaParseError(
                    path, f"oneOf cannot be combined with {', '.join(extra)}"
                )
        if "enum" in present or "const" in present:
            extra = sorted(present & {"properties", "items", "additionalProperties"})
            if extra:
                raise SchemaParseError(
                    path, f"enum cannot be combined with {', '.join(extra)}"
                )

        for keyword in sorted(present - SHAPE_KEYWORDS - ANNOTATION_KEYWORDS):
            state.warn(path, keyword, f"unsupported keyword '{keyword}' ignored")

    @staticmethod
    def _warn_constraints(
        node: dict[str, Any], path: str, applicable: dict[str, str], state: _ParseState
    ) -> None:
        for keyword in CONSTRAINT_KEYWORDS:
            if keyword in node and keyword not in applicable:
                state.warn(
                    path, keyword, f"constraint '{keyword}' does not apply here; ignored"
                )

    @staticmethod
    def _check_reference_integrity(
        resources: tuple[ResourceDefinition, ...], state: _ParseState
    ) -> None:
        """Every reference must name an existing definition."""
        roots: list[tuple[str, TypeDefinition]] = [
            (f"#/resourceDefinitions/{resource.name}", resource.as_object())
            for resource in resources
        ]
        roots.extend(
            (f"{LOCAL_DEFINITION_PREFIX}{key}", node)
            for key, node in state.definitions.items()
        )
        for path, node in roots:
            for reference in iter_references(node):
                if reference.key not in state.definitions:
                    raise DanglingReferenceError(path, reference.key)

    @staticmethod
    def _check_unguarded_cycles(definitions: dict[str, TypeDefinition]) -> None:
        """Reject reference cycles that pass only through references and unions.

        A cycle through an object property, array element or dictionary value
        is fine: a finite value terminates it. A cycle made of aliases alone
        describes no value at all.
        """
        edges = {key: _unguarded_targets(node) for key, node in definitions.items()}
        visiting: list[str] = []
        done: set[str] = set()

        def visit(key: str) -> None:
            if key in done:
                return
            if key in visiting:
                cycle = [*visiting[visiting.index(key) :], key]
                raise SchemaParseError(
                    f"{LOCAL_DEFINITION_PREFIX}{cycle[0]}",
                    f"unguarded reference cycle: {' -> '.join(cycle)}",
                )
            visiting.append(key)
            for target in edges.get(key, ()):
                visit(target)
            visiting.pop()
            done.add(key)

        for key in sorted(edges):
            visit(key)


def _identity_literal(node: Any, name: str) -> str | None:
    """Read the fixed value of a resource identity property (``type``/``apiVersion``)."""
    if not isinstance(node, dict):
        return None
    properties = node.get("properties")
    prop = properties.get(name) if isinstance(properties, dict) else None
    if not isinstance(prop, dict):
        return None
    if "const" in prop and isinstance(prop["const"], str):
        return prop["const"]
    values = prop.get("enum")
    if isinstance(values, list) and values and isinstance(values[0], str):
        return values[0]
    return None


def _is_expression_branch(branch: Any) -> bool:
    return (
        isinstance(branch, dict)
        and isinstance(branch.get("$ref"), str)
        and branch["$ref"].endswith("/definitions/expression")
    )


def _collapse_union(members: list[TypeDefinition]) -> TypeDefinition:
    unique: list[TypeDefinition] = []
    for member in members:
        if member not in unique:
            unique.append(member)
    if len(unique) == 1:
        return unique[0]
    return UnionType(tuple(unique))


def _unguarded_targets(node: TypeDefinition) -> list[str]:
    if isinstance(node, ReferenceType):
        return [node.key]
    if isinstance(node, UnionType):
        return [key for member in node.members for key in _unguarded_targets(member)]
    return []


def _escape(name: str) -> str:
    return name.replace("~", "~0").replace("/", "~1")


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


__all__ = [
    "COMMON_DEFINITIONS_URL",
    "DEFAULT_EXTERNALS",
    "EXPRESSION_REF",
    "ParserOptions",
    "SchemaParser",
]
