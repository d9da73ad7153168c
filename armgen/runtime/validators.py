"""Constraint-schema validation backed by pydantic-core.

Generated ``validators`` modules describe each resource as a nested
constraint schema (plain dicts, see ``ValidationGenerator``). ``SchemaValidator``
compiles those dicts into strict pydantic-core schemas once per resource and
converts pydantic's errors into ``Violation`` values. Compiled validators are
immutable, so a ``SchemaValidator`` can be shared across threads and called
repeatedly.
"""

from collections.abc import Mapping
from enum import Enum
import threading
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from pydantic_core import CoreSchema, core_schema
from pydantic_core import SchemaValidator as CoreValidator

from .errors import ROOT_PATH, ValidationResult, Violation

Schema = Mapping[str, Any]

# pydantic error type -> (violation constraint, schema key, message template)
_CONSTRAINT_ERRORS = {
    "string_too_short": ("min_length", "min_length", "must be at least {} characters"),
    "string_too_long": ("max_length", "max_length", "must be at most {} characters"),
    "string_pattern_mismatch": ("pattern", "pattern", "must match pattern {}"),
    "greater_than_equal": ("minimum", "minimum", "must be >= {}"),
    "greater_than": ("exclusive_minimum", "exclusive_minimum", "must be > {}"),
    "less_than_equal": ("maximum", "maximum", "must be <= {}"),
    "less_than": ("exclusive_maximum", "exclusive_maximum", "must be < {}"),
    "too_short": ("min_items", "min_items", "must contain at least {} items"),
    "too_long": ("max_items", "max_items", "must contain at most {} items"),
}

_TYPE_ERRORS = {
    "string_type",
    "int_type",
    "int_from_float",
    "float_type",
    "bool_type",
    "none_required",
    "list_type",
    "dict_type",
}


def json_type(value: Any) -> str:
    """Name of the JSON type of a Python value."""
    if isinstance(value, Enum):
        value = value.value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list | tuple):
        return "array"
    return type(value).__name__


def child_path(path: str, key: str) -> str:
    return key if path == ROOT_PATH else f"{path}.{key}"


def index_path(path: str, index: int) -> str:
    return f"{path}[{index}]"


def plain_value(value: Any) -> Any:
    """Normalize a value before validation.

    Enum members become their values, tuples become lists and mapping entries
    set to ``None`` are dropped, so an optional property set to ``None`` is
    absent and a required one is missing.
    """
    if isinstance(value, Enum):
        return plain_value(value.value)
    if isinstance(value, Mapping):
        return {key: plain_value(item) for key, item in value.items() if item is not None}
    if isinstance(value, list | tuple):
        return [plain_value(item) for item in value]
    return value


class CoreSchemaCompiler:
    """Compiles constraint schemas into strict pydantic-core schemas.

    Union members are labelled with their index so errors can be traced
    back to the member that produced them.
    """

    def __init__(self, definitions: Mapping[str, Schema]):
        self.definitions = definitions

    def compile_root(self, schema: Schema) -> CoreSchema:
        """Compile ``schema`` together with every definition it may reference."""
        root = self.compile(schema)
        if not self.definitions:
            return root
        definitions = [
            {**self.compile(definition), "ref": name}
            for name, definition in self.definitions.items()
        ]
        return core_schema.definitions_schema(root, definitions)

    def compile(self, schema: Schema) -> CoreSchema:
        kind = schema["kind"]
        if kind == "primitive":
            return self._primitive(schema)
        if kind == "enum":
            return core_schema.literal_schema(list(schema["values"]))
        if kind == "array":
            return core_schema.list_schema(
                self.compile(schema["items"]),
                min_length=schema.get("min_items"),
                max_length=schema.get("max_items"),
                strict=True,
            )
        if kind == "object":
            return self._object(schema)
        if kind == "union":
            return core_schema.union_schema(
                [(self.compile(member), str(i)) for i, member in enumerate(schema["members"])],
                mode="left_to_right",
            )
        if kind == "ref":
            return core_schema.definition_reference_schema(schema["ref"])
        raise ValueError(f"Unknown schema kind '{kind}'")

    def _primitive(self, schema: Schema) -> CoreSchema:
        name = schema["type"]
        if name == "string":
            return core_schema.str_schema(
                pattern=schema.get("pattern"),
                min_length=schema.get("min_length"),
                max_length=schema.get("max_length"),
                regex_engine="python-re",
                strict=True,
            )
        if name == "integer":
            bounds = _bounds(schema)
            if all(isinstance(bound, int) for bound in bounds.values()):
                return core_schema.int_schema(strict=True, **bounds)
            # Fractional bounds on an integer are checked as floats
            return core_schema.chain_schema(
                [core_schema.int_schema(strict=True), core_schema.float_schema(strict=True, **bounds)]
            )
        if name == "number":
            return core_schema.float_schema(strict=True, **_bounds(schema))
        if name == "boolean":
            return core_schema.bool_schema(strict=True)
        if name == "null":
            return core_schema.none_schema()
        if name == "any":
            return core_schema.any_schema()
        raise ValueError(f"Unknown primitive type '{name}'")

    def _object(self, schema: Schema) -> CoreSchema:
        required = set(schema.get("required", ()))
        fields = {
            name: core_schema.typed_dict_field(self.compile(prop), required=name in required)
            for name, prop in schema.get("properties", {}).items()
        }

        additional = schema.get("additional")
        if additional is not None:
            return core_schema.typed_dict_schema(
                fields,
                extras_schema=self.compile(additional),
                extra_behavior="allow",
                strict=True,
            )
        extra_behavior = "ignore" if schema.get("allow_extra", True) else "forbid"
        return core_schema.typed_dict_schema(fields, extra_behavior=extra_behavior, strict=True)


def _bounds(schema: Schema) -> dict[str, Any]:
    keys = {
        "ge": "minimum",
        "gt": "exclusive_minimum",
        "le": "maximum",
        "lt": "exclusive_maximum",
    }
    return {arg: schema[key] for arg, key in keys.items() if schema.get(key) is not None}


class SchemaValidator:
    """Validates values against constraint schemas.

    Union failures are reported deterministically: members whose failure is
    not a plain type mismatch are candidates and the one with the fewest
    violations wins, earliest member first on ties. Without candidates a
    single ``union`` violation names the expected members.
    """

    def __init__(self, definitions: Mapping[str, Schema]):
        """Initialize validator.

        Args:
            definitions: Definition symbol -> constraint schema, used to
                resolve ``ref`` nodes
        """
        self.definitions = definitions
        self._compiler = CoreSchemaCompiler(definitions)
        self._compiled: dict[int, tuple[Schema, CoreValidator]] = {}
        self._lock = threading.Lock()

    def validate(self, schema: Schema, value: Any) -> ValidationResult:
        """Validate a value and collect every violation.

        Args:
            schema: Constraint schema to validate against
            value: Untyped value (usually a props dict)

        Returns:
            ValidationResult with all violations
        """
        try:
            self._validator_for(schema).validate_python(plain_value(value))
        except PydanticValidationError as e:
            entries = [(tuple(error["loc"]), error) for error in e.errors(include_url=False)]
            return ValidationResult.from_violations(self._convert(schema, entries, ROOT_PATH))
        return ValidationResult.from_violations([])

    def _validator_for(self, schema: Schema) -> CoreValidator:
        cached = self._compiled.get(id(schema))
        if cached is not None and cached[0] is schema:
            return cached[1]
        with self._lock:
            cached = self._compiled.get(id(schema))
            if cached is None or cached[0] is not schema:
                # The schema is kept alive with its validator so its id stays unique
                cached = (schema, CoreValidator(self._compiler.compile_root(schema)))
                self._compiled[id(schema)] = cached
        return cached[1]

    def _resolve(self, schema: Schema | None) -> Schema | None:
        while schema is not None and schema["kind"] == "ref":
            schema = self.definitions[schema["ref"]]
        return schema

    def _convert(
        self, schema: Schema | None, entries: list[tuple[tuple, dict]], path: str
    ) -> list[Violation]:
        """Turn pydantic errors below ``schema`` into violations.

        ``entries`` pairs each error with its location relative to ``schema``.
        """
        schema = self._resolve(schema)
        violations: list[Violation] = []
        nested: dict[Any, list[tuple[tuple, dict]]] = {}

        for loc, error in entries:
            if loc:
                nested.setdefault(loc[0], []).append((loc[1:], error))
            else:
                violations.append(self._violation(schema, error, path))

        if not nested:
            return violations
        if schema is not None and schema["kind"] == "union":
            violations.extend(self._convert_union(schema, nested, path))
            return violations

        for key, group in nested.items():
            child, location = self._child(schema, key, path)
            violations.extend(self._convert(child, group, location))
        return violations

    def _convert_union(
        self, schema: Schema, nested: dict[Any, list[tuple[tuple, dict]]], path: str
    ) -> list[Violation]:
        members = schema["members"]
        candidates: list[list[Violation]] = []

        for label, group in nested.items():
            failure = self._convert(members[int(label)], group, path)
            if not _is_type_mismatch(failure, path):
                candidates.append(failure)

        if candidates:
            return min(candidates, key=len)

        value = next(iter(nested.values()))[0][1]["input"]
        expected = ", ".join(self.describe(member) for member in members)
        return [
            Violation(path, "union", f"expected one of: {expected}; got {json_type(value)}")
        ]

    @staticmethod
    def _child(schema: Schema | None, key: Any, path: str) -> tuple[Schema | None, str]:
        if schema is not None and schema["kind"] == "array":
            return schema["items"], index_path(path, key)
        if schema is not None and schema["kind"] == "object":
            properties = schema.get("properties", {})
            child = properties[key] if key in properties else schema.get("additional")
            return child, child_path(path, str(key))
        return None, child_path(path, str(key))

    def _violation(self, schema: Schema | None, error: dict, path: str) -> Violation:
        error_type = error["type"]
        value = error["input"]

        if error_type == "missing":
            return Violation(path, "required", "required property is missing")
        if error_type == "extra_forbidden":
            return Violation(path, "additional_properties", "unknown property is not allowed")
        if error_type == "invalid_key":
            return Violation(path, "type", f"property names must be strings, got {value!r}")
        if error_type == "literal_error" and schema is not None:
            return _enum_violation(schema, value, path)
        if error_type in _CONSTRAINT_ERRORS and schema is not None:
            constraint, key, message = _CONSTRAINT_ERRORS[error_type]
            return Violation(path, constraint, message.format(schema[key]))
        if error_type in _TYPE_ERRORS and schema is not None:
            return Violation(
                path, "type", f"expected {self.describe_type(schema)}, got {json_type(value)}"
            )
        return Violation(path, error_type, error["msg"])

    def describe(self, schema: Schema) -> str:
        """Short human-readable name of a schema node."""
        if "name" in schema:
            return schema["name"]
        kind = schema["kind"]
        if kind == "primitive":
            return schema["type"]
        if kind == "ref":
            return schema["ref"]
        return kind

    @staticmethod
    def describe_type(schema: Schema) -> str:
        """JSON type a schema node expects."""
        if schema["kind"] == "primitive":
            return schema["type"]
        return schema["kind"]


def _enum_violation(schema: Schema, value: Any, path: str) -> Violation:
    values = schema["values"]
    types = sorted({json_type(candidate) for candidate in values})
    got = json_type(value)
    numeric = {"integer", "number"}
    if got not in types and not (got in numeric and numeric & set(types)):
        return Violation(path, "type", f"expected {' or '.join(types)}, got {got}")

    allowed = ", ".join(repr(candidate) for candidate in values)
    name = schema.get("name", "enum")
    return Violation(path, "enum", f"{value!r} is not a valid {name}; expected one of: {allowed}")


def _is_type_mismatch(violations: list[Violation], path: str) -> bool:
    return (
        len(violations) == 1
        and violations[0].constraint == "type"
        and violations[0].path == path
    )


def validate_value(
    schema: Schema, value: Any, definitions: Mapping[str, Schema] | None = None
) -> ValidationResult:
    """Validate ``value`` against ``schema`` with a throwaway validator."""
    return SchemaValidator(definitions or {}).validate(schema, value)
