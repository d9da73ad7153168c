"""Unit tests for the runtime validator and resource base class."""

from enum import Enum
import json

import pytest

from armgen.runtime import (
    PropsValidationError,
    ResourceConstruct,
    SchemaValidator,
    ValidationResult,
    Violation,
    json_type,
    to_template_value,
    validate_value,
)

STRING = {"kind": "primitive", "type": "string"}
INTEGER = {"kind": "primitive", "type": "integer"}


class Color(str, Enum):
    RED = "Red"
    BLUE = "Blue"


class TestJsonType:
    """Test JSON type naming."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "null"),
            (True, "boolean"),
            (1, "integer"),
            (1.5, "number"),
            ("x", "string"),
            ({}, "object"),
            ([], "array"),
            ((1,), "array"),
            (Color.RED, "string"),
            ({1, 2}, "set"),
        ],
    )
    def test_json_type(self, value, expected):
        """Test every JSON type name."""
        assert json_type(value) == expected


class TestPrimitives:
    """Test primitive type and constraint checks."""

    def test_valid_string(self):
        """Test a conforming string."""
        assert validate_value(STRING, "abc").is_valid

    def test_booleans_are_not_integers(self):
        """Test bool is rejected where an integer is expected."""
        result = validate_value(INTEGER, True)

        assert result.violations == [Violation("$", "type", "expected integer, got boolean")]

    def test_integers_are_numbers(self):
        """Test an integer satisfies a number."""
        assert validate_value({"kind": "primitive", "type": "number"}, 3).is_valid

    def test_any_accepts_everything(self):
        """Test the untyped primitive."""
        assert validate_value({"kind": "primitive", "type": "any"}, {"x": [1]}).is_valid

    def test_pattern_searches(self):
        """Test patterns are searched, not anchored at the start."""
        schema = {**STRING, "pattern": "[0-9]+", "max_length": 5}

        assert validate_value(schema, "ab12").is_valid
        result = validate_value(schema, "abc")

        assert result.violations == [Violation("$", "pattern", "must match pattern [0-9]+")]

    def test_lookaround_patterns(self):
        """Test patterns use the full Python regex syntax."""
        schema = {**STRING, "pattern": "^(?!-)[a-z-]+$"}

        assert validate_value(schema, "a-b").is_valid
        assert not validate_value(schema, "-ab").is_valid

    def test_min_length(self):
        """Test the minimum length message."""
        result = validate_value({**STRING, "min_length": 3}, "ab")

        assert str(result.violations[0]) == "$: must be at least 3 characters"

    @pytest.mark.parametrize(
        ("bounds", "value", "constraint"),
        [
            ({"minimum": 1}, 0, "minimum"),
            ({"maximum": 10}, 11, "maximum"),
            ({"exclusive_minimum": 1}, 1, "exclusive_minimum"),
            ({"exclusive_maximum": 10}, 10, "exclusive_maximum"),
        ],
    )
    def test_range(self, bounds, value, constraint):
        """Test each numeric bound."""
        result = validate_value({**INTEGER, **bounds}, value)

        assert [v.constraint for v in result.violations] == [constraint]

    def test_range_boundaries_are_inclusive(self):
        """Test inclusive bounds accept their limits."""
        assert validate_value({**INTEGER, "minimum": 1, "maximum": 10}, 10).is_valid

    def test_fractional_bound_on_integer(self):
        """Test an integer against a non-integral bound."""
        schema = {**INTEGER, "minimum": 1.5}

        assert validate_value(schema, 2).is_valid
        assert validate_value(schema, 1).violations == [Violation("$", "minimum", "must be >= 1.5")]
        assert validate_value(schema, 2.0).violations[0].constraint == "type"


class TestEnums:
    """Test enum checks."""

    SCHEMA = {"kind": "enum", "name": "SkuName", "values": ["Basic", "Standard"]}

    def test_member_value(self):
        """Test a literal value is accepted."""
        assert validate_value(self.SCHEMA, "Basic").is_valid

    def test_enum_member_unwrapped(self):
        """Test a generated enum member is compared by value."""
        schema = {"kind": "enum", "values": ["Red", "Blue"]}

        assert validate_value(schema, Color.BLUE).is_valid

    def test_unknown_value(self):
        """Test the enum message lists the allowed values."""
        result = validate_value(self.SCHEMA, "Premium")

        assert result.violations == [
            Violation(
                "$",
                "enum",
                "'Premium' is not a valid SkuName; expected one of: 'Basic', 'Standard'",
            )
        ]

    def test_wrong_type(self):
        """Test a value of another JSON type is a type violation."""
        result = validate_value(self.SCHEMA, 3)

        assert result.violations[0].constraint == "type"
        assert result.violations[0].message == "expected string, got integer"

    def test_numeric_values(self):
        """Test number enums: an integer of the wrong value is an enum violation."""
        schema = {"kind": "enum", "name": "Scale", "values": [2.5, 1e20]}

        assert validate_value(schema, 2.5).is_valid
        result = validate_value(schema, 3)

        assert [v.constraint for v in result.violations] == ["enum"]


class TestArraysAndObjects:
    """Test container checks and path reporting."""

    NODE = {
        "kind": "object",
        "name": "Node",
        "properties": {
            "label": STRING,
            "children": {"kind": "array", "items": {"kind": "ref", "ref": "Node"}},
        },
        "required": ["label"],
        "additional": None,
    }

    def test_array_counts(self):
        """Test item count bounds."""
        schema = {"kind": "array", "items": STRING, "min_items": 2}

        result = validate_value(schema, ["a"])

        assert result.violations[0].message == "must contain at least 2 items"

    def test_array_item_paths(self):
        """Test item violations carry their index."""
        schema = {"kind": "array", "items": STRING}

        result = validate_value(schema, ["a", 1, "c", None])

        assert result.paths() == ["$[1]", "$[3]"]

    def test_required_and_none(self):
        """Test a required property set to None counts as missing."""
        result = validate_value(self.NODE, {"label": None}, {"Node": self.NODE})

        assert result.violations == [
            Violation("label", "required", "required property is missing")
        ]

    def test_optional_none_is_absent(self):
        """Test an optional property set to None is skipped."""
        result = validate_value(self.NODE, {"label": "a", "children": None}, {"Node": self.NODE})

        assert result.is_valid

    def test_recursive_paths(self):
        """Test references are resolved through the definitions table."""
        value = {"label": "root", "children": [{"label": "a"}, {"children": []}]}

        result = validate_value(self.NODE, value, {"Node": self.NODE})

        assert result.paths() == ["children[1].label"]

    def test_open_object_accepts_extra(self):
        """Test objects are open unless closed explicitly."""
        result = validate_value(self.NODE, {"label": "a", "extra": 1}, {"Node": self.NODE})

        assert result.is_valid

    def test_closed_object_rejects_extra(self):
        """Test allow_extra False reports each unknown key."""
        schema = {"kind": "object", "properties": {}, "required": [], "allow_extra": False}

        result = validate_value(schema, {"b": 1, "a": 2})

        assert result.paths() == ["b", "a"]
        assert {v.constraint for v in result.violations} == {"additional_properties"}

    def test_dictionary_values(self):
        """Test additional values are checked against their schema."""
        schema = {"kind": "object", "properties": {}, "required": [], "additional": STRING}

        result = validate_value(schema, {"env": "prod", "tier": 1})

        assert result.paths() == ["tier"]

    def test_not_an_object(self):
        """Test a non-mapping value."""
        result = validate_value(self.NODE, ["label"], {"Node": self.NODE})

        assert result.violations == [Violation("$", "type", "expected object, got array")]

    def test_tuples_are_arrays(self):
        """Test tuples validate like lists."""
        schema = {"kind": "array", "items": INTEGER, "max_items": 2}

        assert validate_value(schema, (1, 2)).is_valid
        assert validate_value(schema, (1, 2, 3)).violations == [
            Violation("$", "max_items", "must contain at most 2 items")
        ]

    def test_nested_none_is_absent(self):
        """Test None entries are dropped at every depth."""
        value = {"label": "root", "children": [{"label": "a", "children": None}]}

        assert validate_value(self.NODE, value, {"Node": self.NODE}).is_valid


class TestUnions:
    """Test union failure reporting."""

    MODE = {
        "kind": "union",
        "name": "Mode",
        "members": [
            {**STRING, "pattern": "^[a-z]+$"},
            {"kind": "enum", "name": "ModeOption2", "values": ["A", "B"]},
        ],
    }

    def test_any_member_matches(self):
        """Test a value accepted by one member."""
        assert validate_value(self.MODE, "A").is_valid
        assert validate_value(self.MODE, "abc").is_valid

    def test_no_member_of_the_right_type(self):
        """Test a single union violation naming every member."""
        result = validate_value(self.MODE, 5)

        assert result.violations == [
            Violation("$", "union", "expected one of: string, ModeOption2; got integer")
        ]

    def test_closest_candidate_reported(self):
        """Test the candidate with the fewest violations wins."""
        result = validate_value(self.MODE, "C1")

        assert [v.constraint for v in result.violations] == ["pattern"]

    def test_tie_reports_earliest_member(self):
        """Test ties resolve to the earliest member."""
        schema = {
            "kind": "union",
            "members": [
                {**STRING, "max_length": 1},
                {**STRING, "min_length": 5},
            ],
        }

        result = validate_value(schema, "abc")

        assert [v.constraint for v in result.violations] == ["max_length"]

    def test_unnamed_members_described_by_kind(self):
        """Test member descriptions without names."""
        validator = SchemaValidator({})

        assert validator.describe({"kind": "ref", "ref": "Sku"}) == "Sku"
        assert validator.describe({"kind": "array", "items": STRING}) == "array"


class TestSchemaValidator:
    """Test schema compilation and reuse."""

    def test_compiled_once_per_schema(self):
        """Test repeated calls reuse one compiled validator."""
        validator = SchemaValidator({})
        schema = {**STRING, "min_length": 1}

        assert validator.validate(schema, "a").is_valid
        assert not validator.validate(schema, "").is_valid
        assert validator.validate({**STRING}, "b").is_valid
        assert len(validator._compiled) == 2

    def test_definitions_shared_between_schemas(self):
        """Test every root schema can reference the definitions table."""
        definitions = {"Slug": {**STRING, "pattern": "^[a-z]+$"}}
        validator = SchemaValidator(definitions)
        ref = {"kind": "ref", "ref": "Slug"}

        assert validator.validate(ref, "abc").is_valid
        assert validator.validate({"kind": "array", "items": ref}, ["a", "B"]).paths() == ["$[1]"]


class TestValidationResult:
    """Test the result value."""

    def test_truthiness_and_rendering(self):
        """Test bool and str of both outcomes."""
        ok = ValidationResult.from_violations([])
        bad = ValidationResult.from_violations([Violation("name", "pattern", "bad")])

        assert ok and str(ok) == "valid"
        assert not bad
        assert bad.violation_count == 1
        assert str(bad) == "invalid (1 violations)\n  - name: bad"


class _Sample(ResourceConstruct):
    RESOURCE_TYPE = "Provider.Example/samples"
    API_VERSION = "2024-01-01"
    PROPERTY_ORDER = ("name",)

    @staticmethod
    def validate_props(props):
        return validate_value(
            {"kind": "object", "properties": {"name": STRING}, "required": ["name"]},
            props,
        )

    def to_template(self):
        template = {"type": self.RESOURCE_TYPE, "apiVersion": self.API_VERSION}
        template["name"] = self._emit("name")
        template.update(self._extra_properties())
        return template


class TestResourceConstruct:
    """Test the generated wrapper base class."""

    def test_invalid_props_raise(self):
        """Test construction fails with every violation."""
        with pytest.raises(PropsValidationError) as exc_info:
            _Sample({"name": 1})

        error = exc_info.value
        assert error.resource_type == "Provider.Example/samples"
        assert str(error) == (
            "Provider.Example/samples props failed validation (1 violations):\n"
            "  - name: expected string, got integer"
        )
        assert error.to_dict()["violations"][0]["path"] == "name"

    def test_props_are_copied(self):
        """Test neither the input nor the accessor alias internal state."""
        props = {"name": "a", "meta": {"k": "v"}}
        sample = _Sample(props)

        props["meta"]["k"] = "changed"
        sample.props["meta"]["k"] = "changed"

        assert sample.to_template()["meta"] == {"k": "v"}

    def test_template_order_and_extras(self):
        """Test declared properties come before sorted extras; None extras are dropped."""
        sample = _Sample({"zeta": Color.RED, "name": "a", "alpha": (1, 2), "gone": None})

        template = sample.to_template()

        assert list(template) == ["type", "apiVersion", "name", "alpha", "zeta"]
        assert template["zeta"] == "Red"
        assert template["alpha"] == [1, 2]

    def test_to_json_and_identity(self):
        """Test JSON rendering and the identity pair."""
        sample = _Sample({"name": "a"})

        assert json.loads(sample.to_json()) == sample.to_template()
        assert sample.identity == ("Provider.Example/samples", "2024-01-01")
        assert "Provider.Example/samples" in repr(sample)


def test_to_template_value_nested():
    """Test enum unwrapping inside containers."""
    value = {"colors": [Color.RED, {"c": Color.BLUE}], 1: None}

    assert to_template_value(value) == {"colors": ["Red", {"c": "Blue"}], "1": None}
