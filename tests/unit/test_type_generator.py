"""Unit tests for the type generator."""

import ast
import importlib
import typing

import pytest

from armgen.core.exceptions import NameCollisionError
from armgen.generators import TypeGenerator

WIDGETS_TYPES = '''"""Typed declarations for Provider.Example resources.

Generated by armgen from Provider.Example (API version 2024-01-01). DO NOT EDIT.
"""

from typing_extensions import TypedDict


class ArmWidgetsProps(TypedDict):
    """Property bag for ``Provider.Example/widgets``.

    Provider.Example/widgets
    """

    #: Pattern: ^[a-z]+$
    name: str
'''


class TestTypeGenerator:
    """Test generated type declarations."""

    def test_widgets_module(self, parse, widgets_document):
        """Test the complete module for a single resource."""
        files = TypeGenerator().generate(parse(widgets_document))

        assert len(files) == 1
        assert files[0].path == "provider_example_2024_01_01/resource_types.py"
        assert files[0].kind == "types"
        assert files[0].content == WIDGETS_TYPES

    def test_catalog_imports(self, parse, catalog_document):
        """Test only the names in use are imported."""
        content = TypeGenerator().generate(parse(catalog_document))[0].content

        assert "from enum import Enum\nfrom typing import Union\n\n" in content
        assert (
            "from typing_extensions import NotRequired, ReadOnly, TypeAlias, TypedDict\n"
            in content
        )
        assert "from __future__" not in content

    def test_catalog_declarations(self, parse, catalog_document):
        """Test enums, aliases, references and flags."""
        content = TypeGenerator().generate(parse(catalog_document))[0].content

        assert "class SkuName(str, Enum):" in content
        assert '    BASIC = "Basic"\n    STANDARD = "Standard"' in content
        assert '    A_B = "a-b"\n    C = "c"' in content
        assert "Tags: TypeAlias = dict[str, str]" in content
        assert 'ArmWidgetsMode: TypeAlias = Union[str, "ArmWidgetsModeOption2"]' in content
        assert '    children: NotRequired[list["Node"]]' in content
        assert '    sku: NotRequired["Sku"]' in content
        assert "    provisioningState: NotRequired[ReadOnly[str]]" in content
        assert "    #: Deprecated.\n    legacy: NotRequired[bool]" in content
        assert "    #: Azure region\n    location: NotRequired[str]" in content
        assert "    #: Range: >= 1, <= 10\n    capacity: NotRequired[int]" in content
        assert "    #: Length: 0-10 characters\n    #: Pattern: ^[a-z]+$\n    name: str" in content

    def test_declaration_order(self, parse, catalog_document):
        """Test definitions come first, then each resource with its inline types."""
        content = TypeGenerator().generate(parse(catalog_document))[0].content
        names = ["class Node(", "class Sku(", "class SkuName(", "Tags:", "class ArmWidgetsProps("]

        positions = [content.index(name) for name in names]

        assert positions == sorted(positions)

    def test_output_is_deterministic(self, parse, catalog_document):
        """Test separate parses of one document render identical bytes."""
        first = TypeGenerator().generate(parse(catalog_document))
        second = TypeGenerator().generate(parse(catalog_document))

        assert first == second

    def test_functional_syntax_for_non_identifier_keys(self, parse, widgets_document):
        """Test keys that cannot be class attributes."""
        widgets_document["definitions"] = {
            "weird": {
                "type": "object",
                "properties": {
                    "odd-key": {"type": "string", "description": "Odd"},
                    "class": {"type": "integer"},
                },
                "required": ["odd-key"],
            }
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert (
            "#: Weird object.\n"
            "Weird = TypedDict(\n"
            '    "Weird",\n'
            "    {\n"
            "        # Odd\n"
            '        "odd-key": str,\n'
            '        "class": NotRequired[int],\n'
            "    },\n"
            ")\n"
        ) in content

    def test_enum_members(self, parse, widgets_document):
        """Test non-string enums and de-duplicated member names."""
        widgets_document["definitions"] = {
            "level": {"enum": [1, 2]},
            "style": {"type": "string", "enum": ["a-b", "a_b"]},
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert "class Level(Enum):" in content
        assert "    VALUE_1 = 1\n    VALUE_2 = 2" in content
        assert '    A_B = "a-b"\n    A_B_2 = "a_b"' in content

    def test_untyped_property_uses_any(self, parse, widgets_document):
        """Test an untyped property imports Any."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["payload"] = {}

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert "from typing import Any\n" in content
        assert "    payload: NotRequired[Any]" in content

    def test_collision_raises(self, parse, widgets_document):
        """Test colliding definition symbols fail generation."""
        widgets_document["definitions"] = {"a-b": {"type": "string"}, "aB": {"type": "string"}}

        with pytest.raises(NameCollisionError):
            TypeGenerator().generate(parse(widgets_document))


class TestGeneratedTypesModule:
    """Test the generated module imports and behaves as declared."""

    @pytest.fixture
    def types_module(self, load_generated, catalog_document):
        package = load_generated(catalog_document)
        return importlib.import_module(f"{package.__name__}.resource_types")

    def test_required_and_optional_keys(self, types_module):
        """Test NotRequired is honoured at runtime."""
        props = types_module.ArmWidgetsProps

        assert props.__required_keys__ == frozenset({"name"})
        assert "sku" in props.__optional_keys__
        assert types_module.Sku.__required_keys__ == frozenset({"name"})
        assert types_module.Sku.__optional_keys__ == frozenset({"capacity"})

    def test_readonly_keys(self, types_module):
        """Test ReadOnly is honoured at runtime."""
        assert types_module.ArmWidgetsProps.__readonly_keys__ == frozenset(
            {"provisioningState"}
        )

    def test_enums(self, types_module):
        """Test generated enums are string enums with literal values."""
        assert types_module.SkuName.BASIC == "Basic"
        assert types_module.ArmWidgetsKind("a-b") is types_module.ArmWidgetsKind.A_B


class TestTypeDocumentation:
    """Test constraints documented on aliases and inline element types."""

    def test_alias_constraints(self, parse, widgets_document):
        """Test a constrained string definition documents its constraints."""
        widgets_document["definitions"] = {
            "slug": {"type": "string", "pattern": "^[a-z]+$", "maxLength": 5}
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert (
            "#: Length: 0-5 characters\n#: Pattern: ^[a-z]+$\nSlug: TypeAlias = str\n"
            in content
        )

    def test_array_element_constraints(self, parse, widgets_document):
        """Test element constraints are documented with the array property."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["labels"] = {
            "type": "array",
            "items": {"type": "string", "minLength": 2},
            "maxItems": 4,
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert (
            "    #: Items: 0-4\n"
            "    #: Each item: Length: 2-unlimited characters\n"
            "    labels: NotRequired[list[str]]\n"
        ) in content

    def test_union_member_constraints(self, parse, widgets_document):
        """Test each union member documents its own constraints."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["size"] = {
            "oneOf": [
                {"type": "string", "maxLength": 3},
                {"type": "integer", "minimum": 0},
            ]
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert (
            "#: Option 1: Length: 0-3 characters\n"
            "#: Option 2: Range: >= 0\n"
            "ArmWidgetsSize: TypeAlias = Union[str, int]\n"
        ) in content

    def test_dictionary_value_constraints(self, parse, widgets_document):
        """Test value constraints of a dictionary alias."""
        widgets_document["definitions"] = {
            "tags": {
                "type": "object",
                "additionalProperties": {"type": "string", "maxLength": 8},
            }
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        assert (
            "#: Each value: Length: 0-8 characters\nTags: TypeAlias = dict[str, str]\n"
            in content
        )


class TestGeneratedSyntax:
    """Test literal values that need care to stay valid Python."""

    def test_float_enum_members(self, parse, widgets_document):
        """Test floats in exponent notation make valid member names."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["scale"] = {
            "enum": [1e20, 2.5, -2.5e-07]
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        ast.parse(content)
        assert (
            "    VALUE_1E_20 = 1e+20\n"
            "    VALUE_2_5 = 2.5\n"
            "    VALUE_MINUS_2_5EMINUS_07 = -2.5e-07\n"
        ) in content

    def test_equal_values_render_a_literal_alias(self, parse, widgets_document):
        """Test 1 and true stay distinct instead of becoming aliased members."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["flag"] = {
            "enum": [1, True, "on"]
        }

        content = TypeGenerator().generate(parse(widgets_document))[0].content

        ast.parse(content)
        assert "from typing import Literal\n" in content
        assert 'ArmWidgetsFlag: TypeAlias = Literal[1, True, "on"]\n' in content
        assert "from enum import Enum" not in content
        assert '    flag: NotRequired["ArmWidgetsFlag"]\n' in content

    def test_equal_values_keep_both_at_runtime(self, load_generated, widgets_document):
        """Test the generated alias and validator accept 1 and true as given."""
        widgets_document["resourceDefinitions"]["widgets"]["properties"]["flag"] = {
            "enum": [1, True]
        }
        package = load_generated(widgets_document)
        types_module = importlib.import_module(f"{package.__name__}.resource_types")
        validators = importlib.import_module(f"{package.__name__}.validators")
        base = {"name": "abc", "type": "Provider.Example/widgets", "apiVersion": "2024-01-01"}

        assert typing.get_args(types_module.ArmWidgetsFlag) == (1, True)
        assert validators.validate_arm_widgets_props({**base, "flag": True}).is_valid
        assert validators.validate_arm_widgets_props({**base, "flag": 1}).is_valid
        assert not validators.validate_arm_widgets_props({**base, "flag": 2}).is_valid
