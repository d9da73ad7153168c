"""Constraint extraction shared by every generator.

Constraints are pulled out of a raw schema node exactly once, while the
parser builds the intermediate representation. The type generator reads
``Constraints.describe()`` for documentation, the validation generator reads
``Constraints.to_dict()`` for enforcement; both views come from the same
frozen value so the two artifacts cannot disagree on which constraints exist.
"""

from dataclasses import dataclass, fields
import re
from typing import Any

from .exceptions import SchemaParseError

# Raw keyword -> Constraints attribute
STRING_KEYWORDS = {
    "pattern": "pattern",
    "minLength": "min_length",
    "maxLength": "max_length",
}
NUMERIC_KEYWORDS = {
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
}
ARRAY_KEYWORDS = {
    "minItems": "min_items",
    "maxItems": "max_items",
}
CONSTRAINT_KEYWORDS = {**STRING_KEYWORDS, **NUMERIC_KEYWORDS, **ARRAY_KEYWORDS}

_COUNT_ATTRIBUTES = {"min_length", "max_length", "min_items", "max_items"}


@dataclass(frozen=True)
class Constraints:
    """Value constraints attached to a primitive or array type."""

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    exclusive_minimum: int | float | None = None
    exclusive_maximum: int | float | None = None
    min_items: int | None = None
    max_items: int | None = None

    def is_empty(self) -> bool:
        """Whether no constraint is set."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, Any]:
        """Return the set constraints keyed by attribute name, in declaration order."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def describe(self) -> list[str]:
        """Render the constraints as human-readable documentation lines."""
        lines = []

        if self.min_length is not None or self.max_length is not None:
            low = self.min_length if self.min_length is not None else 0
            high = self.max_length if self.max_length is not None else "unlimited"
            lines.append(f"Length: {low}-{high} characters")
        if self.pattern is not None:
            lines.append(f"Pattern: {self.pattern}")

        bounds = []
        if self.minimum is not None:
            bounds.append(f">= {self.minimum}")
        if self.exclusive_minimum is not None:
            bounds.append(f"> {self.exclusive_minimum}")
        if self.maximum is not None:
            bounds.append(f"<= {self.maximum}")
        if self.exclusive_maximum is not None:
            bounds.append(f"< {self.exclusive_maximum}")
        if bounds:
            lines.append(f"Range: {', '.join(bounds)}")

        if self.min_items is not None or self.max_items is not None:
            low = self.min_items if self.min_items is not None else 0
            high = self.max_items if self.max_items is not None else "unlimited"
            lines.append(f"Items: {low}-{high}")

        return lines


def extract_constraints(
    node: dict[str, Any], path: str, keywords: dict[str, str]
) -> Constraints:
    """Extract the constraints named by ``keywords`` from a raw schema node.

    Args:
        node: Raw schema node
        path: Location of the node, used in error messages
        keywords: Mapping of raw keyword to Constraints attribute

    Returns:
        Frozen Constraints value (possibly empty)

    Raises:
        SchemaParseError: If a constraint value has the wrong type or the
            pattern is not a valid regular expression
    """
    values: dict[str, Any] = {}

    for keyword, attribute in keywords.items():
        if keyword not in node:
            continue
        value = node[keyword]

        if attribute == "pattern":
            if not isinstance(value, str):
                raise SchemaParseError(f"{path}/{keyword}", "pattern must be a string")
            try:
                re.compile(value)
            except re.error as e:
                raise SchemaParseError(
                    f"{path}/{keyword}", f"invalid pattern {value!r}: {e}", e
                ) from e
        elif attribute in _COUNT_ATTRIBUTES:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise SchemaParseError(
                    f"{path}/{keyword}", f"{keyword} must be a non-negative integer"
                )
        elif isinstance(value, bool) and attribute.startswith("exclusive_"):
            # Draft-04 spelling: a boolean flag that turns the bound exclusive
            bound = attribute.removeprefix("exclusive_")
            if value and bound in node:
                values[attribute] = node[bound]
                values[bound] = None
            continue
        elif isinstance(value, bool) or not isinstance(value, int | float):
            raise SchemaParseError(f"{path}/{keyword}", f"{keyword} must be a number")

        values.setdefault(attribute, value)

    return Constraints(**values)
