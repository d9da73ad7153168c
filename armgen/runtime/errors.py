"""Violation and result data structures used by generated validators.

Generated validator modules return ``ValidationResult`` values; generated
resource wrappers raise ``PropsValidationError`` when a property bag fails.
The message format defined here is shared by every generated artifact.
"""

from dataclasses import dataclass, field
from typing import Any

ROOT_PATH = "$"


@dataclass(frozen=True)
class Violation:
    """A single violated constraint.

    ``path`` is a dotted property path with ``[i]`` array indexes; the value
    itself is ``$``.
    """

    path: str
    constraint: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "constraint": self.constraint, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of validating one value.

    Contains the overall status and every violation found, in the order the
    value was traversed.
    """

    is_valid: bool
    violations: list[Violation] = field(default_factory=list)

    @classmethod
    def from_violations(cls, violations: list[Violation]) -> "ValidationResult":
        return cls(is_valid=not violations, violations=list(violations))

    @property
    def violation_count(self) -> int:
        """Number of violations."""
        return len(self.violations)

    def paths(self) -> list[str]:
        """Offending property paths in report order."""
        return [violation.path for violation in self.violations]

    def __bool__(self) -> bool:
        return self.is_valid

    def __str__(self) -> str:
        if self.is_valid:
            return "valid"
        lines = [f"invalid ({self.violation_count} violations)"]
        lines.extend(f"  - {violation}" for violation in self.violations)
        return "\n".join(lines)


class PropsValidationError(ValueError):
    """A generated resource wrapper was given a property bag that fails validation."""

    def __init__(self, resource_type: str, violations: list[Violation]):
        """Initialize props validation error.

        Args:
            resource_type: Fully-qualified resource type of the wrapper
            violations: Every violation reported by the validator
        """
        self.resource_type = resource_type
        self.violations = list(violations)
        super().__init__(format_violations(resource_type, self.violations))

    def to_dict(self) -> dict[str, Any]:
        return {
            "resourceType": self.resource_type,
            "violations": [violation.to_dict() for violation in self.violations],
        }


def format_violations(resource_type: str, violations: list[Violation]) -> str:
    """Render the ``PropsValidationError`` message."""
    lines = [
        f"{resource_type} props failed validation ({len(violations)} violations):"
    ]
    lines.extend(f"  - {violation}" for violation in violations)
    return "\n".join(lines)
