"""Runtime support imported by generated validator and resource modules.

Generated code depends only on this package, never on the parser or the
generators.
"""

from .errors import (
    ROOT_PATH,
    PropsValidationError,
    ValidationResult,
    Violation,
    format_violations,
)
from .resource import DeploymentScope, ResourceConstruct, to_template_value
from .validators import SchemaValidator, json_type, validate_value

__all__ = [
    "DeploymentScope",
    "PropsValidationError",
    "ROOT_PATH",
    "ResourceConstruct",
    "SchemaValidator",
    "ValidationResult",
    "Violation",
    "format_violations",
    "json_type",
    "to_template_value",
    "validate_value",
]
