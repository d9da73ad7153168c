"""Base class for generated resource wrappers (L1 constructs)."""

from collections.abc import Mapping
import copy
from enum import Enum
import json
from typing import Any, ClassVar

from .errors import PropsValidationError, ValidationResult


def to_template_value(value: Any) -> Any:
    """Convert a property value into plain JSON data.

    Enum members become their values; mappings and sequences are copied.
    """
    if isinstance(value, Enum):
        return to_template_value(value.value)
    if isinstance(value, Mapping):
        return {str(key): to_template_value(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_template_value(item) for item in value]
    return value


class DeploymentScope(str, Enum):
    """Scope a resource is deployed at."""

    TENANT = "tenant"
    MANAGEMENT_GROUP = "managementGroup"
    SUBSCRIPTION = "subscription"
    RESOURCE_GROUP = "resourceGroup"


class ResourceConstruct:
    """A validated property bag for one resource type and API version.

    Subclasses are generated. They set the identity constants, provide
    ``validate_props`` and implement ``to_template``. Construction either
    succeeds with a fully validated bag or raises ``PropsValidationError``.
    """

    RESOURCE_TYPE: ClassVar[str] = ""
    API_VERSION: ClassVar[str] = ""
    DEPLOYMENT_SCOPE: ClassVar[DeploymentScope] = DeploymentScope.RESOURCE_GROUP
    PROPERTY_ORDER: ClassVar[tuple[str, ...]] = ()

    def __init__(self, props: Mapping[str, Any]):
        """Validate and store a property bag.

        Args:
            props: Resource properties

        Raises:
            PropsValidationError: If the bag violates any constraint
        """
        result = self.validate_props(props)
        if not result.is_valid:
            raise PropsValidationError(self.RESOURCE_TYPE, result.violations)
        self._props: dict[str, Any] = copy.deepcopy(dict(props))

    @staticmethod
    def validate_props(props: Any) -> ValidationResult:
        raise NotImplementedError

    @property
    def props(self) -> dict[str, Any]:
        """A copy of the accepted property bag."""
        return copy.deepcopy(self._props)

    @property
    def identity(self) -> tuple[str, str]:
        """``(resource type, API version)``."""
        return (self.RESOURCE_TYPE, self.API_VERSION)

    def to_template(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_json(self, indent: int = 2) -> str:
        """Render the template as JSON text."""
        return json.dumps(self.to_template(), indent=indent, ensure_ascii=False)

    def _has(self, name: str) -> bool:
        return self._props.get(name) is not None

    def _emit(self, name: str) -> Any:
        return to_template_value(self._props[name])

    def _extra_properties(self) -> dict[str, Any]:
        """Accepted properties the schema does not declare, sorted by name."""
        return {
            key: to_template_value(self._props[key])
            for key in sorted(self._props)
            if key not in self.PROPERTY_ORDER and self._props[key] is not None
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(resource_type={self.RESOURCE_TYPE!r}, api_version={self.API_VERSION!r})"
