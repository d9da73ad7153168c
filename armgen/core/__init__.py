"""Core functionality: schema parsing, IR, naming, configuration and logging."""

from .config import SyncSettings
from .constraints import Constraints, extract_constraints
from .exceptions import (
    ArmgenError,
    DanglingReferenceError,
    NameCollisionError,
    OutputCollisionError,
    SchemaParseError,
    SyncEnvironmentError,
)
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
)
from .logging import (
    OperationTimer,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from .naming import SymbolTable
from .schema_parser import ParserOptions, SchemaParser

# Export all components
__all__ = [
    # Errors
    "ArmgenError",
    # IR
    "ArrayType",
    "Constraints",
    "DanglingReferenceError",
    "EnumType",
    "NameCollisionError",
    "ObjectType",
    # Logging
    "OperationTimer",
    "OutputCollisionError",
    "ParseWarning",
    # Parsing
    "ParserOptions",
    "PrimitiveType",
    "PropertyDefinition",
    "ReferenceType",
    "ResourceDefinition",
    "SchemaIR",
    "SchemaMetadata",
    "SchemaParseError",
    "SchemaParser",
    "SymbolTable",
    "SyncEnvironmentError",
    # Configuration
    "SyncSettings",
    "TypeDefinition",
    "UnionType",
    "bind_context",
    "clear_context",
    "configure_logging",
    "extract_constraints",
    "get_logger",
]
