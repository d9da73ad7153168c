"""armgen - Typed Python constructs generated from resource-manager JSON schemas."""

__version__ = "0.1.0"

# Re-export main components for easy access
# Note: CLI components imported on-demand to avoid loading rich for library use
from .core import SchemaIR, SchemaParser, SyncSettings
from .generators import ResourceFactory, TypeGenerator, ValidationGenerator, generate_all

__all__ = [
    "ResourceFactory",
    "SchemaIR",
    "SchemaParser",
    "SyncSettings",
    "TypeGenerator",
    "ValidationGenerator",
    "__version__",
    "generate_all",
]
