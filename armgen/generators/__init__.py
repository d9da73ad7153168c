"""Source generators consuming schema IR."""

from ..core.ir import SchemaIR
from ..core.naming import SymbolTable
from .base import GeneratedFile, output_package
from .resource_factory import ResourceFactory
from .type_generator import TypeGenerator
from .validation_generator import ConstraintSchemaBuilder, ValidationGenerator


def generate_all(ir: SchemaIR) -> tuple[GeneratedFile, ...]:
    """Run every generator over one IR with a shared symbol table.

    Returns:
        Types module, validators module, wrapper modules and package ``__init__``

    Raises:
        NameCollisionError: If any generator derives a colliding symbol
    """
    symbols = SymbolTable(ir)
    return (
        *TypeGenerator().generate(ir, symbols),
        *ValidationGenerator().generate(ir, symbols),
        *ResourceFactory().generate(ir, symbols),
    )


__all__ = [
    "ConstraintSchemaBuilder",
    "GeneratedFile",
    "ResourceFactory",
    "TypeGenerator",
    "ValidationGenerator",
    "generate_all",
    "output_package",
]
