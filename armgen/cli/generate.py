"""Single-document generation commands.

``armgen types``, ``armgen validators`` and ``armgen resource`` parse one
schema document and print one generated module to stdout or ``--output``.
"""

from pathlib import Path
import sys

import rich_click as click

from ..core.exceptions import NameCollisionError, SchemaParseError
from ..core.ir import SchemaIR
from ..core.logging import configure_logging
from ..core.naming import SymbolTable
from ..core.schema_parser import ParserOptions, SchemaParser
from ..generators import GeneratedFile, ResourceFactory, TypeGenerator, ValidationGenerator


def _configure(ctx: click.Context) -> None:
    options = ctx.find_object(dict) or {}
    configure_logging(
        log_level=options.get("log_level") or "WARNING",
        json_logs=options.get("json_logs", False),
    )


def _parse(document: Path, strip_expressions: bool) -> SchemaIR:
    parser = SchemaParser(ParserOptions(strip_expressions=strip_expressions))
    try:
        return parser.parse(document.read_bytes(), source_path=str(document))
    except OSError as e:
        click.echo(f"❌ Cannot read {document}: {e}", err=True)
        sys.exit(2)
    except SchemaParseError as e:
        click.echo(f"❌ {document}: {e}", err=True)
        sys.exit(1)


def _emit(generated: GeneratedFile, output: Path | None) -> None:
    if output is None:
        click.echo(generated.content, nl=False)
        return
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(generated.data)
    except OSError as e:
        click.echo(f"❌ Cannot write {output}: {e}", err=True)
        sys.exit(2)
    click.echo(f"✅ Wrote {generated.path} to {output}", err=True)


document_argument = click.argument(
    "document", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
output_option = click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="📄 **Write to FILE** instead of stdout",
)
expressions_option = click.option(
    "--strip-expressions/--keep-expressions",
    default=True,
    show_default=True,
    help="Drop template expression branches from unions",
)


@click.command("types")
@document_argument
@output_option
@expressions_option
@click.pass_context
def types_command(
    ctx: click.Context, document: Path, output: Path | None, strip_expressions: bool
) -> None:
    """🧩 **Generate typed declarations** for one schema document.

    **Examples:**

    ```bash
    armgen types Microsoft.Network.json
    armgen types Microsoft.Network.json -o out/resource_types.py
    ```
    """
    _configure(ctx)
    ir = _parse(document, strip_expressions)
    try:
        (generated,) = TypeGenerator().generate(ir)
    except NameCollisionError as e:
        click.echo(f"❌ {document}: {e}", err=True)
        sys.exit(1)
    _emit(generated, output)


@click.command("validators")
@document_argument
@output_option
@expressions_option
@click.pass_context
def validators_command(
    ctx: click.Context, document: Path, output: Path | None, strip_expressions: bool
) -> None:
    """✅ **Generate validators** for one schema document."""
    _configure(ctx)
    ir = _parse(document, strip_expressions)
    try:
        (generated,) = ValidationGenerator().generate(ir)
    except NameCollisionError as e:
        click.echo(f"❌ {document}: {e}", err=True)
        sys.exit(1)
    _emit(generated, output)


@click.command("resource")
@document_argument
@click.argument("index", type=click.IntRange(min=0))
@output_option
@expressions_option
@click.pass_context
def resource_command(
    ctx: click.Context,
    document: Path,
    index: int,
    output: Path | None,
    strip_expressions: bool,
) -> None:
    """🏗️ **Generate the L1 wrapper** of one resource.

    INDEX is the position of the resource in the document's
    ``resourceDefinitions``, starting at 0.
    """
    _configure(ctx)
    ir = _parse(document, strip_expressions)
    if index >= len(ir.resources):
        raise click.BadParameter(
            f"document has {len(ir.resources)} resources", param_hint="INDEX"
        )
    try:
        generated = ResourceFactory().generate_resource(ir, index, SymbolTable(ir))
    except NameCollisionError as e:
        click.echo(f"❌ {document}: {e}", err=True)
        sys.exit(1)
    _emit(generated, output)
