"""Command-line interface for the schema code generator."""

import rich_click as click

from .generate import resource_command, types_command, validators_command
from .sync import sync_command

# Configure rich-click styling
click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"
click.rich_click.STYLE_SWITCH = "bold blue"


@click.group(name="armgen")
@click.version_option(version="0.1.0", prog_name="armgen")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="📝 **Log level** for diagnostics written to stderr",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def main(ctx: click.Context, log_level: str | None, json_logs: bool) -> None:
    """⚙️ **armgen** - Typed Python constructs from resource-manager schemas.

    Generates typed declarations, validators and L1 resource wrappers from
    JSON schema documents, and keeps a generated tree in sync with a schema
    corpus.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["json_logs"] = json_logs


# Add commands to the group
main.add_command(types_command)
main.add_command(validators_command)
main.add_command(resource_command)
main.add_command(sync_command)


if __name__ == "__main__":
    main()


__all__ = ["main"]
