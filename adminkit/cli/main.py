"""
adminkit CLI entry point.

Main command group for the adminkit CLI.
"""

from pathlib import Path
from typing import Optional

import click

from adminkit.src import __version__
from adminkit.src.config import AdminConfig, ConfigError
from adminkit.src.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="adminkit")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the configuration file.",
)
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], json_logs: bool) -> None:
    """
    adminkit - Admin pages for CRUD resources.

    List, view, create, edit and delete records of every registered
    entity through the admin REST API.

    Use 'adminkit COMMAND --help' for more information on a command.
    """
    ctx.ensure_object(dict)
    try:
        config = AdminConfig(config_path=config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    ctx.obj["config"] = config
    setup_logging(config.log_level, json_format=json_logs)


# Import and register subcommands
from adminkit.cli.config import config  # noqa: E402
from adminkit.cli.records import create, delete, edit, list_records, lookup, show  # noqa: E402

cli.add_command(config)
cli.add_command(list_records)
cli.add_command(show)
cli.add_command(create)
cli.add_command(edit)
cli.add_command(delete)
cli.add_command(lookup)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
