"""CLI command definitions for feedget."""

import click

from feedget.commands.find import find, find_file
from feedget.commands.install import dependencies, download, install, uninstall
from feedget.commands.installed import installed
from feedget.commands.options import options
from feedget.commands.source import source


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.pass_context
def cli(ctx, debug):
    """Find, install and remove packages from NuGet-style feeds."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(find)
cli.add_command(find_file, name="find-file")
cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(download)
cli.add_command(dependencies)
cli.add_command(installed)
cli.add_command(source)
cli.add_command(options)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
