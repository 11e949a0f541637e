"""List installed packages."""

import asyncio

import click

from feedget import PackageProvider, setup_logging
from feedget.commands.utils import echo_package, exit_on_errors, make_request, version_options


@click.command()
@click.argument("name", required=False, default="")
@version_options
@click.option("--destination", "-d", type=click.Path(file_okay=False), help="Install folder")
@click.option("--verbose", "-v", is_flag=True, help="Show summaries and fastpath tokens")
@click.pass_context
def installed(
    ctx,
    name: str,
    required: str | None,
    minimum: str | None,
    maximum: str | None,
    destination: str | None,
    verbose: bool,
):
    """List installed packages whose id contains NAME."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(destination=destination)
    asyncio.run(
        PackageProvider().get_installed_packages(request, name, required, minimum, maximum)
    )

    if not request.packages and not request.had_errors:
        click.echo("No packages installed.")
    for identity in request.packages:
        echo_package(identity, verbose)
    exit_on_errors(request)
