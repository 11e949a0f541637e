"""Find commands: search feeds by name or inspect a package file."""

import asyncio

import click

from feedget import PackageProvider, setup_logging
from feedget.commands.utils import (
    echo_package,
    exit_on_errors,
    fail,
    make_request,
    source_options,
    version_options,
)


@click.command()
@click.argument("name", required=False, default="")
@version_options
@source_options
@click.option("--tag", "-t", "tags", multiple=True, help="Only packages carrying this tag")
@click.option("--contains", help="Only packages whose id or description contains this text")
@click.option("--all-versions", is_flag=True, help="List every version, not only the latest")
@click.option("--verbose", "-v", is_flag=True, help="Show summaries and fastpath tokens")
@click.pass_context
def find(
    ctx,
    name: str,
    required: str | None,
    minimum: str | None,
    maximum: str | None,
    sources: tuple[str, ...],
    config_file: str | None,
    prerelease: bool,
    tags: tuple[str, ...],
    contains: str | None,
    all_versions: bool,
    verbose: bool,
):
    """Find packages by id, search term or wildcard pattern."""
    debug = ctx.obj.get("debug", False)
    setup_logging(debug)
    request = make_request(
        sources=list(sources),
        config_file=config_file,
        allow_prerelease_versions=prerelease,
        filter_on_tag=list(tags),
        contains=contains,
        all_versions=all_versions,
    )
    asyncio.run(PackageProvider().find_package(request, name, required, minimum, maximum))

    if not request.packages and not request.had_errors:
        click.echo(f"No packages found matching '{name}'.")
    for identity in request.packages:
        echo_package(identity, verbose)
    exit_on_errors(request)


@click.command(name="find-file")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--verbose", "-v", is_flag=True, help="Show summary and fastpath token")
@click.pass_context
def find_file(ctx, file: str, verbose: bool):
    """Show the package contained in a local archive FILE."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request()
    asyncio.run(PackageProvider().find_package_by_file(request, file))

    if not request.packages and not request.had_errors:
        fail(f"'{file}' is not a package file")
    for identity in request.packages:
        echo_package(identity, verbose)
        for dependency in identity.dependencies:
            click.echo(f"    depends on {dependency}")
    exit_on_errors(request)
