"""Package source registration commands."""

import asyncio

import click

from feedget import PackageProvider, setup_logging
from feedget.commands.utils import exit_on_errors, make_request


@click.group()
def source():
    """Manage registered package sources."""


@source.command()
@click.argument("name")
@click.argument("location", required=False)
@click.option("--trusted", is_flag=True, help="Mark packages from this source as trusted")
@click.option("--skip-validate", is_flag=True, help="Register without checking the location")
@click.option("--update", "is_update", is_flag=True, help="Replace an existing source")
@click.option("--config", "config_file", help="Registered sources file to use")
@click.pass_context
def add(
    ctx,
    name: str,
    location: str | None,
    trusted: bool,
    skip_validate: bool,
    is_update: bool,
    config_file: str | None,
):
    """Register NAME at LOCATION (LOCATION defaults to NAME)."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(
        skip_validate=skip_validate, is_update=is_update, config_file=config_file
    )
    asyncio.run(PackageProvider().add_package_source(request, name, location or name, trusted))
    for registered, _ in request.sources:
        click.echo(f"Registered '{registered.name}' at {registered.location}")
    exit_on_errors(request)


@source.command()
@click.argument("name")
@click.option("--config", "config_file", help="Registered sources file to use")
@click.pass_context
def remove(ctx, name: str, config_file: str | None):
    """Unregister a source by name or location."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(config_file=config_file)
    asyncio.run(PackageProvider().remove_package_source(request, name))
    for removed, _ in request.sources:
        click.echo(f"Removed '{removed.name}'")
    exit_on_errors(request)


@source.command(name="list")
@click.option("--source", "-s", "sources", multiple=True, help="Resolve only these sources")
@click.option("--config", "config_file", help="Registered sources file to use")
@click.pass_context
def list_sources(ctx, sources: tuple[str, ...], config_file: str | None):
    """List registered sources, or resolve the given ones."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(sources=list(sources), config_file=config_file)
    asyncio.run(PackageProvider().resolve_package_sources(request))

    if not request.sources and not request.had_errors:
        click.echo("No package sources registered.")
    for resolved, is_registered in request.sources:
        flags = []
        if is_registered:
            flags.append("registered")
        if resolved.trusted:
            flags.append("trusted")
        if resolved.is_validated:
            flags.append("validated")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"{resolved.name}: {resolved.location}{suffix}")
    exit_on_errors(request)
