"""Install, uninstall, download and dependency commands."""

import asyncio
import logging

import click

from feedget import PackageProvider, is_fastpath, setup_logging
from feedget.commands.utils import (
    best_match,
    echo_package,
    exit_on_errors,
    fail,
    make_request,
    source_options,
    version_options,
)
from feedget.config import SAVE_MODES
from feedget.request import ConsoleRequest

_logging = logging.getLogger(__name__)


async def resolve_reference(
    provider: PackageProvider,
    request: ConsoleRequest,
    reference: str,
    required: str | None = None,
    minimum: str | None = None,
    maximum: str | None = None,
) -> str | None:
    """Fastpath for REFERENCE: returned as is, or the best exact-id match of a find."""
    if is_fastpath(reference):
        return reference
    finder = ConsoleRequest(request.options, show_progress=False)
    await provider.find_package(finder, reference, required, minimum, maximum)
    exact = [i for i in finder.packages if i.name.lower() == reference.lower()]
    best = best_match(exact)
    if best is None:
        return None
    _logging.debug(f"Resolved '{reference}' to {best.name} {best.version}")
    return best.fast_path


async def resolve_installed(
    provider: PackageProvider, request: ConsoleRequest, reference: str, required: str | None
) -> list[str]:
    if is_fastpath(reference):
        return [reference]
    finder = ConsoleRequest(request.options, show_progress=False)
    await provider.get_installed_packages(finder, reference, required)
    return [i.fast_path for i in finder.packages if i.name.lower() == reference.lower()]


@click.command()
@click.argument("reference")
@version_options
@source_options
@click.option("--destination", "-d", type=click.Path(file_okay=False), help="Install folder")
@click.option("--skip-dependencies", is_flag=True, help="Install only the package itself")
@click.option(
    "--continue-on-failure", is_flag=True, help="Keep going when a dependency fails to install"
)
@click.option("--exclude-version", is_flag=True, help="Install into <id> instead of <id>.<version>")
@click.option(
    "--save-mode",
    type=click.Choice(SAVE_MODES),
    default="nupkg",
    help="Keep the archive, the manifest, or both",
)
@click.option("--quiet", "-q", is_flag=True, help="Hide progress output")
@click.pass_context
def install(
    ctx,
    reference: str,
    required: str | None,
    minimum: str | None,
    maximum: str | None,
    sources: tuple[str, ...],
    config_file: str | None,
    prerelease: bool,
    destination: str | None,
    skip_dependencies: bool,
    continue_on_failure: bool,
    exclude_version: bool,
    save_mode: str,
    quiet: bool,
):
    """Install a package by name or fastpath, with its missing dependencies."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(
        quiet=quiet,
        sources=list(sources),
        config_file=config_file,
        allow_prerelease_versions=prerelease,
        destination=destination,
        skip_dependencies=skip_dependencies,
        continue_on_failure=continue_on_failure,
        exclude_version=exclude_version,
        package_save_mode=save_mode,
    )
    asyncio.run(run_install(request, reference, required, minimum, maximum))


async def run_install(request, reference, required, minimum, maximum):
    provider = PackageProvider()
    fast_path = await resolve_reference(provider, request, reference, required, minimum, maximum)
    if fast_path is None:
        fail(f"package '{reference}' not found")

    ok = await provider.install_package(request, fast_path)
    for identity in request.packages:
        click.echo(f"Installed {identity.name} {identity.version}")
    if not ok:
        exit_on_errors(request)
        fail(f"installation of '{reference}' did not complete")


@click.command()
@click.argument("reference")
@click.option("--version", "required", help="Exact installed version to remove")
@click.option("--destination", "-d", type=click.Path(file_okay=False), help="Install folder")
@click.pass_context
def uninstall(ctx, reference: str, required: str | None, destination: str | None):
    """Remove an installed package by name or fastpath."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(destination=destination)
    asyncio.run(run_uninstall(request, reference, required))


async def run_uninstall(request, reference, required):
    provider = PackageProvider()
    fast_paths = await resolve_installed(provider, request, reference, required)
    if not fast_paths:
        fail(f"package '{reference}' is not installed")
    for fast_path in fast_paths:
        await provider.uninstall_package(request, fast_path)
    for identity in request.packages:
        click.echo(f"Uninstalled {identity.name} {identity.version}")
    exit_on_errors(request)


@click.command()
@click.argument("reference")
@click.argument("location", type=click.Path(dir_okay=False))
@version_options
@source_options
@click.pass_context
def download(
    ctx,
    reference: str,
    location: str,
    required: str | None,
    minimum: str | None,
    maximum: str | None,
    sources: tuple[str, ...],
    config_file: str | None,
    prerelease: bool,
):
    """Save the archive of a package to LOCATION without installing it."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(
        sources=list(sources), config_file=config_file, allow_prerelease_versions=prerelease
    )
    asyncio.run(run_download(request, reference, location, required, minimum, maximum))


async def run_download(request, reference, location, required, minimum, maximum):
    provider = PackageProvider()
    fast_path = await resolve_reference(provider, request, reference, required, minimum, maximum)
    if fast_path is None:
        fail(f"package '{reference}' not found")
    saved = await provider.download_package(request, fast_path, location)
    exit_on_errors(request)
    if saved is not None:
        click.echo(f"Saved {saved}")


@click.command()
@click.argument("reference")
@version_options
@source_options
@click.option("--verbose", "-v", is_flag=True, help="Show summaries and fastpath tokens")
@click.pass_context
def dependencies(
    ctx,
    reference: str,
    required: str | None,
    minimum: str | None,
    maximum: str | None,
    sources: tuple[str, ...],
    config_file: str | None,
    prerelease: bool,
    verbose: bool,
):
    """List the packages a package depends on."""
    setup_logging(ctx.obj.get("debug", False))
    request = make_request(
        sources=list(sources), config_file=config_file, allow_prerelease_versions=prerelease
    )
    asyncio.run(run_dependencies(request, reference, required, minimum, maximum, verbose))


async def run_dependencies(request, reference, required, minimum, maximum, verbose):
    provider = PackageProvider()
    fast_path = await resolve_reference(provider, request, reference, required, minimum, maximum)
    if fast_path is None:
        fail(f"package '{reference}' not found")
    await provider.get_package_dependencies(request, fast_path)
    for identity in request.packages:
        echo_package(identity, verbose)
    exit_on_errors(request)
