"""Shared helpers for CLI commands."""

import sys

import click

from feedget import ConsoleRequest, RequestOptions, format_error
from feedget.request import SoftwareIdentity
from feedget.versions import version_sort_key


def source_options(func):
    """Options that pick feeds and narrow package lookups."""
    decorators = [
        click.option(
            "--source", "-s", "sources", multiple=True, help="Source name, location, URL or path"
        ),
        click.option("--config", "config_file", help="Registered sources file to use"),
        click.option("--prerelease", is_flag=True, help="Allow prerelease versions"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def version_options(func):
    decorators = [
        click.option("--version", "required", help="Exact version or bracketed range"),
        click.option("--min", "minimum", help="Minimum version (inclusive)"),
        click.option("--max", "maximum", help="Maximum version (inclusive)"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def make_request(quiet: bool = False, **options) -> ConsoleRequest:
    """Build a console request, turning a bad option value into a usage error."""
    try:
        request_options = RequestOptions(**{k: v for k, v in options.items() if v is not None})
    except ValueError as e:
        raise click.BadParameter(str(e))
    return ConsoleRequest(request_options, show_progress=not quiet)


def best_match(identities: list[SoftwareIdentity]) -> SoftwareIdentity | None:
    """Highest version among found packages."""
    if not identities:
        return None
    return max(identities, key=lambda i: version_sort_key(i.version))


def echo_package(identity: SoftwareIdentity, verbose: bool = False) -> None:
    line = f"{identity.name} {identity.version}"
    if identity.source:
        line += f"  [{identity.source}]"
    click.echo(line)
    if verbose:
        if identity.summary:
            click.echo(f"    {identity.summary}")
        click.echo(f"    fastpath: {identity.fast_path}")


def exit_on_errors(request: ConsoleRequest) -> None:
    if request.had_errors:
        sys.exit(1)


def fail(message: str) -> None:
    click.echo(format_error(message), err=True)
    sys.exit(1)
