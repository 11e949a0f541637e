"""Bundled install executor: places one package from a feed into a folder.

Run as ``python -m feedget.extract install <id> -Version <v> -Source <s>
-OutputDirectory <dir> [-PackageSaveMode <mode>] [-ExcludeVersion]``. It
reports its outcome on stdout in the line format the orchestrator parses.
"""

import asyncio
import sys
import tempfile
from pathlib import Path

import click

from .archive import extract_package
from .config import SAVE_MODES
from .errors import ArchiveError, FeedError
from .feeds import create_feed
from .models import ARCHIVE_EXTENSION


def package_folder(
    output_directory: Path, package_id: str, version: str, exclude_version: bool
) -> Path:
    return output_directory / (package_id if exclude_version else f"{package_id}.{version}")


async def run_extract(
    package_id: str,
    version: str,
    source: str,
    output_directory: Path,
    save_mode: str,
    exclude_version: bool,
    detailed: bool,
) -> bool:
    label = f"{package_id} {version}"
    folder = package_folder(output_directory, package_id, version, exclude_version)
    if folder.is_dir() and any(folder.glob(f"*{ARCHIVE_EXTENSION}")):
        click.echo(f"'{label}' already installed.")
        return True

    feed = create_feed(source)
    package = await feed.find_package(package_id, version)
    if package is None:
        click.echo(f"Unable to find package '{label}' in '{source}'.", err=True)
        click.echo(f"'{label}' not installed.")
        return False

    if detailed:
        click.echo(f"Installing '{package.id} {package.version}' to '{folder}'.")
    with tempfile.TemporaryDirectory(prefix="feedget-") as tmp:
        archive = await feed.fetch(package, Path(tmp) / f"{package.full_name}{ARCHIVE_EXTENSION}")
        await asyncio.to_thread(extract_package, archive, folder, save_mode)

    click.echo(f"Successfully installed '{label}'.")
    return True


@click.group()
def cli():
    """Install executor used by feedget."""


@cli.command()
@click.argument("package_id")
@click.option("-Version", "version", required=True, help="Exact version to install")
@click.option("-Source", "source", required=True, help="Feed location to install from")
@click.option(
    "-OutputDirectory",
    "output_directory",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Folder packages are installed into",
)
@click.option(
    "-PackageSaveMode",
    "save_mode",
    default="nupkg",
    type=click.Choice(SAVE_MODES),
    help="Keep the archive, the manifest, or both",
)
@click.option(
    "-Verbosity",
    "verbosity",
    default="normal",
    type=click.Choice(["quiet", "normal", "detailed"]),
)
@click.option(
    "-ExcludeVersion", "exclude_version", is_flag=True, help="Omit the version from the folder name"
)
def install(
    package_id: str,
    version: str,
    source: str,
    output_directory: Path,
    save_mode: str,
    verbosity: str,
    exclude_version: bool,
):
    """Install PACKAGE_ID from a feed."""
    try:
        ok = asyncio.run(
            run_extract(
                package_id,
                version,
                source,
                output_directory,
                save_mode,
                exclude_version,
                verbosity == "detailed",
            )
        )
    except (FeedError, ArchiveError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        click.echo(f"'{package_id} {version}' not installed.")
        sys.exit(1)
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
