"""A feed backed by a local directory of archives or a single archive file."""

import asyncio
import fnmatch
import logging
import shutil
from pathlib import Path
from typing import AsyncIterator
from urllib.parse import unquote, urlparse

from ..archive import read_package
from ..errors import ArchiveError, FeedError
from ..models import ARCHIVE_EXTENSION, PackageMetadata
from ..versions import mark_latest
from .base import Feed, split_search_text

_logging = logging.getLogger(__name__)


def location_to_path(location: str) -> Path:
    """Turn a plain path or a file: URI into a Path."""
    if location.lower().startswith("file:"):
        return Path(unquote(urlparse(location).path))
    return Path(location).expanduser()


def _matches_term(package: PackageMetadata, term: str) -> bool:
    term = term.lower()
    if "*" in term or "?" in term:
        return fnmatch.fnmatchcase(package.id.lower(), term)
    return any(
        term in (field or "").lower()
        for field in (package.id, package.title, package.description, package.tags)
    )


def _has_tags(package: PackageMetadata, tags: list[str]) -> bool:
    package_tags = {t.lower() for t in package.tags.split()}
    return all(tag.lower() in package_tags for tag in tags)


class LocalFeed(Feed):
    """Archives found by scanning a directory tree, read once per feed."""

    def __init__(self, location: str):
        super().__init__(location)
        self.path = location_to_path(location)
        self._packages: list[PackageMetadata] | None = None

    def _scan(self) -> list[PackageMetadata]:
        if self.path.is_file():
            files = [self.path]
        elif self.path.is_dir():
            files = sorted(self.path.rglob(f"*{ARCHIVE_EXTENSION}"))
        else:
            raise FeedError(self.location, "path does not exist")

        packages = []
        for archive in files:
            try:
                packages.append(read_package(archive))
            except ArchiveError as e:
                _logging.warning(f"Skipping unreadable archive {archive}: {e}")
        return mark_latest(packages)

    async def packages(self) -> list[PackageMetadata]:
        if self._packages is None:
            self._packages = await asyncio.to_thread(self._scan)
        return self._packages

    async def find_by_id(self, package_id: str) -> list[PackageMetadata]:
        wanted = package_id.lower()
        return [p for p in await self.packages() if p.id.lower() == wanted]

    async def search(
        self, text: str, allow_prerelease: bool = False
    ) -> AsyncIterator[PackageMetadata]:
        terms, tags = split_search_text(text)
        for package in await self.packages():
            if not self.prerelease_allowed(package, allow_prerelease):
                continue
            if terms and not any(_matches_term(package, term) for term in terms):
                continue
            if tags and not _has_tags(package, tags):
                continue
            yield package

    async def fetch(self, package: PackageMetadata, dest_path: Path) -> Path:
        if not package.archive_path:
            raise FeedError(self.location, f"no archive for {package.full_name}")
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, package.archive_path, dest_path)
        return dest_path

    async def probe(self) -> bool:
        return self.path.exists()


__all__ = ["LocalFeed", "location_to_path"]
