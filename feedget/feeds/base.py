"""The feed interface the search engine and installer depend on."""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator

from ..models import PackageMetadata
from ..versions import VersionRange, is_prerelease, versions_equal

_TAG_TOKEN = re.compile(r"^tag:(.+)$", re.IGNORECASE)


def split_search_text(text: str | None) -> tuple[list[str], list[str]]:
    """Split search text into (terms, tags); 'tag:x' tokens become tags."""
    terms: list[str] = []
    tags: list[str] = []
    for token in (text or "").split():
        match = _TAG_TOKEN.match(token)
        if match:
            tags.append(match.group(1))
        else:
            terms.append(token)
    return terms, tags


class Feed(ABC):
    """A source of package metadata and archives."""

    def __init__(self, location: str):
        self.location = location

    @abstractmethod
    async def find_by_id(self, package_id: str) -> list[PackageMetadata]:
        """Every version of the package with this id, in feed order."""

    @abstractmethod
    def search(
        self, text: str, allow_prerelease: bool = False
    ) -> AsyncIterator[PackageMetadata]:
        """Lazily yield packages matching free text ('tag:x' narrows by tag)."""

    @abstractmethod
    async def fetch(self, package: PackageMetadata, dest_path: Path) -> Path:
        """Write the package archive to dest_path and return it."""

    @abstractmethod
    async def probe(self) -> bool:
        """True when the feed is reachable."""

    async def find_by_range(
        self,
        package_id: str,
        range_spec: str,
        allow_prerelease: bool = False,
        allow_unlisted: bool = False,
    ) -> list[PackageMetadata]:
        """Versions of the package inside a bracketed range.

        Raises:
            ValueError: If range_spec is not a valid range
        """
        version_range = VersionRange.parse(range_spec)
        return [
            package
            for package in await self.find_by_id(package_id)
            if (allow_unlisted or package.listed)
            and version_range.contains(package.version, allow_prerelease)
        ]

    async def find_package(self, package_id: str, version: str) -> PackageMetadata | None:
        for package in await self.find_by_id(package_id):
            if versions_equal(package.version, version):
                return package
        return None

    @staticmethod
    def prerelease_allowed(package: PackageMetadata, allow_prerelease: bool) -> bool:
        return allow_prerelease or not is_prerelease(package.version)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.location!r})"


__all__ = ["Feed", "split_search_text"]
