"""Walking a package's dependency graph for what still needs installing."""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from ..archive import is_package_file, read_package
from ..errors import ArchiveError, DependencyResolutionError
from ..models import ARCHIVE_EXTENSION, PackageDependency, PackageItem, PackageSource
from ..search import PackageSearch
from ..versions import versions_equal

_logging = logging.getLogger(__name__)

InstalledProbe = Callable[[str, str], Awaitable[bool]]


def _scan_installed(destination: Path, package_id: str, version: str) -> bool:
    if not destination.is_dir():
        return False
    for archive in destination.rglob(f"*{ARCHIVE_EXTENSION}"):
        if not is_package_file(archive):
            continue
        try:
            package = read_package(archive)
        except ArchiveError as e:
            _logging.debug(f"Ignoring unreadable archive {archive}: {e}")
            continue
        if package.id.lower() == package_id.lower() and versions_equal(
            package.version, version
        ):
            return True
    return False


async def is_package_installed(destination: Path, package_id: str, version: str) -> bool:
    """True when an archive of this id and version sits anywhere under destination."""
    return await asyncio.to_thread(_scan_installed, Path(destination), package_id, version)


class DependencyWalker:
    """Finds the uninstalled dependency closure of a package.

    ``walk`` returns dependencies in discovery order: each needed package
    comes before its own dependencies. ``install_order`` is the reverse, so
    every package follows everything it depends on.

    Nothing is memoized. A package reachable along two paths is probed and
    emitted twice; each probe checks the destination afresh.
    """

    def __init__(
        self,
        search: PackageSearch,
        provider_name: str,
        is_installed: InstalledProbe,
    ):
        self.search = search
        self.provider_name = provider_name
        self.is_installed = is_installed

    def dependency_reference(self, dependency: PackageDependency) -> str:
        return f"{self.provider_name.lower()}:{dependency.id}/{dependency.version_spec or ''}"

    async def candidates(
        self, dependency: PackageDependency, sources: list[PackageSource]
    ) -> list[PackageItem]:
        if dependency.version_spec is None:
            items = []
            async for item in self.search.get_package_by_id(dependency.id, sources=sources):
                items.append(item)
            return items
        return await self.search.find_by_id_and_range(
            dependency.id, dependency.version_spec, allow_unlisted=True, sources=sources
        )

    async def walk(self, root: PackageItem) -> list[PackageItem]:
        """Needed dependencies of root, each before its own dependencies.

        Raises:
            DependencyResolutionError: If a dependency has no candidate in
                any selected source, or depends on itself through a cycle.
        """
        sources = await self.search.resolver.selected_sources(root.sources)
        needed: list[PackageItem] = []

        def frame(item: PackageItem, path: tuple):
            deps = item.package.dependencies if item.package is not None else []
            return item, iter(deps), path

        stack = [frame(root, ((root.id.lower(), root.version.lower()),))]
        while stack:
            parent, dependencies, path = stack[-1]
            dependency = next(dependencies, None)
            if dependency is None:
                stack.pop()
                continue

            candidates = await self.candidates(dependency, sources)
            if not candidates:
                raise DependencyResolutionError(
                    parent.get_canonical_id(self.provider_name),
                    self.dependency_reference(dependency),
                )

            satisfied = False
            for candidate in candidates:
                if await self.is_installed(candidate.id, candidate.version):
                    satisfied = True
                    break
            if satisfied:
                _logging.debug(f"Dependency {dependency.id} already installed")
                continue

            chosen = candidates[0]
            key = (chosen.id.lower(), chosen.version.lower())
            if key in path:
                raise DependencyResolutionError(
                    parent.get_canonical_id(self.provider_name),
                    self.dependency_reference(dependency),
                )
            needed.append(chosen)
            stack.append(frame(chosen, path + (key,)))

        return needed

    async def install_order(self, root: PackageItem) -> list[PackageItem]:
        return list(reversed(await self.walk(root)))


__all__ = ["DependencyWalker", "is_package_installed"]
