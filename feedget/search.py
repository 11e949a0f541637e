"""Finding packages by id or search term across the selected sources.

Every lookup runs once per source concurrently; results are merged in
whatever order the sources produce them. A source that fails contributes
nothing and is reported as a warning, never affecting the others.
"""

import asyncio
import fnmatch
import logging
import re
from contextlib import aclosing
from typing import AsyncIterator, Callable, Iterable

from .archive import is_package_file, read_package
from .config import ProviderConfig
from .errors import ArchiveError, FeedError, Messages, SourceResolutionError
from .fastpath import decode_fastpath
from .feeds import Feed, create_feed
from .models import PackageItem, PackageMetadata, PackageSource
from .request import Request
from .sources import SourceResolver
from .versions import (
    filter_by_version,
    is_prerelease,
    is_range_expression,
    latest_versions,
    version_sort_key,
)

WILDCARD_CHARACTERS = "*?["

_BRACKET_SET = re.compile(r"\[.*?\]")

_logging = logging.getLogger(__name__)

SourceWorker = Callable[[PackageSource], AsyncIterator[PackageItem]]


def has_wildcards(name: str | None) -> bool:
    return bool(name) and any(c in name for c in WILDCARD_CHARACTERS)


def flatten_wildcards(name: str) -> str:
    """Reduce a wildcard pattern to what feeds understand: only '*'."""
    return _BRACKET_SET.sub("*", name).replace("?", "*")


def wildcard_match(pattern: str, value: str) -> bool:
    return fnmatch.fnmatchcase(value.lower(), pattern.lower())


class PackageSearch:
    """Package lookups for one request."""

    def __init__(
        self,
        request: Request,
        resolver: SourceResolver,
        config: ProviderConfig | None = None,
        feed_factory: Callable[[PackageSource], Feed] = create_feed,
    ):
        self.request = request
        self.resolver = resolver
        self.config = config or ProviderConfig()
        self.feed_factory = feed_factory
        self.found_package_by_id = False
        self._feeds: dict[str, Feed] = {}

    @property
    def options(self):
        return self.request.options

    def feed_for(self, source: PackageSource) -> Feed:
        key = source.location.lower()
        if key not in self._feeds:
            self._feeds[key] = self.feed_factory(source)
        return self._feeds[key]

    def make_item(
        self,
        source: PackageSource,
        package: PackageMetadata,
        sources: list[str] | None = None,
    ) -> PackageItem:
        return PackageItem(package, source, sources=sources)

    async def fan_out(
        self, sources: Iterable[PackageSource], worker: SourceWorker
    ) -> AsyncIterator[PackageItem]:
        """Run worker once per source concurrently and merge the results."""
        queue: asyncio.Queue = asyncio.Queue()
        finished = object()

        async def run(source: PackageSource) -> None:
            try:
                async with aclosing(worker(source)) as items:
                    async for item in items:
                        await queue.put(item)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                _logging.debug(f"Source '{source.name}' failed: {type(e).__name__}: {e}")
                self.request.warning(Messages.FEED_UNAVAILABLE, source.name, e)
            finally:
                queue.put_nowait(finished)

        tasks = [asyncio.create_task(run(source)) for source in sources]
        remaining = len(tasks)
        try:
            while remaining:
                item = await queue.get()
                if item is finished:
                    remaining -= 1
                    continue
                yield item
                if self.request.is_canceled:
                    break
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _sources(self, sources: list[PackageSource] | None) -> list[PackageSource]:
        if sources is not None:
            return sources
        return await self.resolver.selected_sources()

    def _filter_tags(self, packages: list[PackageMetadata]) -> list[PackageMetadata]:
        tags = [t for t in self.options.filter_on_tag if t]
        if not tags:
            return packages
        return [p for p in packages if any(t.lower() in p.tags.lower() for t in tags)]

    def _filter_contains(self, packages: list[PackageMetadata]) -> list[PackageMetadata]:
        text = (self.options.contains or "").lower()
        if not text:
            return packages
        return [p for p in packages if text in p.description.lower() or text in p.id.lower()]

    def _wants_latest_only(self, required, minimum, maximum) -> bool:
        return not self.options.all_versions and not (required or minimum or maximum)

    async def find_in_source(
        self,
        source: PackageSource,
        name: str,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
        allow_unlisted: bool = False,
    ) -> AsyncIterator[PackageItem]:
        """Packages with exactly this id in one source.

        A bracketed range in required goes straight to the feed's range
        query; tag, contains and version filters do not apply to it.
        """
        feed = self.feed_for(source)
        allow_prerelease = self.options.allow_prerelease_versions

        if is_range_expression(required):
            try:
                packages = await feed.find_by_range(
                    name, required, allow_prerelease, allow_unlisted
                )
            except ValueError as e:
                _logging.debug(f"Not a usable version range '{required}': {e}")
            else:
                for package in packages:
                    yield self.make_item(source, package)
                return

        packages = await feed.find_by_id(name)
        if packages:
            self.found_package_by_id = True

        if not allow_unlisted:
            packages = [p for p in packages if p.listed]
        if self._wants_latest_only(required, minimum, maximum):
            packages = latest_versions(packages, allow_prerelease)
        elif not allow_prerelease and not required:
            packages = [p for p in packages if not is_prerelease(p.version)]

        packages = self._filter_contains(packages)
        packages = self._filter_tags(packages)
        for package in filter_by_version(packages, required, minimum, maximum):
            yield self.make_item(source, package)

    def get_package_by_id(
        self,
        name: str,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
        allow_unlisted: bool = False,
        sources: list[PackageSource] | None = None,
    ) -> AsyncIterator[PackageItem]:
        async def iterate():
            if not name:
                return
            selected = await self._sources(sources)
            async with aclosing(
                self.fan_out(
                    selected,
                    lambda source: self.find_in_source(
                        source, name, required, minimum, maximum, allow_unlisted
                    ),
                )
            ) as items:
                async for item in items:
                    yield item

        return iterate()

    def _search_criteria(self, name: str | None) -> str:
        criteria = self.options.contains or name or ""
        for tag in self.options.filter_on_tag:
            if tag:
                criteria += f" tag:{tag}"
        return criteria

    async def search_source(
        self,
        source: PackageSource,
        name: str | None,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
    ) -> AsyncIterator[PackageItem]:
        """Free-text search of one source, narrowed by the request's filters."""
        feed = self.feed_for(source)
        allow_prerelease = self.options.allow_prerelease_versions

        if has_wildcards(name):
            term = flatten_wildcards(name)
            package_ids: list[str] = []
            async with aclosing(feed.search(term, allow_prerelease)) as results:
                async for package in results:
                    if wildcard_match(name, package.id) and not any(
                        package.id.lower() == i.lower() for i in package_ids
                    ):
                        package_ids.append(package.id)
            for package_id in package_ids:
                async with aclosing(
                    self.find_in_source(source, package_id, required, minimum, maximum)
                ) as items:
                    async for item in items:
                        yield item
            return

        criteria = self._search_criteria(name)
        self.request.debug("Searching repository '{0}' for '{1}'", source.location, criteria)
        packages: list[PackageMetadata] = []
        async with aclosing(feed.search(criteria, allow_prerelease)) as results:
            async for package in results:
                packages.append(package)
                if self.request.is_canceled:
                    return

        if self._wants_latest_only(required, minimum, maximum):
            packages = latest_versions(packages, allow_prerelease)
        if name:
            packages = [p for p in packages if name.lower() in p.id.lower()]
        packages = self._filter_tags(packages)
        packages = self._filter_contains(packages)
        for package in filter_by_version(packages, required, minimum, maximum):
            yield self.make_item(source, package)

    def search_for_packages(
        self,
        name: str | None,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
        sources: list[PackageSource] | None = None,
    ) -> AsyncIterator[PackageItem]:
        async def iterate():
            selected = await self._sources(sources)
            async with aclosing(
                self.fan_out(
                    selected,
                    lambda source: self.search_source(source, name, required, minimum, maximum),
                )
            ) as items:
                async for item in items:
                    yield item

        return iterate()

    async def find_by_id_and_range(
        self,
        name: str,
        version_spec: str,
        allow_unlisted: bool = True,
        sources: list[PackageSource] | None = None,
    ) -> list[PackageItem]:
        """Every candidate inside version_spec, highest version first."""
        if not name:
            return []
        allow_prerelease = self.options.allow_prerelease_versions

        async def worker(source: PackageSource):
            feed = self.feed_for(source)
            for package in await feed.find_by_range(
                name, version_spec, allow_prerelease, allow_unlisted
            ):
                yield self.make_item(source, package)

        selected = await self._sources(sources)
        items = []
        async with aclosing(self.fan_out(selected, worker)) as results:
            async for item in results:
                items.append(item)
        return sorted(items, key=lambda i: version_sort_key(i.version), reverse=True)

    async def get_package_by_file_path(self, file_path: str) -> PackageItem | None:
        """Item for a local archive, or None when the file is not a package."""
        if not is_package_file(
            file_path, self.config.supported_extensions, self.config.magic_signatures
        ):
            return None
        try:
            package = await asyncio.to_thread(read_package, file_path)
            source = await self.resolver.resolve_package_source(file_path)
        except (ArchiveError, SourceResolutionError) as e:
            self.request.debug("Unable to read package file '{0}': {1}", file_path, e)
            return None
        return PackageItem(
            package, source, is_package_file=True, full_path=file_path
        )

    async def get_package_by_fastpath(self, fast_path: str) -> PackageItem | None:
        """Re-identify a package from a fastpath token; None when it cannot."""
        location, package_id, version, sources, success = decode_fastpath(fast_path)
        if not success or not package_id:
            return None

        try:
            source = await self.resolver.resolve_package_source(location)
        except SourceResolutionError as e:
            self.request.debug("Fastpath source '{0}' did not resolve: {1}", location, e)
            return None

        if source.is_source_a_file:
            return await self.get_package_by_file_path(source.location)

        try:
            package = await self.feed_for(source).find_package(package_id, version)
        except FeedError as e:
            _logging.debug(f"Fastpath lookup in '{source.name}' failed: {e}")
            self.request.warning(Messages.FEED_UNAVAILABLE, source.name, e)
            return None
        if package is None:
            return None
        return PackageItem(package, source, sources=sources, fast_path=fast_path)


__all__ = [
    "PackageSearch",
    "flatten_wildcards",
    "has_wildcards",
    "wildcard_match",
]
