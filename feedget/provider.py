"""The provider surface: every operation a host can invoke.

Operations take a ``Request`` and report everything through it. User input
problems become ``request.error(...)`` calls; nothing is raised to the host
for them.
"""

import functools
import logging
import os
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable

from .config import SAVE_MODES, ProviderConfig, SourceRegistry
from .errors import ConfigError, ErrorCategory, FeedError, Messages
from .feeds import Feed, create_feed
from .installer import (
    InstallExecutor,
    InstallHooks,
    InstallOrchestrator,
    ProcessInstallExecutor,
)
from .installer.dependencies import DependencyWalker
from .models import PackageItem, PackageSource
from .request import DynamicOption, Request, yield_package
from .search import PackageSearch
from .sources import SourceResolver
from .versions import (
    fix_version,
    installed_version_matches,
    is_range_expression,
    is_valid_range,
)

_logging = logging.getLogger(__name__)

DYNAMIC_OPTIONS = {
    "package": [
        DynamicOption("package", "FilterOnTag", "StringArray"),
        DynamicOption("package", "Contains", "String"),
        DynamicOption("package", "AllowPrereleaseVersions", "Switch"),
    ],
    "source": [
        DynamicOption("source", "ConfigFile", "String"),
        DynamicOption("source", "SkipValidate", "Switch"),
    ],
    "install": [
        DynamicOption("install", "Destination", "Path", is_required=True),
        DynamicOption("install", "SkipDependencies", "Switch"),
        DynamicOption("install", "ContinueOnFailure", "Switch"),
        DynamicOption("install", "ExcludeVersion", "Switch"),
        DynamicOption("install", "PackageSaveMode", "String", permitted_values=list(SAVE_MODES)),
    ],
}


@dataclass
class RequestContext:
    registry: SourceRegistry
    resolver: SourceResolver
    search: PackageSearch


def reports_config_errors(func):
    """Report a broken source registry file through the request instead of raising."""

    @functools.wraps(func)
    async def wrapper(self, request: Request, *args, **kwargs):
        try:
            return await func(self, request, *args, **kwargs)
        except ConfigError as e:
            request.error(
                ErrorCategory.INVALID_DATA,
                request.options.config_file or "sources",
                Messages.CONFIG_INVALID,
                e,
            )
            return None

    return wrapper


async def _yield_items(
    request: Request, items: AsyncIterator[PackageItem], search_key: str, provider_name: str
) -> bool:
    found = False
    async with aclosing(items) as results:
        async for item in results:
            found = True
            if not yield_package(request, item, search_key, provider_name):
                break
    return found


class PackageProvider:
    """Finds, installs and removes packages from registered and ad-hoc feeds."""

    def __init__(
        self,
        config: ProviderConfig | None = None,
        executor: InstallExecutor | None = None,
        feed_factory: Callable[[PackageSource], Feed] = create_feed,
        hooks: InstallHooks | None = None,
    ):
        self.config = config or ProviderConfig()
        self.executor = executor or ProcessInstallExecutor(self.config)
        self.feed_factory = feed_factory
        self.hooks = hooks or InstallHooks()

    @property
    def name(self) -> str:
        return self.config.name

    def context(self, request: Request) -> RequestContext:
        config_file = request.options.config_file
        registry = SourceRegistry(Path(os.path.expanduser(config_file)) if config_file else None)
        resolver = SourceResolver(request, registry, self.config, self.feed_factory)
        search = PackageSearch(request, resolver, self.config, self.feed_factory)
        return RequestContext(registry, resolver, search)

    def orchestrator(self, request: Request, search: PackageSearch) -> InstallOrchestrator:
        return InstallOrchestrator(request, search, self.executor, self.config, self.hooks)

    def get_features(self) -> dict[str, list[str]]:
        return self.config.features()

    def get_dynamic_options(self, request: Request, category: str | None) -> None:
        request.debug("Calling '{0}::GetDynamicOptions' '{1}'", self.name, category)
        for option in DYNAMIC_OPTIONS.get((category or "").lower(), []):
            if not request.yield_dynamic_option(option):
                return

    # --- sources ---------------------------------------------------------

    @reports_config_errors
    async def add_package_source(
        self, request: Request, name: str | None, location: str | None, trusted: bool = False
    ) -> None:
        request.debug(
            "Calling '{0}::AddPackageSource' '{1}','{2}','{3}'", self.name, name, location, trusted
        )
        ctx = self.context(request)
        name = name or location
        if not name:
            request.error(
                ErrorCategory.INVALID_ARGUMENT, "Name", Messages.MISSING_REQUIRED_PARAMETER, "Name"
            )
            return
        if not location:
            request.error(
                ErrorCategory.INVALID_ARGUMENT,
                "Location",
                Messages.MISSING_REQUIRED_PARAMETER,
                "Location",
            )
            return

        is_update = request.options.is_update
        existing = ctx.resolver.find_registered_source(name)
        if existing is not None and not is_update:
            request.error(
                ErrorCategory.INVALID_ARGUMENT, name, Messages.PACKAGE_SOURCE_EXISTS, name
            )
            return
        if existing is None and is_update:
            request.error(
                ErrorCategory.OBJECT_NOT_FOUND, name, Messages.UNABLE_TO_RESOLVE_SOURCE, name
            )
            return

        validated = False
        if not request.options.skip_validate:
            validated = await ctx.resolver.validate_source_location(location)
            if not validated:
                request.error(
                    ErrorCategory.INVALID_DATA, name, Messages.SOURCE_LOCATION_NOT_VALID, location
                )
                return

        if request.is_canceled:
            return

        request.verbose("Storing package source {0}", name)
        if existing is not None and existing.name.lower() != name.lower():
            ctx.registry.remove(existing.name)
        source = ctx.registry.add(name, location, trusted, validated)
        request.yield_package_source(source, True)

    @reports_config_errors
    async def remove_package_source(self, request: Request, name: str) -> None:
        request.debug("Calling '{0}::RemovePackageSource' '{1}'", self.name, name)
        ctx = self.context(request)
        source = ctx.resolver.find_registered_source(name)
        if source is None:
            request.warning(Messages.UNABLE_TO_RESOLVE_SOURCE, name)
            return
        ctx.registry.remove(source.name)
        request.yield_package_source(
            PackageSource(
                name=source.name,
                location=source.location,
                trusted=source.trusted,
                is_registered=False,
                is_validated=source.is_validated,
            ),
            False,
        )

    @reports_config_errors
    async def resolve_package_sources(self, request: Request) -> None:
        request.debug("Calling '{0}::ResolvePackageSources'", self.name)
        ctx = self.context(request)
        for source in await ctx.resolver.selected_sources():
            if not request.yield_package_source(source, source.is_registered):
                return

    # --- finding ---------------------------------------------------------

    @reports_config_errors
    async def find_package(
        self,
        request: Request,
        name: str | None,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
    ) -> None:
        request.debug(
            "Calling '{0}::FindPackage' '{1}','{2}','{3}','{4}'",
            self.name,
            name,
            required,
            minimum,
            maximum,
        )
        required = fix_version(required)
        if required:
            if request.options.find_by_canonical_id and not is_range_expression(required):
                # a lone version from a canonical id means 'this version or later'
                minimum, maximum, required = required, None, None
            else:
                minimum = maximum = None
        else:
            minimum = fix_version(minimum)
            maximum = fix_version(maximum)

        if not is_valid_range(minimum, maximum):
            request.error(
                ErrorCategory.INVALID_ARGUMENT,
                name or "",
                Messages.INVALID_VERSION_RANGE,
                minimum,
                maximum,
            )
            return

        ctx = self.context(request)
        sources = await ctx.resolver.selected_sources()
        await _yield_items(
            request,
            ctx.search.get_package_by_id(name, required, minimum, maximum, sources=sources),
            name or "",
            self.name,
        )
        if ctx.search.found_package_by_id or request.is_canceled:
            return

        await _yield_items(
            request,
            ctx.search.search_for_packages(name, required, minimum, maximum, sources=sources),
            name or "",
            self.name,
        )

    @reports_config_errors
    async def find_package_by_file(self, request: Request, file: str) -> None:
        request.debug("Calling '{0}::FindPackageByFile' '{1}'", self.name, file)
        ctx = self.context(request)
        item = await ctx.search.get_package_by_file_path(os.path.abspath(file))
        if item is None:
            request.debug("'{0}' is not a package file", file)
            return
        yield_package(request, item, file, self.name)

    @reports_config_errors
    async def get_installed_packages(
        self,
        request: Request,
        name: str | None = None,
        required: str | None = None,
        minimum: str | None = None,
        maximum: str | None = None,
    ) -> None:
        request.debug(
            "Calling '{0}::GetInstalledPackages' '{1}','{2}','{3}','{4}'",
            self.name,
            name,
            required,
            minimum,
            maximum,
        )
        if required:
            minimum = maximum = None
        else:
            minimum = fix_version(minimum)
            maximum = fix_version(maximum)

        if not is_valid_range(minimum, maximum):
            request.error(
                ErrorCategory.INVALID_ARGUMENT,
                name or "",
                Messages.INVALID_VERSION_RANGE,
                minimum,
                maximum,
            )
            return

        destination = request.options.destination_path
        if not destination.is_dir():
            return

        ctx = self.context(request)
        lowered = (name or "").lower()
        for folder in sorted(d for d in destination.iterdir() if d.is_dir()):
            for archive in sorted(folder.glob("*.nupkg")):
                item = await ctx.search.get_package_by_file_path(str(archive))
                if item is None or not item.is_installed:
                    continue
                if lowered and item.id.lower() == lowered:
                    if not installed_version_matches(item.version, required, minimum, maximum):
                        continue
                    yield_package(request, item, name, self.name)
                    break
                if not lowered or lowered in item.id.lower():
                    if not yield_package(request, item, name or "", self.name):
                        return

    @reports_config_errors
    async def get_package_dependencies(self, request: Request, fast_path: str) -> None:
        request.debug("Calling '{0}::GetPackageDependencies' '{1}'", self.name, fast_path)
        ctx = self.context(request)
        item = await ctx.search.get_package_by_fastpath(fast_path)
        if item is None or item.package is None:
            request.error(
                ErrorCategory.INVALID_ARGUMENT, fast_path, Messages.UNABLE_TO_RESOLVE_PACKAGE, fast_path
            )
            return

        walker = DependencyWalker(ctx.search, self.name, is_installed=None)
        sources = await ctx.resolver.selected_sources(item.sources)
        for dependency in item.package.dependencies:
            candidates = await walker.candidates(dependency, sources)
            if not candidates:
                request.error(
                    ErrorCategory.INVALID_RESULT,
                    item.get_canonical_id(self.name),
                    Messages.DEPENDENCY_RESOLUTION_ERROR,
                    walker.dependency_reference(dependency),
                )
                continue
            if not yield_package(request, candidates[0], item.id, self.name):
                return

    # --- installing ------------------------------------------------------

    async def _resolve_fastpath(
        self, request: Request, ctx: RequestContext, fast_path: str
    ) -> PackageItem | None:
        item = await ctx.search.get_package_by_fastpath(fast_path)
        if item is None:
            request.error(
                ErrorCategory.INVALID_ARGUMENT, fast_path, Messages.UNABLE_TO_RESOLVE_PACKAGE, fast_path
            )
        return item

    @reports_config_errors
    async def install_package(self, request: Request, fast_path: str) -> bool:
        request.debug("Calling '{0}::InstallPackage' '{1}'", self.name, fast_path)
        ctx = self.context(request)
        item = await self._resolve_fastpath(request, ctx, fast_path)
        if item is None:
            return False
        return await self.orchestrator(request, ctx.search).install_package(item)

    @reports_config_errors
    async def uninstall_package(self, request: Request, fast_path: str) -> bool:
        request.debug("Calling '{0}::UninstallPackage' '{1}'", self.name, fast_path)
        ctx = self.context(request)
        item = await self._resolve_fastpath(request, ctx, fast_path)
        if item is None:
            return False
        return await self.orchestrator(request, ctx.search).uninstall_package(item)

    @reports_config_errors
    async def download_package(
        self, request: Request, fast_path: str, location: str
    ) -> Path | None:
        request.debug(
            "Calling '{0}::DownloadPackage' '{1}','{2}'", self.name, fast_path, location
        )
        ctx = self.context(request)
        item = await self._resolve_fastpath(request, ctx, fast_path)
        if item is None or item.package is None:
            return None
        feed = ctx.search.feed_for(item.package_source)
        try:
            return await feed.fetch(item.package, Path(location))
        except (FeedError, OSError) as e:
            request.error(
                ErrorCategory.CONNECTION_ERROR,
                fast_path,
                Messages.FEED_UNAVAILABLE,
                item.package_source.name,
                e,
            )
            return None


__all__ = ["DYNAMIC_OPTIONS", "PackageProvider", "RequestContext"]
