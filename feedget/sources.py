"""Resolving source names, locations, URIs and paths into package sources."""

import logging
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import urlparse

from .config import ProviderConfig, SourceRegistry
from .errors import ErrorCategory, Messages, SourceResolutionError
from .feeds import Feed, create_feed, location_to_path
from .models import PackageSource
from .request import Request

_logging = logging.getLogger(__name__)

FeedFactory = Callable[[PackageSource], Feed]


def location_close_enough(location1: str | None, location2: str | None) -> bool:
    """Compare locations ignoring case and a trailing '/' or '\\'."""
    if not location1 or not location2:
        return False
    return location1.rstrip("/\\").lower() == location2.rstrip("/\\").lower()


def uri_scheme(location: str) -> str | None:
    """Scheme of an absolute URI, or None for plain paths.

    Single-letter schemes are Windows drive letters, not URIs.
    """
    if "://" not in location and not location.lower().startswith("file:"):
        return None
    scheme = urlparse(location).scheme.lower()
    if len(scheme) < 2:
        return None
    return scheme


class SourceResolver:
    """Turns what a caller typed into PackageSource records for one request."""

    def __init__(
        self,
        request: Request,
        registry: SourceRegistry,
        config: ProviderConfig | None = None,
        feed_factory: FeedFactory = create_feed,
    ):
        self.request = request
        self.registry = registry
        self.config = config or ProviderConfig()
        self.feed_factory = feed_factory

    @property
    def registered_sources(self) -> list[PackageSource]:
        return list(self.registry.sources.values())

    def find_registered_source(self, name_or_location: str) -> PackageSource | None:
        source = self.registry.get(name_or_location)
        if source is not None:
            return source
        for source in self.registered_sources:
            if location_close_enough(source.location, name_or_location):
                return source
        return None

    async def validate_source_location(self, location: str) -> bool:
        """True when the location is an existing path or a reachable feed."""
        scheme = uri_scheme(location)
        if scheme is None or scheme == "file":
            try:
                return location_to_path(location).exists()
            except (OSError, ValueError):
                return False
        if scheme not in self.config.supported_schemes:
            return False
        feed = self.feed_factory(PackageSource(name=location, location=location))
        return await feed.probe()

    async def resolve_package_source(self, token: str) -> PackageSource:
        """Resolve a name, registered location, URI or local path.

        Raises:
            SourceResolutionError: If nothing matches or the location is invalid
        """
        source = self.find_registered_source(token)
        if source is not None:
            return source

        scheme = uri_scheme(token)
        if scheme is not None:
            if scheme not in self.config.supported_schemes:
                raise SourceResolutionError(
                    ErrorCategory.INVALID_ARGUMENT, Messages.URI_SCHEME_NOT_SUPPORTED, scheme
                )
            validated = False
            if not self.request.options.skip_validate:
                if not await self.validate_source_location(token):
                    raise SourceResolutionError(
                        ErrorCategory.INVALID_ARGUMENT, Messages.SOURCE_LOCATION_NOT_VALID, token
                    )
                validated = True
            return PackageSource(
                name=token,
                location=token,
                trusted=False,
                is_registered=False,
                is_validated=validated,
            )

        try:
            path = Path(token).expanduser()
            exists = path.is_dir() or path.is_file()
        except (OSError, ValueError):
            exists = False
        if exists:
            return PackageSource(
                name=token,
                location=str(path),
                trusted=True,
                is_registered=False,
                is_validated=True,
            )

        raise SourceResolutionError(
            ErrorCategory.INVALID_ARGUMENT, Messages.UNABLE_TO_RESOLVE_SOURCE, token
        )

    async def selected_sources(
        self, carried: Iterable[str] | None = None
    ) -> list[PackageSource]:
        """Sources for a search or lookup.

        The union of the sources carried by the operation (e.g. fastpath
        hints) and those the caller requested, or every registered source
        when neither names any. Entries that do not resolve are reported as
        warnings and skipped.
        """
        wanted: list[str] = []
        for token in [*(carried or []), *self.request.options.sources]:
            if token and not any(t.lower() == token.lower() for t in wanted):
                wanted.append(token)

        if not wanted:
            return self.registered_sources

        selected: list[PackageSource] = []
        for token in wanted:
            try:
                source = await self.resolve_package_source(token)
            except SourceResolutionError as e:
                self.request.warning(e.template, *e.template_args)
                continue
            if not any(location_close_enough(s.location, source.location) for s in selected):
                selected.append(source)
        return selected


__all__ = ["SourceResolver", "location_close_enough", "uri_scheme"]
