"""Package feeds: local archive directories and v3 HTTP feeds."""

from ..models import PackageSource
from .base import Feed, split_search_text
from .http import HttpFeed
from .local import LocalFeed, location_to_path
from .paging import PAGE_SIZE, PagedEnumerator


def create_feed(source: PackageSource | str) -> Feed:
    """Return the feed implementation for a source location.

    http(s) URLs get an HttpFeed; file: URIs and plain paths a LocalFeed.
    """
    location = source.location if isinstance(source, PackageSource) else source
    if location.lower().startswith(("http://", "https://")):
        return HttpFeed(location)
    return LocalFeed(location)


__all__ = [
    "Feed",
    "HttpFeed",
    "LocalFeed",
    "PAGE_SIZE",
    "PagedEnumerator",
    "create_feed",
    "location_to_path",
    "split_search_text",
]
