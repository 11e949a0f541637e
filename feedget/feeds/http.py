"""A NuGet v3 style JSON feed reached over HTTP with requests."""

import asyncio
import logging
from pathlib import Path
from typing import Any, AsyncIterator
from urllib.parse import quote

import requests

from ..errors import FeedError
from ..models import ARCHIVE_EXTENSION, DependencySet, PackageDependency, PackageMetadata
from ..versions import mark_latest
from .base import Feed
from .paging import PAGE_SIZE, PagedEnumerator

REQUEST_TIMEOUT = 30
USER_AGENT = "feedget"

SEARCH_RESOURCE = "SearchQueryService"
REGISTRATION_RESOURCE = "RegistrationsBaseUrl"
CONTENT_RESOURCE = "PackageBaseAddress/3.0.0"

_logging = logging.getLogger(__name__)


def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v) for v in value]


def _as_tags(value: Any) -> str:
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return value or ""


def _dependency_sets(groups: list[dict]) -> list[DependencySet]:
    sets = []
    for group in groups or []:
        sets.append(
            DependencySet(
                target_framework=group.get("targetFramework"),
                dependencies=[
                    PackageDependency(id=dep["id"], version_spec=dep.get("range"))
                    for dep in group.get("dependencies") or []
                    if dep.get("id")
                ],
            )
        )
    return sets


def package_from_catalog(entry: dict, download_url: str | None = None) -> PackageMetadata:
    """Build PackageMetadata from a registration catalogEntry."""
    return PackageMetadata(
        id=entry["id"],
        version=entry["version"],
        title=entry.get("title") or None,
        summary=entry.get("summary") or None,
        description=entry.get("description") or "",
        tags=_as_tags(entry.get("tags")),
        authors=_as_list(entry.get("authors")),
        owners=_as_list(entry.get("owners")),
        copyright=entry.get("copyright") or None,
        language=entry.get("language") or None,
        release_notes=entry.get("releaseNotes") or None,
        published=entry.get("published") or None,
        project_url=entry.get("projectUrl") or None,
        license_url=entry.get("licenseUrl") or None,
        icon_url=entry.get("iconUrl") or None,
        development_dependency=bool(entry.get("developmentDependency", False)),
        dependency_sets=_dependency_sets(entry.get("dependencyGroups")),
        listed=entry.get("listed", True),
        download_url=download_url,
    )


def package_from_search(entry: dict) -> PackageMetadata:
    """Build PackageMetadata from one search result (its latest version)."""
    package = PackageMetadata(
        id=entry["id"],
        version=entry["version"],
        title=entry.get("title") or None,
        summary=entry.get("summary") or None,
        description=entry.get("description") or "",
        tags=_as_tags(entry.get("tags")),
        authors=_as_list(entry.get("authors")),
        owners=_as_list(entry.get("owners")),
        project_url=entry.get("projectUrl") or None,
        license_url=entry.get("licenseUrl") or None,
        icon_url=entry.get("iconUrl") or None,
    )
    package.is_latest_version = True
    package.is_absolute_latest_version = True
    return package


class HttpFeed(Feed):
    """Feed client for a v3 service index URL such as .../v3/index.json.

    Blocking requests calls run in worker threads so several feeds can be
    queried concurrently.
    """

    def __init__(self, location: str, session: requests.Session | None = None):
        super().__init__(location)
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self._resources: dict[str, str] | None = None

    def _get(self, url: str, params: dict | None = None, stream: bool = False):
        _logging.debug(f"GET {url} {params or ''}")
        try:
            return self.session.get(
                url, params=params, timeout=REQUEST_TIMEOUT, stream=stream
            )
        except requests.Timeout:
            raise FeedError(self.location, f"request timed out after {REQUEST_TIMEOUT} seconds")
        except requests.RequestException as e:
            raise FeedError(self.location, f"connection error: {e}")

    def _get_json(self, url: str, params: dict | None = None, missing_ok: bool = False):
        response = self._get(url, params)
        if missing_ok and response.status_code == 404:
            return None
        if response.status_code != 200:
            raise FeedError(self.location, f"HTTP {response.status_code} from {url}")
        try:
            return response.json()
        except ValueError as e:
            raise FeedError(self.location, f"invalid JSON from {url}: {e}")

    def _load_resources(self) -> dict[str, str]:
        if self._resources is None:
            index = self._get_json(self.location)
            if not isinstance(index, dict):
                raise FeedError(self.location, "service index is not a JSON object")
            resources = {}
            for resource in index.get("resources", []):
                kind, url = resource.get("@type"), resource.get("@id")
                if isinstance(kind, str) and isinstance(url, str):
                    resources.setdefault(kind, url)
            self._resources = resources
        return self._resources

    def _resource(self, prefix: str) -> str:
        for kind, url in self._load_resources().items():
            if kind == prefix or kind.startswith(prefix + "/"):
                return url
        raise FeedError(self.location, f"service index has no {prefix} resource")

    def _find_by_id(self, package_id: str) -> list[PackageMetadata]:
        base = self._resource(REGISTRATION_RESOURCE)
        if not base.endswith("/"):
            base += "/"
        index = self._get_json(
            f"{base}{quote(package_id.lower(), safe='')}/index.json", missing_ok=True
        )
        if not index:
            return []

        packages = []
        for page in index.get("items", []):
            leaves = page.get("items")
            if leaves is None:
                leaves = (self._get_json(page["@id"]) or {}).get("items", [])
            for leaf in leaves:
                entry = leaf.get("catalogEntry")
                if isinstance(entry, dict) and entry.get("id") and entry.get("version"):
                    packages.append(package_from_catalog(entry, leaf.get("packageContent")))
        return mark_latest(packages)

    async def find_by_id(self, package_id: str) -> list[PackageMetadata]:
        return await asyncio.to_thread(self._find_by_id, package_id)

    def _search_page(self, text: str, allow_prerelease: bool, skip: int, take: int):
        params = {
            "q": text,
            "skip": skip,
            "take": take,
            "prerelease": str(allow_prerelease).lower(),
            "semVerLevel": "2.0.0",
        }
        data = self._get_json(self._resource(SEARCH_RESOURCE), params) or {}
        return [
            package_from_search(entry)
            for entry in data.get("data", [])
            if entry.get("id") and entry.get("version")
        ]

    def search(
        self, text: str, allow_prerelease: bool = False
    ) -> AsyncIterator[PackageMetadata]:
        async def fetch_page(skip: int, take: int) -> list[PackageMetadata]:
            return await asyncio.to_thread(
                self._search_page, text, allow_prerelease, skip, take
            )

        return PagedEnumerator(fetch_page, PAGE_SIZE).__aiter__()

    def _download_url(self, package: PackageMetadata) -> str:
        if package.download_url:
            return package.download_url
        base = self._resource(CONTENT_RESOURCE)
        if not base.endswith("/"):
            base += "/"
        lower_id, lower_version = package.id.lower(), package.version.lower()
        return f"{base}{lower_id}/{lower_version}/{lower_id}.{lower_version}{ARCHIVE_EXTENSION}"

    def _fetch(self, package: PackageMetadata, dest_path: Path) -> Path:
        url = self._download_url(package)
        response = self._get(url, stream=True)
        if response.status_code != 200:
            raise FeedError(self.location, f"HTTP {response.status_code} from {url}")
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with dest_path.open("wb") as f:
                for chunk in response.iter_content(chunk_size=65536):
                    f.write(chunk)
        except requests.RequestException as e:
            raise FeedError(self.location, f"download of {url} failed: {e}")
        finally:
            response.close()
        return dest_path

    async def fetch(self, package: PackageMetadata, dest_path: Path) -> Path:
        return await asyncio.to_thread(self._fetch, package, Path(dest_path))

    async def probe(self) -> bool:
        try:
            await asyncio.to_thread(self._load_resources)
        except FeedError as e:
            _logging.debug(f"Probe of {self.location} failed: {e}")
            return False
        return True


__all__ = ["HttpFeed", "package_from_catalog", "package_from_search"]
