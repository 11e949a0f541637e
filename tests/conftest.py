"""Pytest fixtures and utilities for feedget tests."""

import zipfile
from pathlib import Path
from typing import AsyncIterator

import pytest

from feedget.config import RequestOptions, SourceRegistry
from feedget.errors import FeedError
from feedget.feeds import Feed, split_search_text
from feedget.installer import InstallExecutor
from feedget.models import DependencySet, PackageDependency, PackageMetadata, PackageSource
from feedget.request import CollectingRequest
from feedget.sources import SourceResolver
from feedget.search import PackageSearch
from feedget.versions import mark_latest

NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>{id}</id>
    <version>{version}</version>
    <authors>{authors}</authors>
    <description>{description}</description>
    <tags>{tags}</tags>
    <projectUrl>https://example.org/{id}</projectUrl>
    {dependencies}
  </metadata>
</package>
"""


def build_nuspec(
    package_id: str,
    version: str,
    dependencies: list[tuple[str, str | None]] | None = None,
    tags: str = "",
    description: str = "A package",
    authors: str = "Jane Doe",
) -> str:
    deps = ""
    if dependencies:
        entries = []
        for dep_id, spec in dependencies:
            if spec:
                entries.append(f'<dependency id="{dep_id}" version="{spec}" />')
            else:
                entries.append(f'<dependency id="{dep_id}" />')
        deps = "<dependencies>" + "".join(entries) + "</dependencies>"
    return NUSPEC_TEMPLATE.format(
        id=package_id,
        version=version,
        authors=authors,
        description=description,
        tags=tags,
        dependencies=deps,
    )


def write_archive(
    directory: Path,
    package_id: str,
    version: str,
    dependencies: list[tuple[str, str | None]] | None = None,
    tags: str = "",
    description: str = "A package",
    filename: str | None = None,
    extra_files: dict[str, str] | None = None,
) -> Path:
    """Write a .nupkg archive into directory and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (filename or f"{package_id}.{version}.nupkg")
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            f"{package_id}.nuspec",
            build_nuspec(package_id, version, dependencies, tags, description),
        )
        archive.writestr("[Content_Types].xml", "<Types />")
        for name, content in (extra_files or {"lib/readme.txt": "hello"}).items():
            archive.writestr(name, content)
    return path


@pytest.fixture
def make_archive():
    return write_archive


def make_package(
    package_id: str,
    version: str,
    dependencies: list[tuple[str, str | None]] | None = None,
    tags: str = "",
    description: str = "",
    listed: bool = True,
) -> PackageMetadata:
    dependency_sets = []
    if dependencies:
        dependency_sets.append(
            DependencySet(
                dependencies=[PackageDependency(id=d, version_spec=s) for d, s in dependencies]
            )
        )
    return PackageMetadata(
        id=package_id,
        version=version,
        tags=tags,
        description=description,
        dependency_sets=dependency_sets,
        listed=listed,
    )


class FakeFeed(Feed):
    """In-memory feed; set ``error`` to make every call fail."""

    def __init__(self, location: str, packages: list[PackageMetadata] | None = None):
        super().__init__(location)
        self.packages = mark_latest(list(packages or []))
        self.error: Exception | None = None
        self.reachable = True
        self.search_terms: list[str] = []
        self.find_by_id_calls: list[str] = []

    def _check(self):
        if self.error is not None:
            raise self.error

    async def find_by_id(self, package_id: str) -> list[PackageMetadata]:
        self._check()
        self.find_by_id_calls.append(package_id)
        return [p for p in self.packages if p.id.lower() == package_id.lower()]

    async def search(
        self, text: str, allow_prerelease: bool = False
    ) -> AsyncIterator[PackageMetadata]:
        self._check()
        self.search_terms.append(text)
        terms, tags = split_search_text(text)
        for package in self.packages:
            if not self.prerelease_allowed(package, allow_prerelease):
                continue
            if terms and not any(
                t.replace("*", "").lower() in package.id.lower() for t in terms
            ):
                continue
            if tags and not all(t.lower() in package.tags.lower() for t in tags):
                continue
            yield package

    async def fetch(self, package: PackageMetadata, dest_path: Path) -> Path:
        self._check()
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_bytes(f"{package.id} {package.version}".encode())
        return dest_path

    async def probe(self) -> bool:
        return self.reachable


class FeedFactory:
    """Maps source locations to fake feeds."""

    def __init__(self, feeds: dict[str, FakeFeed] | None = None):
        self.feeds = feeds or {}

    def add(self, location: str, packages: list[PackageMetadata]) -> FakeFeed:
        feed = FakeFeed(location, packages)
        self.feeds[location] = feed
        return feed

    def __call__(self, source: PackageSource) -> Feed:
        if source.location in self.feeds:
            return self.feeds[source.location]
        raise FeedError(source.location, "no such fake feed")


@pytest.fixture
def feeds() -> FeedFactory:
    return FeedFactory()


@pytest.fixture
def registry(tmp_path: Path) -> SourceRegistry:
    return SourceRegistry(tmp_path / "sources.json")


class FakeProcess:
    def __init__(self, lines, stderr=(), error=None):
        self.lines = list(lines)
        self.stderr = list(stderr)
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def stdout_lines(self):
        for line in self.lines:
            yield line
        if self.error is not None:
            raise self.error

    def stderr_lines(self):
        return list(self.stderr)


class FakeExecutor(InstallExecutor):
    """Reports success for every package unless told otherwise.

    A successful install creates the package folder but writes no archive.
    """

    def __init__(self):
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self.present: set[str] = set()
        self.stderr: list[str] = []
        self.error: Exception | None = None
        self.on_install = None

    def install(self, item, source_location, destination, save_mode, exclude_version):
        self.calls.append(
            (item.id, item.version, source_location, destination, save_mode, exclude_version)
        )
        if self.on_install is not None:
            self.on_install(item)
        label = f"{item.id} {item.version}"
        if item.id in self.failing:
            lines = [f"Unable to find '{label}'", f"'{label}' not installed."]
        elif item.id in self.present:
            lines = [f"'{label}' already installed."]
        else:
            folder = item.id if exclude_version else f"{item.id}.{item.version}"
            (Path(destination) / folder).mkdir(parents=True, exist_ok=True)
            lines = [f"Installing '{label}'.", f"Successfully installed '{label}'."]
        return FakeProcess(lines, self.stderr, self.error)

    @property
    def installed_ids(self):
        return [call[0] for call in self.calls]


def make_request(**options) -> CollectingRequest:
    return CollectingRequest(RequestOptions(**options))


@pytest.fixture
def request_factory():
    return make_request


def make_search(request, registry, feeds) -> PackageSearch:
    resolver = SourceResolver(request, registry, feed_factory=feeds)
    return PackageSearch(request, resolver, feed_factory=feeds)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Point the registry file and default destination into tmp_path."""
    config_path = tmp_path / "config" / "sources.json"
    monkeypatch.setenv("FEEDGET_CONFIG", str(config_path))
    monkeypatch.setenv("FEEDGET_DESTINATION", str(tmp_path / "packages"))
    return config_path
