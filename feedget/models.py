"""Data models for package sources, packages and install outcomes."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .fastpath import encode_fastpath

ARCHIVE_EXTENSION = ".nupkg"


@dataclass
class PackageSource:
    """A feed location, either registered (persisted) or ad-hoc for one request."""

    name: str
    location: str
    trusted: bool = False
    is_registered: bool = False
    is_validated: bool = False

    @property
    def is_source_a_file(self) -> bool:
        try:
            return Path(self.location).is_file()
        except (OSError, ValueError):
            return False


@dataclass
class PackageDependency:
    id: str
    version_spec: str | None = None


@dataclass
class DependencySet:
    target_framework: str | None = None
    dependencies: list[PackageDependency] = field(default_factory=list)


@dataclass
class PackageMetadata:
    """Everything a feed or archive knows about one package version."""

    id: str
    version: str
    title: str | None = None
    summary: str | None = None
    description: str = ""
    tags: str = ""
    authors: list[str] = field(default_factory=list)
    owners: list[str] = field(default_factory=list)
    copyright: str | None = None
    language: str | None = None
    release_notes: str | None = None
    published: str | None = None
    project_url: str | None = None
    license_url: str | None = None
    icon_url: str | None = None
    development_dependency: bool = False
    dependency_sets: list[DependencySet] = field(default_factory=list)
    listed: bool = True
    is_latest_version: bool = False
    is_absolute_latest_version: bool = False
    archive_path: str | None = None
    download_url: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.id}.{self.version}"

    @property
    def dependencies(self) -> list[PackageDependency]:
        return [dep for dep_set in self.dependency_sets for dep in dep_set.dependencies]


class PackageItem:
    """A resolved package match bound to the source it was found in.

    The fastpath is derived from the source location, id, version and
    source hints. Those fields have no setters; use ``with_sources`` to get
    a new item (and a new fastpath) instead of mutating one.
    """

    def __init__(
        self,
        package: PackageMetadata | None = None,
        package_source: PackageSource | None = None,
        *,
        package_id: str | None = None,
        version: str | None = None,
        sources: list[str] | None = None,
        is_package_file: bool = False,
        full_path: str | None = None,
        fast_path: str | None = None,
    ):
        self.package = package
        self.package_source = package_source
        self.is_package_file = is_package_file
        self.full_path = full_path
        self._id = package_id
        self._version = version
        self._sources = list(sources or [])
        self._fast_path = fast_path
        self._canonical_id: str | None = None

    @property
    def id(self) -> str:
        if self._id is None and self.package is not None:
            return self.package.id
        return self._id or ""

    @property
    def version(self) -> str:
        if self._version is None and self.package is not None:
            return self.package.version
        return self._version or ""

    @property
    def sources(self) -> list[str]:
        return list(self._sources)

    @property
    def fast_path(self) -> str:
        if self._fast_path is None:
            location = self.package_source.location if self.package_source else ""
            self._fast_path = encode_fastpath(location, self.id, self.version, self._sources)
        return self._fast_path

    @property
    def full_name(self) -> str:
        if self.package is not None:
            return self.package.full_name
        return f"{self.id}.{self.version}"

    @property
    def package_filename(self) -> str:
        if self.is_package_file and self.package_source:
            return Path(self.package_source.location).name
        return f"{self.id}.{self.version}{ARCHIVE_EXTENSION}"

    @property
    def installed_directory(self) -> Path | None:
        """Directory holding this package, if it looks installed.

        A package archive counts as installed when it sits in a folder named
        after its own file stem. An item produced by an install run counts as
        installed when its install folder exists and is named after the
        package ('<id>' or '<id>.<version>').
        """
        try:
            if self.is_package_file and self.package_source:
                archive = Path(self.package_source.location)
                folder = archive.parent
                if (
                    archive.stem
                    and folder.name.lower() == archive.stem.lower()
                    and folder.is_dir()
                ):
                    return folder
            elif self.full_path:
                folder = Path(self.full_path)
                if folder.name.lower() in (
                    self.full_name.lower(),
                    self.id.lower(),
                ) and folder.is_dir():
                    return folder
        except (OSError, ValueError):
            pass
        return None

    @property
    def is_installed(self) -> bool:
        return self.installed_directory is not None

    def get_canonical_id(self, provider_name: str) -> str:
        """Return '<provider>:<id>/<version>[#<source>]', computed once."""
        if self._canonical_id is None:
            canonical = f"{provider_name.lower()}:{self.id}/{self.version}"
            if self.package_source is not None and self.package_source.location:
                canonical += f"#{self.package_source.location}"
            self._canonical_id = canonical
        return self._canonical_id

    def with_sources(self, sources: list[str]) -> "PackageItem":
        return PackageItem(
            self.package,
            self.package_source,
            package_id=self._id,
            version=self._version,
            sources=sources,
            is_package_file=self.is_package_file,
            full_path=self.full_path,
        )

    def __repr__(self) -> str:
        source = self.package_source.name if self.package_source else None
        return f"PackageItem({self.id!r}, {self.version!r}, source={source!r})"


class InstallStatus(Enum):
    SUCCESSFUL = "successful"
    FAILED = "failed"
    ALREADY_PRESENT = "already_present"


@dataclass
class InstallResult:
    """Packages reported by one run of the install executor, grouped by outcome."""

    entries: dict[InstallStatus, list[PackageItem]] = field(default_factory=dict)

    def add(self, status: InstallStatus, item: PackageItem) -> None:
        self.entries.setdefault(status, []).append(item)

    def get(self, status: InstallStatus) -> list[PackageItem]:
        return self.entries.get(status, [])

    @property
    def status(self) -> InstallStatus:
        if self.entries.get(InstallStatus.FAILED):
            return InstallStatus.FAILED
        if self.entries.get(InstallStatus.SUCCESSFUL):
            return InstallStatus.SUCCESSFUL
        return InstallStatus.ALREADY_PRESENT


__all__ = [
    "ARCHIVE_EXTENSION",
    "PackageSource",
    "PackageDependency",
    "DependencySet",
    "PackageMetadata",
    "PackageItem",
    "InstallStatus",
    "InstallResult",
]
