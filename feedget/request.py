"""The host signaling channel and a console implementation of it.

Provider operations report everything through a ``Request``: diagnostics,
errors, progress, cancellation and the items they produce. Yield methods
return False when the host wants no more results.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import click

from .config import RequestOptions
from .errors import ErrorCategory, format_error, format_template
from .models import PackageItem, PackageSource

_logging = logging.getLogger(__name__)


@dataclass
class DynamicOption:
    category: str
    name: str
    expected_type: str
    is_required: bool = False
    permitted_values: list[str] = field(default_factory=list)


@dataclass
class SoftwareIdentity:
    """One yielded package and the details attached to it."""

    fast_path: str
    name: str
    version: str
    version_scheme: str
    summary: str
    source: str
    search_key: str
    full_path: str | None = None
    package_filename: str | None = None
    dependencies: list[str] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)
    links: dict[str, str] = field(default_factory=dict)
    entities: list[tuple[str, str]] = field(default_factory=list)


class Request(ABC):
    """Capabilities an operation needs from its host."""

    def __init__(self, options: RequestOptions | None = None):
        self.options = options or RequestOptions()

    @abstractmethod
    def debug(self, message: str, *args) -> None: ...

    @abstractmethod
    def verbose(self, message: str, *args) -> None: ...

    @abstractmethod
    def warning(self, message: str, *args) -> None: ...

    @abstractmethod
    def error(self, category: ErrorCategory, target: str, template: str, *args) -> None: ...

    @property
    @abstractmethod
    def is_canceled(self) -> bool: ...

    @abstractmethod
    def start_progress(self, parent_id: int, message: str, *args) -> int: ...

    @abstractmethod
    def progress(self, activity_id: int, percent: int, message: str, *args) -> bool: ...

    @abstractmethod
    def complete_progress(self, activity_id: int, success: bool) -> bool: ...

    @abstractmethod
    def yield_software_identity(self, identity: SoftwareIdentity) -> bool: ...

    @abstractmethod
    def yield_package_source(self, source: PackageSource, is_registered: bool) -> bool: ...

    @abstractmethod
    def yield_dynamic_option(self, option: DynamicOption) -> bool: ...

    @abstractmethod
    def add_dependency(self, fast_path: str, dependency: str) -> bool: ...

    @abstractmethod
    def add_metadata(self, fast_path: str, name: str, value: str) -> bool: ...

    @abstractmethod
    def add_link(self, fast_path: str, url: str, relationship: str) -> bool: ...

    @abstractmethod
    def add_entity(self, fast_path: str, name: str, role: str) -> bool: ...


class CollectingRequest(Request):
    """Request that keeps everything yielded to it in memory.

    Subclasses decide how diagnostics are shown.
    """

    def __init__(self, options: RequestOptions | None = None):
        super().__init__(options)
        self.identities: dict[str, SoftwareIdentity] = {}
        self.sources: list[tuple[PackageSource, bool]] = []
        self.dynamic_options: list[DynamicOption] = []
        self.errors: list[tuple[ErrorCategory, str, str]] = []
        self.warnings: list[str] = []
        self.progress_log: list[tuple[int, int, str]] = []
        self._canceled = False
        self._next_activity = 0

    def cancel(self) -> None:
        self._canceled = True

    @property
    def is_canceled(self) -> bool:
        return self._canceled

    @property
    def had_errors(self) -> bool:
        return bool(self.errors)

    def debug(self, message: str, *args) -> None:
        _logging.debug(format_template(message, *args))

    def verbose(self, message: str, *args) -> None:
        _logging.info(format_template(message, *args))

    def warning(self, message: str, *args) -> None:
        self.warnings.append(format_template(message, *args))

    def error(self, category: ErrorCategory, target: str, template: str, *args) -> None:
        self.errors.append((category, target, format_template(template, *args)))

    def start_progress(self, parent_id: int, message: str, *args) -> int:
        self._next_activity += 1
        self.progress_log.append((self._next_activity, 0, format_template(message, *args)))
        return self._next_activity

    def progress(self, activity_id: int, percent: int, message: str, *args) -> bool:
        self.progress_log.append((activity_id, percent, format_template(message, *args)))
        return not self.is_canceled

    def complete_progress(self, activity_id: int, success: bool) -> bool:
        self.progress_log.append((activity_id, 100, "completed" if success else "failed"))
        return True

    def yield_software_identity(self, identity: SoftwareIdentity) -> bool:
        self.identities[identity.fast_path] = identity
        return not self.is_canceled

    def yield_package_source(self, source: PackageSource, is_registered: bool) -> bool:
        self.sources.append((source, is_registered))
        return not self.is_canceled

    def yield_dynamic_option(self, option: DynamicOption) -> bool:
        self.dynamic_options.append(option)
        return True

    def _identity(self, fast_path: str) -> SoftwareIdentity | None:
        return self.identities.get(fast_path)

    def add_dependency(self, fast_path: str, dependency: str) -> bool:
        identity = self._identity(fast_path)
        if identity is not None:
            identity.dependencies.append(dependency)
        return not self.is_canceled

    def add_metadata(self, fast_path: str, name: str, value: str) -> bool:
        identity = self._identity(fast_path)
        if identity is not None:
            identity.metadata[name] = value
        return not self.is_canceled

    def add_link(self, fast_path: str, url: str, relationship: str) -> bool:
        identity = self._identity(fast_path)
        if identity is not None:
            identity.links[relationship] = url
        return not self.is_canceled

    def add_entity(self, fast_path: str, name: str, role: str) -> bool:
        identity = self._identity(fast_path)
        if identity is not None:
            identity.entities.append((name, role))
        return not self.is_canceled

    @property
    def packages(self) -> list[SoftwareIdentity]:
        return list(self.identities.values())


class ConsoleRequest(CollectingRequest):
    """Request used by the CLI: warnings, errors and progress go to stderr."""

    def __init__(self, options: RequestOptions | None = None, show_progress: bool = True):
        super().__init__(options)
        self.show_progress = show_progress

    def warning(self, message: str, *args) -> None:
        super().warning(message, *args)
        click.echo(f"Warning: {format_template(message, *args)}", err=True)

    def error(self, category: ErrorCategory, target: str, template: str, *args) -> None:
        super().error(category, target, template, *args)
        _logging.debug(f"{category.value} error for '{target}'")
        click.echo(format_error(format_template(template, *args)), err=True)

    def progress(self, activity_id: int, percent: int, message: str, *args) -> bool:
        if self.show_progress:
            click.echo(f"[{percent:3d}%] {format_template(message, *args)}", err=True)
        return super().progress(activity_id, percent, message, *args)


PROVIDER_METADATA = (
    ("copyright", "copyright"),
    ("description", "description"),
    ("language", "language"),
    ("releaseNotes", "release_notes"),
    ("published", "published"),
    ("tags", "tags"),
    ("title", "title"),
)

PACKAGE_LINKS = (
    ("license", "license_url"),
    ("project", "project_url"),
    ("icon", "icon_url"),
)


def yield_package(
    request: Request, item: PackageItem, search_key: str, provider_name: str
) -> bool:
    """Yield a package with its dependencies, metadata, links and entities.

    Returns False as soon as the host asks to stop.
    """
    package = item.package
    summary = ""
    if package is not None:
        summary = package.summary or package.description
    identity = SoftwareIdentity(
        fast_path=item.fast_path,
        name=item.id,
        version=item.version,
        version_scheme="semver",
        summary=summary,
        source=item.package_source.name if item.package_source else "",
        search_key=search_key,
        full_path=item.full_path,
        package_filename=item.package_filename,
    )
    if not request.yield_software_identity(identity):
        return False
    if package is None:
        return True

    fast_path = item.fast_path
    for dependency in package.dependencies:
        spec = dependency.version_spec or ""
        name = f"{provider_name.lower()}:{dependency.id}/{spec}"
        if not request.add_dependency(fast_path, name):
            return False

    for name, attr in PROVIDER_METADATA:
        value = getattr(package, attr)
        if value and not request.add_metadata(fast_path, name, str(value)):
            return False
    if not request.add_metadata(
        fast_path, "developmentDependency", str(package.development_dependency).lower()
    ):
        return False
    trusted = item.package_source.trusted if item.package_source else False
    if not request.add_metadata(fast_path, "FromTrustedSource", str(trusted).lower()):
        return False

    for relationship, attr in PACKAGE_LINKS:
        url = getattr(package, attr)
        if url and not request.add_link(fast_path, url, relationship):
            return False

    for author in package.authors:
        if not request.add_entity(fast_path, author, "author"):
            return False
    for owner in package.owners:
        if not request.add_entity(fast_path, owner, "owner"):
            return False
    return True


__all__ = [
    "Request",
    "CollectingRequest",
    "ConsoleRequest",
    "DynamicOption",
    "SoftwareIdentity",
    "yield_package",
]
