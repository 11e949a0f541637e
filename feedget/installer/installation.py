"""Driving the install executor and classifying what it reports."""

import asyncio
import logging
import re
import shutil
from pathlib import Path

from ..config import ProviderConfig
from ..errors import DependencyResolutionError, ErrorCategory, Messages
from ..models import InstallResult, InstallStatus, PackageItem
from ..request import Request, yield_package
from ..search import PackageSearch
from .dependencies import DependencyWalker, is_package_installed
from .executor import InstallExecutor

# Successfully installed 'ComicRack 0.9.162'.
PACKAGE_LINE_PATTERN = re.compile(r"'(?P<id>\S*)\s(?P<version>.*?)'")
_BARE_PACKAGE_LINE = re.compile(r"^\s*(?P<id>\S+)\s+(?P<version>\d\S*)")

LINE_MARKERS = (
    ("successfully installed", InstallStatus.SUCCESSFUL),
    ("already installed", InstallStatus.ALREADY_PRESENT),
    ("not installed", InstallStatus.FAILED),
)

_logging = logging.getLogger(__name__)


def classify_line(line: str) -> InstallStatus | None:
    """Outcome named by one line of installer output, if any."""
    lowered = line.lower()
    for marker, status in LINE_MARKERS:
        if marker in lowered:
            return status
    return None


def parse_package_line(line: str) -> tuple[str, str] | None:
    """Pull (id, version) out of "... 'Id Version' ..." or a bare "Id Version ..." line."""
    match = PACKAGE_LINE_PATTERN.search(line) or _BARE_PACKAGE_LINE.match(line)
    if not match:
        return None
    return match.group("id"), match.group("version")


class InstallHooks:
    """Extension points around each install and uninstall.

    Each returns False to signal failure. A failed post_install rolls the
    package back out.
    """

    async def pre_install(self, item: PackageItem) -> bool:
        return True

    async def post_install(self, item: PackageItem) -> bool:
        return True

    async def pre_uninstall(self, item: PackageItem) -> bool:
        return True

    async def post_uninstall(self, item: PackageItem) -> bool:
        return True


class InstallOrchestrator:
    """Installs a package and its missing dependencies, one unit at a time."""

    def __init__(
        self,
        request: Request,
        search: PackageSearch,
        executor: InstallExecutor,
        config: ProviderConfig | None = None,
        hooks: InstallHooks | None = None,
    ):
        self.request = request
        self.search = search
        self.executor = executor
        self.config = config or ProviderConfig()
        self.hooks = hooks or InstallHooks()
        self.walker = DependencyWalker(search, self.config.name, self.is_installed)

    @property
    def options(self):
        return self.request.options

    @property
    def destination(self) -> Path:
        return self.options.destination_path

    async def is_installed(self, package_id: str, version: str) -> bool:
        return await is_package_installed(self.destination, package_id, version)

    def canonical_id(self, item: PackageItem) -> str:
        return item.get_canonical_id(self.config.name)

    def parse_output_line(self, invoked: PackageItem, line: str) -> PackageItem:
        """Item for a package named in installer output.

        Lines naming the invoked package inherit its source and metadata.
        Lines with nothing parsable are attributed to the invoked package.
        """
        parsed = parse_package_line(line)
        package_id, version = parsed if parsed else (invoked.id, invoked.version)
        is_invoked = package_id == invoked.id and version == invoked.version
        folder = package_id if self.options.exclude_version else f"{package_id}.{version}"
        return PackageItem(
            invoked.package if is_invoked else None,
            invoked.package_source if is_invoked else None,
            package_id=package_id,
            version=version,
            full_path=str(self.destination / folder),
        )

    async def run_install(self, item: PackageItem) -> InstallResult:
        """Run the executor for one package and classify its output."""
        result = InstallResult()
        location = item.package_source.location if item.package_source else ""
        process = self.executor.install(
            item,
            location,
            self.destination,
            self.options.package_save_mode,
            self.options.exclude_version,
        )
        try:
            async with process:
                async for line in process.stdout_lines():
                    self.request.verbose("Installer: {0}", line)
                    status = classify_line(line)
                    if status is not None:
                        result.add(status, self.parse_output_line(item, line))
                for line in process.stderr_lines():
                    self.request.warning("Installer: {0}", line)
        except (TimeoutError, OSError, ValueError) as e:
            _logging.error(f"Install of {item.full_name} failed to run: {e}")
            self.request.warning("Installer: {0}", e)
            result.add(InstallStatus.FAILED, item)
        return result

    async def install_single_package(self, item: PackageItem) -> bool:
        await self.hooks.pre_install(item)
        result = await self.run_install(item)

        if result.status == InstallStatus.SUCCESSFUL:
            for installed in result.get(InstallStatus.SUCCESSFUL):
                if self.request.is_canceled:
                    self.request.verbose("Package installation cancelled")
                    return False
                if not await self.hooks.post_install(installed):
                    await self.uninstall_package(installed, report=False)
                    return False
                source_name = item.package_source.name if item.package_source else ""
                yield_package(self.request, item, source_name, self.config.name)
            return True

        if result.status == InstallStatus.ALREADY_PRESENT:
            self.request.verbose(
                "Skipped package '{0} v{1}' already installed", item.id, item.version
            )
            return True

        canonical = self.canonical_id(item)
        self.request.error(
            ErrorCategory.INVALID_RESULT,
            canonical,
            Messages.MULTIPLE_PACKAGES_INSTALLED_EXPECTED_ONE,
            canonical,
        )
        return False

    async def install_package(self, item: PackageItem) -> bool:
        """Install item after every dependency it is missing.

        A failed dependency stops the run unless ContinueOnFailure is set.
        Nothing already installed is rolled back. Cancellation stops quietly
        between units.
        """
        canonical = self.canonical_id(item)
        dependencies: list[PackageItem] = []
        if not self.options.skip_dependencies:
            try:
                dependencies = await self.walker.install_order(item)
            except DependencyResolutionError as e:
                self.request.error(
                    ErrorCategory.OBJECT_NOT_FOUND,
                    e.package,
                    Messages.DEPENDENCY_RESOLUTION_ERROR,
                    e.dependency,
                )
                return False

        progress_id = None
        if dependencies:
            progress_id = self.request.start_progress(0, "Installing package '{0}'", canonical)

        total = len(dependencies) + 1
        all_succeeded = True
        for n, dependency in enumerate(dependencies):
            if self.request.is_canceled:
                return False
            dependency_id = self.canonical_id(dependency)
            self.request.progress(
                progress_id, n * 100 // total + 1, "Installing dependent package '{0}'", dependency_id
            )
            if not await self.install_single_package(dependency):
                if self.request.is_canceled:
                    return False
                self.request.error(
                    ErrorCategory.INVALID_RESULT,
                    canonical,
                    Messages.DEPENDENT_PACKAGE_FAILED_INSTALL,
                    dependency_id,
                )
                all_succeeded = False
                if not self.options.continue_on_failure:
                    self.request.complete_progress(progress_id, False)
                    return False
                continue
            self.request.progress(
                progress_id, (n + 1) * 100 // total, "Installed dependent package '{0}'", dependency_id
            )

        if self.request.is_canceled:
            return False

        installed = await self.install_single_package(item)
        if not installed and not self.request.is_canceled:
            self.request.error(
                ErrorCategory.INVALID_RESULT, canonical, Messages.PACKAGE_FAILED_INSTALL, canonical
            )
        if progress_id is not None:
            self.request.complete_progress(progress_id, installed and all_succeeded)
        return installed and all_succeeded

    async def uninstall_package(self, item: PackageItem, report: bool = True) -> bool:
        """Remove the package's install folder.

        A package with no install folder is already gone; that counts as
        success.
        """
        directory = item.installed_directory
        if directory is None:
            self.request.debug("No installed folder for '{0}'", item.full_name)
            return True

        if await self.hooks.pre_uninstall(item):
            await asyncio.to_thread(shutil.rmtree, directory)
        result = await self.hooks.post_uninstall(item)
        if report:
            yield_package(self.request, item, item.id, self.config.name)
        return result


__all__ = [
    "PACKAGE_LINE_PATTERN",
    "InstallHooks",
    "InstallOrchestrator",
    "classify_line",
    "parse_package_line",
]
