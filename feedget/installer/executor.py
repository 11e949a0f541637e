"""The external mechanism that places one package on disk."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..config import ProviderConfig
from ..execution import AsyncProcess
from ..models import PackageItem


class InstallExecutor(ABC):
    """Starts an install of exactly one package.

    The returned process streams lines such as
    "Successfully installed 'Foo 1.0'." on stdout and warnings on stderr.
    """

    @abstractmethod
    def install(
        self,
        item: PackageItem,
        source_location: str,
        destination: Path,
        save_mode: str,
        exclude_version: bool,
    ) -> AsyncProcess: ...


class ProcessInstallExecutor(InstallExecutor):
    """Runs the configured install command as a child process."""

    def __init__(self, config: ProviderConfig):
        self.config = config

    def build_args(
        self,
        item: PackageItem,
        source_location: str,
        destination: Path,
        save_mode: str,
        exclude_version: bool,
    ) -> list[str]:
        args = [
            *self.config.install_command,
            "install",
            item.id,
            "-Version",
            item.version,
            "-Source",
            source_location,
            "-PackageSaveMode",
            save_mode,
            "-OutputDirectory",
            str(destination),
            "-Verbosity",
            "detailed",
        ]
        if exclude_version:
            args.append("-ExcludeVersion")
        return args

    def install(
        self,
        item: PackageItem,
        source_location: str,
        destination: Path,
        save_mode: str,
        exclude_version: bool,
    ) -> AsyncProcess:
        return AsyncProcess(
            self.build_args(item, source_location, destination, save_mode, exclude_version),
            timeout=self.config.install_timeout,
        )


__all__ = ["InstallExecutor", "ProcessInstallExecutor"]
