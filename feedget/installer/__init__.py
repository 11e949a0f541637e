"""Dependency walking and install orchestration."""

from .dependencies import DependencyWalker, is_package_installed
from .executor import InstallExecutor, ProcessInstallExecutor
from .installation import (
    PACKAGE_LINE_PATTERN,
    InstallHooks,
    InstallOrchestrator,
    classify_line,
    parse_package_line,
)

__all__ = [
    "DependencyWalker",
    "is_package_installed",
    "InstallExecutor",
    "ProcessInstallExecutor",
    "PACKAGE_LINE_PATTERN",
    "InstallHooks",
    "InstallOrchestrator",
    "classify_line",
    "parse_package_line",
]
