"""Error types, categories and message templates.

This module provides the exceptions raised inside feedget and the helpers
used to format the messages reported back to the host.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Message templates use positional '{0}' placeholders filled at report time
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
"""

from enum import Enum


class ConfigError(Exception):
    """Raised when the source registry file cannot be loaded or parsed.

    Provides detailed error messages including line numbers,
    column positions, and caret indicators for syntax errors.
    """

    pass


class FeedError(Exception):
    """Raised when a package feed cannot be reached or returns bad data."""

    def __init__(self, location: str, message: str):
        super().__init__(f"{location}: {message}")
        self.location = location


class ArchiveError(Exception):
    """Raised when a package archive is missing, unreadable or malformed."""

    pass


class DependencyResolutionError(Exception):
    """Raised when a dependency has no candidate in any selected source."""

    def __init__(self, package: str, dependency: str):
        super().__init__(f"Unable to resolve dependency '{dependency}' of '{package}'")
        self.package = package
        self.dependency = dependency


class SourceResolutionError(Exception):
    """Raised when a source name, location or URI cannot be turned into a source.

    Carries the message template and arguments so callers can report it as
    an error or downgrade it to a warning.
    """

    def __init__(self, category: "ErrorCategory", template: str, *args):
        super().__init__(format_template(template, *args))
        self.category = category
        self.template = template
        self.template_args = args


class ErrorCategory(Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    OBJECT_NOT_FOUND = "ObjectNotFound"
    INVALID_DATA = "InvalidData"
    INVALID_RESULT = "InvalidResult"
    CONNECTION_ERROR = "ConnectionError"


class Messages:
    """Message templates reported through the host channel."""

    MISSING_REQUIRED_PARAMETER = "Missing required parameter '{0}'"
    PACKAGE_SOURCE_EXISTS = "Package source '{0}' already exists"
    UNABLE_TO_RESOLVE_SOURCE = "Unable to resolve package source '{0}'"
    SOURCE_LOCATION_NOT_VALID = "Source location '{0}' is not valid"
    URI_SCHEME_NOT_SUPPORTED = "URI scheme not supported: '{0}'"
    INVALID_VERSION_RANGE = (
        "Minimum version '{0}' must be less than or equal to maximum version '{1}'"
    )
    UNABLE_TO_RESOLVE_PACKAGE = "Unable to resolve package reference '{0}'"
    DEPENDENCY_RESOLUTION_ERROR = "Unable to resolve dependent package '{0}'"
    DEPENDENT_PACKAGE_FAILED_INSTALL = "Dependent package '{0}' failed to install"
    PACKAGE_FAILED_INSTALL = "Package '{0}' failed to install"
    MULTIPLE_PACKAGES_INSTALLED_EXPECTED_ONE = (
        "Install of '{0}' did not report exactly the expected package"
    )
    FEED_UNAVAILABLE = "Package source '{0}' failed: {1}"
    CONFIG_INVALID = "Unable to load package sources: {0}"


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Args:
        message: The error message to format

    Returns:
        Formatted error message with 'Error: ' prefix

    Examples:
        >>> format_error("package source 'nuget.org' not found")
        "Error: package source 'nuget.org' not found"
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Args:
        entity: Name of the entity being validated (e.g., "sources[0]")
        field: Name of the field that failed validation
        issue: Description of the issue (e.g., "must be a non-empty string")

    Returns:
        Formatted field error message

    Examples:
        >>> format_field_error("sources[0]", "location", "is required")
        "sources[0] field 'location' is required"
    """
    return f"{entity} field '{field}' {issue}"


def format_template(template: str, *args) -> str:
    """Fill a message template, tolerating missing or extra arguments."""
    try:
        return template.format(*args)
    except (IndexError, KeyError):
        return " ".join([template, *(str(a) for a in args)])


__all__ = [
    "ConfigError",
    "FeedError",
    "ArchiveError",
    "DependencyResolutionError",
    "SourceResolutionError",
    "ErrorCategory",
    "Messages",
    "format_error",
    "format_field_error",
    "format_template",
]
