"""feedget: find, install and remove packages from NuGet-style feeds."""

import logging

from .config import ProviderConfig, RequestOptions, SourceRegistry, load_config
from .errors import (
    ConfigError,
    DependencyResolutionError,
    ErrorCategory,
    FeedError,
    Messages,
    format_error,
)
from .fastpath import decode_fastpath, encode_fastpath, is_fastpath
from .models import InstallResult, InstallStatus, PackageItem, PackageSource
from .provider import PackageProvider
from .request import CollectingRequest, ConsoleRequest, Request

__version__ = "0.1.0"

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Configure the feedget logger: DEBUG with --debug, WARNING otherwise."""
    logger = logging.getLogger("feedget")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


__all__ = [
    "__version__",
    "setup_logging",
    "ProviderConfig",
    "RequestOptions",
    "SourceRegistry",
    "load_config",
    "ConfigError",
    "DependencyResolutionError",
    "ErrorCategory",
    "FeedError",
    "Messages",
    "format_error",
    "decode_fastpath",
    "encode_fastpath",
    "is_fastpath",
    "InstallResult",
    "InstallStatus",
    "PackageItem",
    "PackageSource",
    "PackageProvider",
    "CollectingRequest",
    "ConsoleRequest",
    "Request",
]
