"""Configuration path helpers for feedget."""

import os
from pathlib import Path


def get_config_dir() -> Path:
    """Return XDG-compliant config directory: ~/.config/feedget"""
    return Path.home() / ".config" / "feedget"


def get_config_path(create: bool = False) -> Path:
    """Return path to the registered sources file.

    Priority:
    1. FEEDGET_CONFIG environment variable (if set)
    2. ~/.config/feedget/sources.json (default XDG location)

    Args:
        create: If True, create the parent directory if missing

    Returns:
        Path to config file
    """
    if "FEEDGET_CONFIG" in os.environ:
        config_path = Path(os.environ["FEEDGET_CONFIG"])
    else:
        config_path = get_config_dir() / "sources.json"
    if create:
        config_path.parent.mkdir(parents=True, exist_ok=True)
    return config_path


def get_default_destination() -> Path:
    """Return the directory packages are installed into by default.

    FEEDGET_DESTINATION overrides ~/.local/share/feedget/packages.
    """
    if "FEEDGET_DESTINATION" in os.environ:
        return Path(os.environ["FEEDGET_DESTINATION"])
    return Path.home() / ".local" / "share" / "feedget" / "packages"
