"""Provider configuration, request options and the registered-source file."""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .archive import ZIP_SIGNATURE
from .errors import ConfigError, format_field_error
from .execution import INSTALL_TIMEOUT
from .models import PackageSource
from .paths import get_config_path, get_default_destination

PROVIDER_NAME = "NuGet"
DEFAULT_SAVE_MODE = "nupkg"
SAVE_MODES = ("nuspec", "nupkg", "nuspec;nupkg")


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable provider features, built once and handed to each component."""

    name: str = PROVIDER_NAME
    supported_schemes: tuple[str, ...] = ("http", "https", "file")
    supported_extensions: tuple[str, ...] = ("nupkg",)
    magic_signatures: tuple[bytes, ...] = (ZIP_SIGNATURE,)
    install_command: tuple[str, ...] = (sys.executable, "-m", "feedget.extract")
    install_timeout: int = INSTALL_TIMEOUT

    def features(self) -> dict[str, list[str]]:
        return {
            "supported-schemes": list(self.supported_schemes),
            "file-extensions": list(self.supported_extensions),
            "magic-signatures": [sig.hex() for sig in self.magic_signatures],
            "exe": [" ".join(self.install_command)],
        }


def is_true(value) -> bool:
    """Interpret a switch value; strings count only when equal to 'true'."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


@dataclass
class RequestOptions:
    """Dynamic options supplied with one request."""

    sources: list[str] = field(default_factory=list)
    filter_on_tag: list[str] = field(default_factory=list)
    contains: str | None = None
    allow_prerelease_versions: bool = False
    all_versions: bool = False
    skip_validate: bool = False
    config_file: str | None = None
    destination: str | None = None
    skip_dependencies: bool = False
    continue_on_failure: bool = False
    exclude_version: bool = False
    package_save_mode: str = DEFAULT_SAVE_MODE
    is_update: bool = False
    find_by_canonical_id: bool = False

    def __post_init__(self):
        if not self.package_save_mode:
            self.package_save_mode = DEFAULT_SAVE_MODE
        if self.package_save_mode not in SAVE_MODES:
            raise ValueError(
                f"PackageSaveMode must be one of {', '.join(SAVE_MODES)}, "
                f"got '{self.package_save_mode}'"
            )

    @classmethod
    def from_dynamic(cls, values: dict) -> "RequestOptions":
        """Build options from host-style names ('FilterOnTag', 'SkipValidate', ...)."""

        def as_list(value) -> list[str]:
            if value is None:
                return []
            if isinstance(value, str):
                return [value]
            return [str(v) for v in value]

        return cls(
            sources=as_list(values.get("Sources")),
            filter_on_tag=as_list(values.get("FilterOnTag")),
            contains=values.get("Contains"),
            allow_prerelease_versions=is_true(values.get("AllowPrereleaseVersions")),
            all_versions=is_true(values.get("AllVersions")),
            skip_validate=is_true(values.get("SkipValidate")),
            config_file=values.get("ConfigFile"),
            destination=values.get("Destination"),
            skip_dependencies=is_true(values.get("SkipDependencies")),
            continue_on_failure=is_true(values.get("ContinueOnFailure")),
            exclude_version=is_true(values.get("ExcludeVersion")),
            package_save_mode=values.get("PackageSaveMode") or DEFAULT_SAVE_MODE,
            is_update=is_true(values.get("IsUpdate")),
            find_by_canonical_id=is_true(values.get("FindByCanonicalId")),
        )

    @property
    def destination_path(self) -> Path:
        if self.destination:
            return Path(os.path.expanduser(self.destination))
        return get_default_destination()


def preprocess_jsonish(text: str) -> str:
    """Turn JSON-ish text into strict JSON.

    '//' line comments and trailing commas before ']' or '}' are replaced
    with spaces so line/column positions in error messages still match the
    original text.
    """
    out = list(text)
    n = len(text)
    i = 0
    in_string = False

    while i < n:
        char = text[i]
        if in_string:
            if char == "\\":
                i += 2
                continue
            if char == '"':
                in_string = False
            i += 1
            continue

        if char == '"':
            in_string = True
        elif char == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                out[i] = " "
                i += 1
            continue
        elif char == ",":
            j = i + 1
            while j < n:
                if text[j] in " \t\r\n":
                    j += 1
                elif text.startswith("//", j):
                    while j < n and text[j] != "\n":
                        j += 1
                else:
                    break
            if j < n and text[j] in "]}":
                out[i] = " "
        i += 1

    return "".join(out)


def _format_syntax_error(original_text: str, error: json.JSONDecodeError) -> str:
    """Format a JSON syntax error with line, caret, and context."""
    lines = original_text.split("\n")
    parts = [f"Config syntax error at line {error.lineno}, col {error.colno}: {error.msg}"]
    if 1 <= error.lineno <= len(lines):
        parts.append(lines[error.lineno - 1])
        parts.append(" " * (error.colno - 1) + "^")
    return "\n".join(parts)


def load_config(path_or_text: Path | str) -> dict:
    """Load and parse a JSON-ish config file or string.

    Raises:
        ConfigError: If the file cannot be read or contains syntax errors.
        TypeError: If path_or_text is neither Path nor str.
    """
    if isinstance(path_or_text, Path):
        try:
            original_text = path_or_text.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path_or_text}")
        except UnicodeDecodeError:
            raise ConfigError(f"Config file is not valid UTF-8: {path_or_text}")
        except OSError as e:
            raise ConfigError(f"Error reading config file {path_or_text}: {e}")
    elif isinstance(path_or_text, str):
        original_text = path_or_text
    else:
        raise TypeError(
            f"path_or_text must be Path or str, got {type(path_or_text).__name__}"
        )

    try:
        result = json.loads(preprocess_jsonish(original_text))
    except json.JSONDecodeError as e:
        raise ConfigError(_format_syntax_error(original_text, e)) from e

    if not isinstance(result, dict):
        raise ConfigError(f"Config must be a JSON object, got {type(result).__name__}")
    return result


def validate_sources(data: dict) -> list[PackageSource]:
    """Validate the 'sources' array of a registry file.

    Raises:
        ConfigError: If validation fails, naming the offending field path
    """
    raw_sources = data.get("sources", [])
    if not isinstance(raw_sources, list):
        raise ConfigError(f"sources must be a list, got {type(raw_sources).__name__}")

    sources = []
    for i, entry in enumerate(raw_sources):
        entity = f"sources[{i}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{entity} must be an object, got {type(entry).__name__}")
        for field_name in ("name", "location"):
            value = entry.get(field_name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(
                    format_field_error(entity, field_name, "must be a non-empty string")
                )
        for field_name in ("trusted", "validated"):
            value = entry.get(field_name, False)
            if not isinstance(value, bool):
                raise ConfigError(format_field_error(entity, field_name, "must be a boolean"))
        sources.append(
            PackageSource(
                name=entry["name"],
                location=entry["location"],
                trusted=entry.get("trusted", False),
                is_registered=True,
                is_validated=entry.get("validated", False),
            )
        )
    return sources


class SourceRegistry:
    """The registered-source table, persisted as a JSON-ish file.

    Writes rewrite the whole file; concurrent writers are last-writer-wins.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or get_config_path()
        self._sources: dict[str, PackageSource] | None = None

    @property
    def sources(self) -> dict[str, PackageSource]:
        if self._sources is None:
            self._sources = {}
            if self.path.exists():
                for source in validate_sources(load_config(self.path)):
                    self._sources[source.name] = source
        return self._sources

    def get(self, name: str) -> PackageSource | None:
        if name in self.sources:
            return self.sources[name]
        lowered = name.lower()
        for key, source in self.sources.items():
            if key.lower() == lowered:
                return source
        return None

    def add(self, name: str, location: str, trusted: bool, validated: bool) -> PackageSource:
        existing = self.get(name)
        if existing is not None:
            del self.sources[existing.name]
        source = PackageSource(
            name=name,
            location=location,
            trusted=trusted,
            is_registered=True,
            is_validated=validated,
        )
        self.sources[name] = source
        self.save()
        return source

    def remove(self, name: str) -> PackageSource | None:
        source = self.get(name)
        if source is not None:
            del self.sources[source.name]
            self.save()
        return source

    def save(self) -> None:
        data = {
            "sources": [
                {
                    "name": s.name,
                    "location": s.location,
                    "trusted": s.trusted,
                    "validated": s.is_validated,
                }
                for s in self.sources.values()
            ]
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Error writing config file {self.path}: {e}")


__all__ = [
    "PROVIDER_NAME",
    "DEFAULT_SAVE_MODE",
    "SAVE_MODES",
    "ProviderConfig",
    "RequestOptions",
    "SourceRegistry",
    "is_true",
    "preprocess_jsonish",
    "load_config",
    "validate_sources",
]
