"""Version normalization, comparison and range matching."""

import re
from dataclasses import dataclass
from typing import Iterable, TypeVar

from packaging.version import InvalidVersion, Version

T = TypeVar("T")

RANGE_CHARACTERS = "()[],"

_VERSION_PREFIX = re.compile(r"^\s*v?(\d+(?:\.\d+)*)(?:[-.]?(.+))?$")


def fix_version(version: str | None) -> str | None:
    """Normalize a user-typed version fragment.

    '.5' becomes '0.5' and a bare '1' becomes '1.0'. Empty input is
    returned unchanged.
    """
    if version and version.strip():
        if version[0] == ".":
            version = "0" + version
        if "." not in version:
            version = version + ".0"
    return version


def parse_version(version: str) -> Version:
    """Parse a package version, accepting semver-style prerelease labels.

    Build metadata after '+' is ignored. Labels that PEP 440 does not know
    (e.g. '1.0.0-foo') sort as a prerelease of their numeric part.

    Raises:
        InvalidVersion: If the string has no numeric version at all
    """
    text = (version or "").split("+", 1)[0].strip()
    try:
        return Version(text)
    except InvalidVersion:
        match = _VERSION_PREFIX.match(text)
        if not match:
            raise
        release, label = match.group(1), match.group(2)
        if label:
            return Version(f"{release}.dev0")
        return Version(release)


def compare_versions(version1: str, version2: str) -> int:
    """Compare two version strings. Returns -1, 0, or 1."""
    v1 = parse_version(version1)
    v2 = parse_version(version2)
    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    return 0


def versions_equal(version1: str, version2: str) -> bool:
    try:
        return parse_version(version1) == parse_version(version2)
    except InvalidVersion:
        return version1.strip().lower() == version2.strip().lower()


def is_prerelease(version: str) -> bool:
    try:
        return parse_version(version).is_prerelease
    except InvalidVersion:
        return False


def version_sort_key(version: str) -> tuple[int, Version]:
    """Sort key that places unparsable versions below every valid one."""
    try:
        return (1, parse_version(version))
    except InvalidVersion:
        return (0, Version("0"))


def is_range_expression(spec: str | None) -> bool:
    """True when the version text is a bracketed range like '[1.0,2.0)'."""
    return bool(spec) and any(c in spec for c in RANGE_CHARACTERS)


def is_valid_range(minimum: str | None, maximum: str | None) -> bool:
    """A range is invalid only when both bounds are set and min > max."""
    if not minimum or not maximum:
        return True
    try:
        return parse_version(minimum) <= parse_version(maximum)
    except InvalidVersion:
        return False


def version_matches(
    version: str,
    required: str | None = None,
    minimum: str | None = None,
    maximum: str | None = None,
) -> bool:
    """Check a version against an exact requirement or an inclusive range.

    When required is set, minimum and maximum are ignored.
    """
    if not required and not minimum and not maximum:
        return True
    try:
        v = parse_version(version)
        if required:
            return v == parse_version(required)
        if minimum and v < parse_version(minimum):
            return False
        if maximum and v > parse_version(maximum):
            return False
        return True
    except InvalidVersion:
        return False


def installed_version_matches(
    version: str,
    required: str | None = None,
    minimum: str | None = None,
    maximum: str | None = None,
) -> bool:
    """Version check used when listing installed packages.

    The maximum bound rejects versions *below* it, so only versions at or
    above the maximum pass. Installed-package listing has always behaved
    this way and callers depend on it; see DESIGN.md.
    """
    try:
        v = parse_version(version)
        if required and required.strip():
            return v == parse_version(required)
        if minimum and minimum.strip() and v < parse_version(minimum):
            return False
        if maximum and maximum.strip() and v < parse_version(maximum):
            return False
        return True
    except InvalidVersion:
        return False


def filter_by_version(
    items: Iterable[T],
    required: str | None = None,
    minimum: str | None = None,
    maximum: str | None = None,
) -> list[T]:
    """Keep items whose ``version`` attribute satisfies the constraint."""
    return [
        item
        for item in items
        if version_matches(getattr(item, "version"), required, minimum, maximum)
    ]


def latest_versions(items: Iterable[T], allow_prerelease: bool = False) -> list[T]:
    """Collapse items to the highest version per id, keeping first-seen id order."""
    best: dict[str, T] = {}
    for item in items:
        version = getattr(item, "version")
        if not allow_prerelease and is_prerelease(version):
            continue
        key = getattr(item, "id").lower()
        current = best.get(key)
        if current is None or version_sort_key(version) > version_sort_key(
            getattr(current, "version")
        ):
            best[key] = item
    return list(best.values())


def mark_latest(items: list[T]) -> list[T]:
    """Set is_latest_version / is_absolute_latest_version flags on items."""
    stable = {id(i) for i in latest_versions(items, allow_prerelease=False)}
    absolute = {id(i) for i in latest_versions(items, allow_prerelease=True)}
    for item in items:
        setattr(item, "is_latest_version", id(item) in stable)
        setattr(item, "is_absolute_latest_version", id(item) in absolute)
    return items


@dataclass(frozen=True)
class VersionRange:
    """A bracketed version range such as '[1.0,2.0)', '(,3.0]' or '[1.2]'.

    A plain version string ('1.0') means 'at least 1.0'.
    """

    min_version: str | None = None
    min_inclusive: bool = True
    max_version: str | None = None
    max_inclusive: bool = False
    original: str = ""

    @classmethod
    def parse(cls, spec: str) -> "VersionRange":
        """Parse a range expression.

        Raises:
            ValueError: If the expression is malformed or min > max
        """
        text = (spec or "").strip()
        if not text:
            raise ValueError("Version range is empty")

        if text[0] not in "[(":
            if any(c in text for c in "]),"):
                raise ValueError(f"Invalid version range: '{spec}'")
            _validate(text, spec)
            return cls(min_version=text, min_inclusive=True, original=text)

        if len(text) < 3 or text[-1] not in "])":
            raise ValueError(f"Invalid version range: '{spec}'")

        min_inclusive = text[0] == "["
        max_inclusive = text[-1] == "]"
        parts = text[1:-1].split(",")

        if len(parts) == 1:
            exact = parts[0].strip()
            if not exact or not (min_inclusive and max_inclusive):
                raise ValueError(f"Invalid version range: '{spec}'")
            _validate(exact, spec)
            return cls(exact, True, exact, True, text)

        if len(parts) != 2:
            raise ValueError(f"Invalid version range: '{spec}'")

        low = parts[0].strip() or None
        high = parts[1].strip() or None
        if low is None and high is None:
            raise ValueError(f"Invalid version range: '{spec}'")
        if low:
            _validate(low, spec)
        if high:
            _validate(high, spec)
        if low and high and parse_version(low) > parse_version(high):
            raise ValueError(f"Invalid version range: '{spec}'")
        return cls(low, min_inclusive, high, max_inclusive, text)

    def contains(self, version: str, allow_prerelease: bool = True) -> bool:
        try:
            v = parse_version(version)
        except InvalidVersion:
            return False
        if v.is_prerelease and not allow_prerelease:
            return False
        if self.min_version:
            low = parse_version(self.min_version)
            if v < low or (v == low and not self.min_inclusive):
                return False
        if self.max_version:
            high = parse_version(self.max_version)
            if v > high or (v == high and not self.max_inclusive):
                return False
        return True

    def __str__(self) -> str:
        if self.original:
            return self.original
        return "{}{},{}{}".format(
            "[" if self.min_inclusive else "(",
            self.min_version or "",
            self.max_version or "",
            "]" if self.max_inclusive else ")",
        )


def _validate(version: str, spec: str) -> None:
    try:
        parse_version(version)
    except InvalidVersion as e:
        raise ValueError(f"Invalid version '{version}' in range '{spec}'") from e


__all__ = [
    "RANGE_CHARACTERS",
    "VersionRange",
    "fix_version",
    "parse_version",
    "compare_versions",
    "versions_equal",
    "is_prerelease",
    "version_sort_key",
    "is_range_expression",
    "is_valid_range",
    "version_matches",
    "installed_version_matches",
    "filter_by_version",
    "latest_versions",
    "mark_latest",
]
