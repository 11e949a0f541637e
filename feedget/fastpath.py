"""Fastpath tokens: compact references to a package found in a feed.

A token has the shape ``$<source>\\<id>\\<version>\\<sources>`` where every
field is base64 encoded and the source hints are joined with ``|``. The
token lets install, uninstall and download re-identify a package without
searching again.
"""

import base64
import re

SOURCES_DELIMITER = "|"

FASTPATH_PATTERN = re.compile(
    r"\$(?P<source>[\w+/=]*)\\(?P<id>[\w+/=]*)\\(?P<version>[\w+/=]*)\\(?P<sources>[\w+/=|]*)"
)


def to_base64(text: str | None) -> str:
    if not text:
        return ""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def from_base64(text: str) -> str:
    """Decode a base64 field.

    Raises:
        ValueError: If the field is not valid base64 or not UTF-8
    """
    if not text:
        return ""
    return base64.b64decode(text, validate=True).decode("utf-8")


def encode_fastpath(
    source: str | None,
    package_id: str,
    version: str,
    sources: list[str] | None = None,
) -> str:
    """Build a fastpath token from a source location, id, version and source hints.

    Empty hints are dropped and a missing source is encoded as an empty
    field, so they decode as absent hints and an empty source string.
    """
    joined = SOURCES_DELIMITER.join(to_base64(s) for s in (sources or []) if s)
    return "${}\\{}\\{}\\{}".format(
        to_base64(source), to_base64(package_id), to_base64(version), joined
    )


def decode_fastpath(
    token: str | None,
) -> tuple[str | None, str | None, str | None, list[str], bool]:
    """Split a fastpath token back into (source, id, version, sources, success).

    Never raises: malformed input gives success=False with empty fields, so
    callers must check the flag before using the other values.
    """
    failed = (None, None, None, [], False)
    if not token:
        return failed

    match = FASTPATH_PATTERN.fullmatch(token.strip())
    if not match:
        return failed

    try:
        source = from_base64(match.group("source"))
        package_id = from_base64(match.group("id"))
        version = from_base64(match.group("version"))
        raw_sources = match.group("sources")
        sources = (
            [from_base64(s) for s in raw_sources.split(SOURCES_DELIMITER)]
            if raw_sources
            else []
        )
    except ValueError:
        return failed

    return source, package_id, version, sources, True


def is_fastpath(token: str | None) -> bool:
    return decode_fastpath(token)[4]


__all__ = [
    "FASTPATH_PATTERN",
    "encode_fastpath",
    "decode_fastpath",
    "is_fastpath",
]
