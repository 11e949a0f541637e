"""Reading and extracting .nupkg package archives.

An archive is a zip file holding one ``*.nuspec`` XML manifest at its root
plus the package content. Manifest namespaces vary between schema
versions, so elements are matched by local name only.
"""

import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from xml.etree import ElementTree

from .errors import ArchiveError
from .models import ARCHIVE_EXTENSION, DependencySet, PackageDependency, PackageMetadata

ZIP_SIGNATURE = b"PK\x03\x04"

# Zip members written by the packing tool that are not package content.
_PACKAGING_ENTRIES = ("_rels/", "package/", "[Content_Types].xml")

_logging = logging.getLogger(__name__)


def is_package_file(
    path: Path | str,
    extensions: tuple[str, ...] = ("nupkg",),
    signatures: tuple[bytes, ...] = (ZIP_SIGNATURE,),
) -> bool:
    """True when path is an existing file with a known extension and signature."""
    path = Path(path)
    if path.suffix.lstrip(".").lower() not in extensions:
        return False
    try:
        with path.open("rb") as f:
            head = f.read(max(len(s) for s in signatures))
    except OSError:
        return False
    return any(head.startswith(sig) for sig in signatures)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element, name: str):
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _text(element, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _names(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _dependency(element) -> PackageDependency | None:
    dep_id = element.get("id")
    if not dep_id:
        return None
    return PackageDependency(id=dep_id, version_spec=element.get("version") or None)


def parse_nuspec(xml_bytes: bytes) -> PackageMetadata:
    """Parse manifest XML into PackageMetadata.

    Raises:
        ArchiveError: If the XML is malformed or lacks id/version
    """
    try:
        root = ElementTree.fromstring(xml_bytes)
    except ElementTree.ParseError as e:
        raise ArchiveError(f"Invalid package manifest: {e}") from e

    metadata = _child(root, "metadata")
    if metadata is None:
        raise ArchiveError("Package manifest has no <metadata> element")

    package_id = _text(metadata, "id")
    version = _text(metadata, "version")
    if not package_id or not version:
        raise ArchiveError("Package manifest must declare both id and version")

    dependency_sets = []
    dependencies = _child(metadata, "dependencies")
    if dependencies is not None:
        flat = []
        for node in dependencies:
            name = _local(node.tag)
            if name == "dependency":
                dep = _dependency(node)
                if dep:
                    flat.append(dep)
            elif name == "group":
                group = DependencySet(target_framework=node.get("targetFramework"))
                for dep_node in node:
                    if _local(dep_node.tag) == "dependency":
                        dep = _dependency(dep_node)
                        if dep:
                            group.dependencies.append(dep)
                dependency_sets.append(group)
        if flat:
            dependency_sets.insert(0, DependencySet(dependencies=flat))

    return PackageMetadata(
        id=package_id,
        version=version,
        title=_text(metadata, "title"),
        summary=_text(metadata, "summary"),
        description=_text(metadata, "description") or "",
        tags=_text(metadata, "tags") or "",
        authors=_names(_text(metadata, "authors")),
        owners=_names(_text(metadata, "owners")),
        copyright=_text(metadata, "copyright"),
        language=_text(metadata, "language"),
        release_notes=_text(metadata, "releaseNotes"),
        project_url=_text(metadata, "projectUrl"),
        license_url=_text(metadata, "licenseUrl"),
        icon_url=_text(metadata, "iconUrl"),
        development_dependency=(_text(metadata, "developmentDependency") or "").lower()
        == "true",
        dependency_sets=dependency_sets,
    )


def _manifest_name(archive: zipfile.ZipFile) -> str:
    for name in archive.namelist():
        if "/" not in name and name.lower().endswith(".nuspec"):
            return name
    raise ArchiveError("Package archive contains no .nuspec manifest")


def read_package(path: Path | str) -> PackageMetadata:
    """Read the manifest of a package archive.

    Raises:
        ArchiveError: If the file is missing, not a zip, or has no valid manifest
    """
    path = Path(path)
    try:
        with zipfile.ZipFile(path) as archive:
            package = parse_nuspec(archive.read(_manifest_name(archive)))
    except FileNotFoundError:
        raise ArchiveError(f"Package file not found: {path}")
    except zipfile.BadZipFile:
        raise ArchiveError(f"Not a valid package archive: {path}")
    except OSError as e:
        raise ArchiveError(f"Error reading package archive {path}: {e}")
    package.archive_path = str(path)
    return package


def _safe_target(target_dir: Path, member: str) -> Path | None:
    relative = PurePosixPath(member)
    if relative.is_absolute() or ".." in relative.parts:
        return None
    return target_dir.joinpath(*relative.parts)


def extract_package(
    archive_path: Path | str, target_dir: Path | str, save_mode: str = "nupkg"
) -> PackageMetadata:
    """Unpack an archive into target_dir.

    Package content is always extracted. save_mode decides which of the
    archive ('nupkg') and the manifest ('nuspec') are kept beside it. The
    archive copy is named after target_dir so the folder is recognized as
    the package's install location.

    Raises:
        ArchiveError: If the archive cannot be read
    """
    archive_path = Path(archive_path)
    target_dir = Path(target_dir)
    package = read_package(archive_path)
    modes = {mode.strip().lower() for mode in save_mode.split(";")}

    target_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            manifest = _manifest_name(archive)
            for member in archive.infolist():
                name = member.filename
                if member.is_dir() or name.startswith(_PACKAGING_ENTRIES):
                    continue
                if name == manifest and "nuspec" not in modes:
                    continue
                target = _safe_target(target_dir, name)
                if target is None:
                    _logging.warning(f"Skipping unsafe archive entry: {name}")
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
    except zipfile.BadZipFile:
        raise ArchiveError(f"Not a valid package archive: {archive_path}")

    if "nupkg" in modes:
        shutil.copyfile(archive_path, target_dir / f"{target_dir.name}{ARCHIVE_EXTENSION}")
    return package


__all__ = [
    "ZIP_SIGNATURE",
    "is_package_file",
    "parse_nuspec",
    "read_package",
    "extract_package",
]
