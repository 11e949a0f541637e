"""Tests for reading and extracting package archives."""

import zipfile

import pytest

from feedget.archive import extract_package, is_package_file, parse_nuspec, read_package
from feedget.errors import ArchiveError

GROUPED_NUSPEC = b"""<?xml version="1.0"?>
<package xmlns="http://schemas.microsoft.com/packaging/2010/07/nuspec.xsd">
  <metadata>
    <id>Grouped</id>
    <version>2.1.0</version>
    <title>Grouped Package</title>
    <authors>Ann, Bob</authors>
    <owners>Carol</owners>
    <description>Has framework groups</description>
    <licenseUrl>https://example.org/license</licenseUrl>
    <developmentDependency>true</developmentDependency>
    <dependencies>
      <group targetFramework="net45">
        <dependency id="Alpha" version="[1.0,2.0)" />
      </group>
      <group targetFramework="netstandard2.0">
        <dependency id="Beta" />
        <dependency version="1.0" />
      </group>
    </dependencies>
  </metadata>
</package>
"""


class TestIsPackageFile:
    def test_archive_with_signature(self, tmp_path, make_archive):
        assert is_package_file(make_archive(tmp_path, "Foo", "1.0"))

    def test_wrong_extension(self, tmp_path):
        path = tmp_path / "Foo.zip"
        path.write_bytes(b"PK\x03\x04rest")
        assert not is_package_file(path)

    def test_wrong_signature(self, tmp_path):
        path = tmp_path / "Foo.nupkg"
        path.write_text("not a zip")
        assert not is_package_file(path)

    def test_missing_file(self, tmp_path):
        assert not is_package_file(tmp_path / "missing.nupkg")


class TestParseNuspec:
    def test_grouped_dependencies(self):
        package = parse_nuspec(GROUPED_NUSPEC)
        assert (package.id, package.version) == ("Grouped", "2.1.0")
        assert package.title == "Grouped Package"
        assert package.authors == ["Ann", "Bob"]
        assert package.owners == ["Carol"]
        assert package.license_url == "https://example.org/license"
        assert package.development_dependency
        frameworks = [s.target_framework for s in package.dependency_sets]
        assert frameworks == ["net45", "netstandard2.0"]
        assert [(d.id, d.version_spec) for d in package.dependencies] == [
            ("Alpha", "[1.0,2.0)"),
            ("Beta", None),
        ]

    def test_flat_dependencies_without_namespace(self):
        xml = b"""<package><metadata><id>Flat</id><version>1.0</version>
            <dependencies><dependency id="A" version="1.0" /></dependencies>
            </metadata></package>"""
        package = parse_nuspec(xml)
        assert len(package.dependency_sets) == 1
        assert package.dependency_sets[0].target_framework is None
        assert package.dependencies[0].version_spec == "1.0"
        assert package.description == ""
        assert not package.development_dependency

    def test_malformed_xml(self):
        with pytest.raises(ArchiveError, match="Invalid package manifest"):
            parse_nuspec(b"<package><metadata>")

    def test_missing_metadata(self):
        with pytest.raises(ArchiveError, match="no <metadata>"):
            parse_nuspec(b"<package />")

    def test_missing_version(self):
        with pytest.raises(ArchiveError, match="id and version"):
            parse_nuspec(b"<package><metadata><id>Foo</id></metadata></package>")


class TestReadPackage:
    def test_reads_manifest(self, tmp_path, make_archive):
        path = make_archive(tmp_path, "Foo", "1.0", dependencies=[("Bar", "[1.0,)")], tags="x y")
        package = read_package(path)
        assert package.id == "Foo"
        assert package.tags == "x y"
        assert package.archive_path == str(path)
        assert package.project_url == "https://example.org/Foo"
        assert package.dependencies[0].id == "Bar"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ArchiveError, match="not found"):
            read_package(tmp_path / "missing.nupkg")

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / "bad.nupkg"
        path.write_text("plain text")
        with pytest.raises(ArchiveError, match="Not a valid package archive"):
            read_package(path)

    def test_no_manifest(self, tmp_path):
        path = tmp_path / "empty.nupkg"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("lib/a.txt", "a")
        with pytest.raises(ArchiveError, match="no .nuspec"):
            read_package(path)


class TestExtractPackage:
    def test_default_keeps_archive_only(self, tmp_path, make_archive):
        archive = make_archive(tmp_path / "feed", "Foo", "1.0")
        target = tmp_path / "out" / "Foo.1.0"
        package = extract_package(archive, target)
        assert package.id == "Foo"
        assert (target / "lib" / "readme.txt").read_text() == "hello"
        assert (target / "Foo.1.0.nupkg").exists()
        assert not (target / "Foo.nuspec").exists()
        assert not (target / "[Content_Types].xml").exists()

    def test_nuspec_mode(self, tmp_path, make_archive):
        archive = make_archive(tmp_path / "feed", "Foo", "1.0")
        target = tmp_path / "out" / "Foo"
        extract_package(archive, target, "nuspec")
        assert (target / "Foo.nuspec").exists()
        assert not list(target.glob("*.nupkg"))

    def test_both_modes(self, tmp_path, make_archive):
        archive = make_archive(tmp_path / "feed", "Foo", "1.0")
        target = tmp_path / "out" / "Foo"
        extract_package(archive, target, "nuspec;nupkg")
        assert (target / "Foo.nuspec").exists()
        assert (target / "Foo.nupkg").exists()

    def test_unsafe_entries_skipped(self, tmp_path, make_archive):
        archive = make_archive(
            tmp_path / "feed",
            "Foo",
            "1.0",
            extra_files={"../escape.txt": "bad", "lib/ok.txt": "ok"},
        )
        target = tmp_path / "out" / "Foo.1.0"
        extract_package(archive, target)
        assert (target / "lib" / "ok.txt").exists()
        assert not (tmp_path / "out" / "escape.txt").exists()

    def test_bad_archive(self, tmp_path):
        path = tmp_path / "bad.nupkg"
        path.write_text("nope")
        with pytest.raises(ArchiveError):
            extract_package(path, tmp_path / "out")
