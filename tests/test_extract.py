import pytest
from click.testing import CliRunner

from feedget.extract import cli, package_folder


@pytest.fixture
def runner():
    """Create a CliRunner for testing."""
    return CliRunner()


@pytest.fixture
def feed_dir(tmp_path, make_archive):
    feed = tmp_path / "feed"
    make_archive(feed, "Foo", "1.0")
    return feed


def install_args(feed_dir, dest, *extra, package_id="Foo", version="1.0"):
    return [
        "install", package_id, "-Version", version, "-Source", str(feed_dir),
        "-OutputDirectory", str(dest), *extra,
    ]


class TestExtractInstall:
    def test_success_line(self, runner, feed_dir, tmp_path):
        """A fresh install reports the line the orchestrator looks for."""
        dest = tmp_path / "dest"
        result = runner.invoke(cli, install_args(feed_dir, dest))
        assert result.exit_code == 0, result.output
        assert "Successfully installed 'Foo 1.0'." in result.output
        assert (dest / "Foo.1.0" / "Foo.1.0.nupkg").exists()
        assert (dest / "Foo.1.0" / "lib" / "readme.txt").exists()

    def test_already_installed(self, runner, feed_dir, tmp_path):
        """Running twice reports the package as already installed."""
        dest = tmp_path / "dest"
        runner.invoke(cli, install_args(feed_dir, dest))
        result = runner.invoke(cli, install_args(feed_dir, dest))
        assert result.exit_code == 0
        assert "'Foo 1.0' already installed." in result.output

    def test_missing_package(self, runner, feed_dir, tmp_path):
        """An unknown version exits non-zero with a 'not installed' line."""
        result = runner.invoke(cli, install_args(feed_dir, tmp_path / "dest", version="9.0"))
        assert result.exit_code == 1
        assert "'Foo 9.0' not installed." in result.output

    def test_missing_feed(self, runner, tmp_path):
        """A feed location that does not exist is reported, not raised."""
        result = runner.invoke(cli, install_args(tmp_path / "nowhere", tmp_path / "dest"))
        assert result.exit_code == 1
        assert "'Foo 1.0' not installed." in result.output

    def test_exclude_version_and_save_mode(self, runner, feed_dir, tmp_path):
        dest = tmp_path / "dest"
        result = runner.invoke(
            cli,
            install_args(feed_dir, dest, "-ExcludeVersion", "-PackageSaveMode", "nuspec"),
        )
        assert result.exit_code == 0, result.output
        assert (dest / "Foo" / "Foo.nuspec").exists()
        assert not (dest / "Foo" / "Foo.nupkg").exists()

    def test_detailed_verbosity(self, runner, feed_dir, tmp_path):
        result = runner.invoke(
            cli, install_args(feed_dir, tmp_path / "dest", "-Verbosity", "detailed")
        )
        assert "Installing 'Foo 1.0'" in result.output

    def test_bad_save_mode(self, runner, feed_dir, tmp_path):
        result = runner.invoke(
            cli, install_args(feed_dir, tmp_path / "dest", "-PackageSaveMode", "zip")
        )
        assert result.exit_code == 2


class TestPackageFolder:
    def test_with_version(self, tmp_path):
        assert package_folder(tmp_path, "Foo", "1.0", False) == tmp_path / "Foo.1.0"

    def test_without_version(self, tmp_path):
        assert package_folder(tmp_path, "Foo", "1.0", True) == tmp_path / "Foo"
