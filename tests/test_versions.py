"""Tests for version normalization, comparison and range matching."""

from types import SimpleNamespace

import pytest
from packaging.version import InvalidVersion

from feedget.versions import (
    VersionRange,
    compare_versions,
    filter_by_version,
    fix_version,
    installed_version_matches,
    is_prerelease,
    is_range_expression,
    is_valid_range,
    latest_versions,
    mark_latest,
    parse_version,
    version_matches,
    version_sort_key,
    versions_equal,
)


def pkg(package_id, version):
    return SimpleNamespace(id=package_id, version=version)


class TestFixVersion:
    def test_leading_dot_gets_zero(self):
        assert fix_version(".5") == "0.5"

    def test_bare_number_gets_minor(self):
        assert fix_version("1") == "1.0"

    def test_full_version_unchanged(self):
        assert fix_version("1.2.3") == "1.2.3"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_input_unchanged(self, value):
        assert fix_version(value) == value


class TestParseVersion:
    def test_semver_prerelease_is_prerelease(self):
        assert parse_version("1.0.0-beta").is_prerelease

    def test_build_metadata_ignored(self):
        assert parse_version("1.0.0+abc123") == parse_version("1.0.0")

    def test_unknown_label_sorts_below_release(self):
        assert parse_version("2.0.0-foo") < parse_version("2.0.0")
        assert parse_version("2.0.0-foo") > parse_version("1.9.9")

    def test_garbage_raises(self):
        with pytest.raises(InvalidVersion):
            parse_version("not-a-version")


class TestComparison:
    def test_compare_versions(self):
        assert compare_versions("1.0", "2.0") == -1
        assert compare_versions("2.0", "1.0") == 1
        assert compare_versions("1.0", "1.0.0") == 0

    def test_versions_equal_normalizes(self):
        assert versions_equal("1.0", "1.0.0")
        assert not versions_equal("1.0", "1.0.1")

    def test_versions_equal_falls_back_to_text(self):
        assert versions_equal("Latest", "latest")

    def test_is_prerelease(self):
        assert is_prerelease("1.0.0-rc1")
        assert not is_prerelease("1.0.0")
        assert not is_prerelease("garbage")

    def test_sort_key_puts_invalid_first(self):
        versions = ["2.0", "junk", "1.0"]
        assert sorted(versions, key=version_sort_key) == ["junk", "1.0", "2.0"]


class TestRanges:
    @pytest.mark.parametrize("spec", ["[1.0,2.0)", "(,3.0]", "[1.2]", "1.0,2.0"])
    def test_range_expressions(self, spec):
        assert is_range_expression(spec)

    @pytest.mark.parametrize("spec", [None, "", "1.0"])
    def test_plain_versions_are_not_ranges(self, spec):
        assert not is_range_expression(spec)

    def test_valid_range(self):
        assert is_valid_range("1.0", "2.0")
        assert is_valid_range("1.0", "1.0")
        assert is_valid_range(None, "2.0")
        assert is_valid_range("1.0", None)

    def test_min_above_max_is_invalid(self):
        assert not is_valid_range("2.0", "1.0")

    def test_unparsable_bound_is_invalid(self):
        assert not is_valid_range("abc", "1.0")


class TestVersionMatches:
    def test_no_constraint(self):
        assert version_matches("1.0")

    def test_required_wins_over_bounds(self):
        assert version_matches("1.0", required="1.0.0", minimum="5.0")
        assert not version_matches("1.1", required="1.0")

    def test_inclusive_bounds(self):
        assert version_matches("1.0", minimum="1.0", maximum="2.0")
        assert version_matches("2.0", minimum="1.0", maximum="2.0")
        assert not version_matches("2.1", minimum="1.0", maximum="2.0")
        assert not version_matches("0.9", minimum="1.0")

    def test_invalid_version_never_matches_a_constraint(self):
        assert not version_matches("junk", minimum="1.0")


class TestInstalledVersionMatches:
    """Installed listing keeps its historical maximum-bound behavior."""

    def test_maximum_rejects_lower_versions(self):
        assert not installed_version_matches("1.0", maximum="2.0")

    def test_maximum_accepts_equal_and_higher(self):
        assert installed_version_matches("2.0", maximum="2.0")
        assert installed_version_matches("3.0", maximum="2.0")

    def test_minimum(self):
        assert installed_version_matches("1.5", minimum="1.0")
        assert not installed_version_matches("0.5", minimum="1.0")

    def test_required(self):
        assert installed_version_matches("1.0.0", required="1.0")
        assert not installed_version_matches("1.1", required="1.0")

    def test_blank_bounds_ignored(self):
        assert installed_version_matches("1.0", required=" ", minimum="", maximum=" ")


class TestCollections:
    def test_filter_by_version(self):
        items = [pkg("a", "1.0"), pkg("a", "2.0"), pkg("a", "3.0")]
        result = filter_by_version(items, minimum="1.5", maximum="2.5")
        assert [i.version for i in result] == ["2.0"]

    def test_latest_versions_keeps_first_seen_order(self):
        items = [pkg("B", "1.0"), pkg("a", "1.0"), pkg("b", "2.0"), pkg("A", "0.5")]
        result = latest_versions(items)
        assert [(i.id, i.version) for i in result] == [("b", "2.0"), ("a", "1.0")]

    def test_latest_versions_skips_prereleases_unless_allowed(self):
        items = [pkg("a", "1.0"), pkg("a", "2.0-beta")]
        assert latest_versions(items)[0].version == "1.0"
        assert latest_versions(items, allow_prerelease=True)[0].version == "2.0-beta"

    def test_mark_latest(self):
        stable, beta, old = pkg("a", "1.0"), pkg("a", "2.0-beta"), pkg("a", "0.9")
        mark_latest([stable, beta, old])
        assert stable.is_latest_version and not stable.is_absolute_latest_version
        assert beta.is_absolute_latest_version and not beta.is_latest_version
        assert not old.is_latest_version and not old.is_absolute_latest_version


class TestVersionRange:
    def test_half_open(self):
        r = VersionRange.parse("[1.0,2.0)")
        assert r.contains("1.0")
        assert r.contains("1.9.9")
        assert not r.contains("2.0")
        assert not r.contains("0.9")

    def test_exclusive_min_open_max(self):
        r = VersionRange.parse("(1.0,)")
        assert not r.contains("1.0")
        assert r.contains("99.0")

    def test_open_min(self):
        r = VersionRange.parse("(,3.0]")
        assert r.contains("0.1")
        assert r.contains("3.0")
        assert not r.contains("3.0.1")

    def test_exact(self):
        r = VersionRange.parse("[1.2]")
        assert r.contains("1.2.0")
        assert not r.contains("1.3")

    def test_plain_version_is_minimum(self):
        r = VersionRange.parse("1.5")
        assert r.contains("1.5")
        assert r.contains("7.0")
        assert not r.contains("1.4")

    def test_prerelease_filtered_when_not_allowed(self):
        r = VersionRange.parse("[1.0,2.0)")
        assert r.contains("1.5.0-beta")
        assert not r.contains("1.5.0-beta", allow_prerelease=False)

    @pytest.mark.parametrize(
        "spec", ["", "[", "[1.0", "(1.0)", "[,]", "[1.0,2.0,3.0]", "[2.0,1.0]", "[abc,1.0]"]
    )
    def test_malformed_raises(self, spec):
        with pytest.raises(ValueError):
            VersionRange.parse(spec)

    def test_str_round_trips_text(self):
        assert str(VersionRange.parse(" [1.0,2.0) ")) == "[1.0,2.0)"
