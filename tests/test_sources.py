"""Tests for resolving source names, locations and paths."""

import pytest

from feedget.errors import ErrorCategory, Messages, SourceResolutionError
from feedget.sources import SourceResolver, location_close_enough, uri_scheme

from .conftest import make_request

FEED_URL = "https://feed.example/v3/index.json"


def make_resolver(registry, feeds, **options):
    request = make_request(**options)
    return request, SourceResolver(request, registry, feed_factory=feeds)


class TestHelpers:
    @pytest.mark.parametrize(
        "a,b",
        [
            ("https://x/feed/", "https://x/feed"),
            ("C:\\Packages\\", "c:\\packages"),
            ("/srv/pkgs", "/SRV/PKGS/"),
        ],
    )
    def test_close_enough(self, a, b):
        assert location_close_enough(a, b)

    def test_not_close_enough(self):
        assert not location_close_enough("https://x/a", "https://x/b")
        assert not location_close_enough(None, "x")
        assert not location_close_enough("", "")

    def test_uri_scheme(self):
        assert uri_scheme("https://x/index.json") == "https"
        assert uri_scheme("file:///srv/pkgs") == "file"
        assert uri_scheme("ftp://host/x") == "ftp"
        assert uri_scheme("/srv/pkgs") is None
        assert uri_scheme("C:\\pkgs") is None
        assert uri_scheme("nuget.org") is None


class TestResolvePackageSource:
    @pytest.mark.asyncio
    async def test_registered_name(self, registry, feeds):
        registry.add("example", FEED_URL, trusted=True, validated=True)
        _, resolver = make_resolver(registry, feeds)
        source = await resolver.resolve_package_source("EXAMPLE")
        assert source.location == FEED_URL
        assert source.is_registered

    @pytest.mark.asyncio
    async def test_registered_location_with_trailing_slash(self, registry, feeds):
        registry.add("example", "https://feed.example/v3/", trusted=False, validated=True)
        _, resolver = make_resolver(registry, feeds)
        source = await resolver.resolve_package_source("https://feed.example/v3")
        assert source.name == "example"

    @pytest.mark.asyncio
    async def test_reachable_uri(self, registry, feeds):
        feeds.add(FEED_URL, [])
        _, resolver = make_resolver(registry, feeds)
        source = await resolver.resolve_package_source(FEED_URL)
        assert source.name == FEED_URL
        assert not source.is_registered
        assert not source.trusted
        assert source.is_validated

    @pytest.mark.asyncio
    async def test_unreachable_uri(self, registry, feeds):
        feeds.add(FEED_URL, []).reachable = False
        _, resolver = make_resolver(registry, feeds)
        with pytest.raises(SourceResolutionError) as exc_info:
            await resolver.resolve_package_source(FEED_URL)
        assert exc_info.value.template == Messages.SOURCE_LOCATION_NOT_VALID

    @pytest.mark.asyncio
    async def test_skip_validate_accepts_uri(self, registry, feeds):
        _, resolver = make_resolver(registry, feeds, skip_validate=True)
        source = await resolver.resolve_package_source(FEED_URL)
        assert not source.is_validated

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self, registry, feeds):
        _, resolver = make_resolver(registry, feeds)
        with pytest.raises(SourceResolutionError) as exc_info:
            await resolver.resolve_package_source("ftp://host/feed")
        assert exc_info.value.category == ErrorCategory.INVALID_ARGUMENT
        assert exc_info.value.template == Messages.URI_SCHEME_NOT_SUPPORTED
        assert exc_info.value.template_args == ("ftp",)

    @pytest.mark.asyncio
    async def test_existing_directory(self, registry, feeds, tmp_path):
        _, resolver = make_resolver(registry, feeds)
        source = await resolver.resolve_package_source(str(tmp_path))
        assert source.location == str(tmp_path)
        assert source.trusted
        assert source.is_validated
        assert not source.is_registered

    @pytest.mark.asyncio
    async def test_file_uri_validated_against_disk(self, registry, feeds, tmp_path):
        _, resolver = make_resolver(registry, feeds)
        source = await resolver.resolve_package_source(tmp_path.as_uri())
        assert source.is_validated

    @pytest.mark.asyncio
    async def test_unknown_name(self, registry, feeds, tmp_path):
        _, resolver = make_resolver(registry, feeds)
        with pytest.raises(SourceResolutionError, match="Unable to resolve package source"):
            await resolver.resolve_package_source(str(tmp_path / "missing"))


class TestSelectedSources:
    @pytest.mark.asyncio
    async def test_all_registered_when_none_requested(self, registry, feeds):
        registry.add("a", "https://a/index.json", trusted=False, validated=True)
        registry.add("b", "https://b/index.json", trusted=False, validated=True)
        _, resolver = make_resolver(registry, feeds)
        assert [s.name for s in await resolver.selected_sources()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_requested_only(self, registry, feeds):
        registry.add("a", "https://a/index.json", trusted=False, validated=True)
        registry.add("b", "https://b/index.json", trusted=False, validated=True)
        _, resolver = make_resolver(registry, feeds, sources=["b"])
        assert [s.name for s in await resolver.selected_sources()] == ["b"]

    @pytest.mark.asyncio
    async def test_union_with_carried_sources(self, registry, feeds):
        registry.add("a", "https://a/index.json", trusted=False, validated=True)
        registry.add("b", "https://b/index.json", trusted=False, validated=True)
        _, resolver = make_resolver(registry, feeds, sources=["b", "A"])
        selected = await resolver.selected_sources(["a"])
        assert [s.name for s in selected] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_locations_collapse(self, registry, feeds):
        registry.add("a", "https://a/index.json", trusted=False, validated=True)
        _, resolver = make_resolver(registry, feeds, sources=["a", "https://a/index.json/"])
        assert len(await resolver.selected_sources()) == 1

    @pytest.mark.asyncio
    async def test_unresolved_entries_become_warnings(self, registry, feeds):
        registry.add("a", "https://a/index.json", trusted=False, validated=True)
        request, resolver = make_resolver(registry, feeds, sources=["a", "nowhere"])
        selected = await resolver.selected_sources()
        assert [s.name for s in selected] == ["a"]
        assert request.warnings == ["Unable to resolve package source 'nowhere'"]
        assert not request.had_errors
