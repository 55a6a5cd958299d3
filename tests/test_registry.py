"""Tests for the dimension registry."""

import pytest

from ga4explorer.dimensions.registry import DEFAULT_REGISTRY, DimensionRegistry


class TestBuiltins:
    def test_builtin_sources(self):
        assert DEFAULT_REGISTRY.source_of("domain") == "pagePath"
        assert DEFAULT_REGISTRY.source_of("pageTitle") == "pageTitle"
        assert DEFAULT_REGISTRY.source_of("userType") == "newVsReturning"
        assert DEFAULT_REGISTRY.source_of("deviceCategory") == "deviceCategory"

    def test_plain_dimension_is_its_own_source(self):
        """Unregistered names fall through verbatim."""
        assert DEFAULT_REGISTRY.source_of("country") == "country"
        assert DEFAULT_REGISTRY.transform_of("country") is None
        assert not DEFAULT_REGISTRY.is_derived("country")

    def test_is_derived(self):
        assert DEFAULT_REGISTRY.is_derived("domain")
        # same-named source - transformed but not derived
        assert not DEFAULT_REGISTRY.is_derived("pageTitle")

    def test_every_transform_has_a_source(self):
        assert set(DEFAULT_REGISTRY.transforms) <= set(DEFAULT_REGISTRY.sources)

    def test_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_REGISTRY.sources["hostname"] = "hostName"  # type: ignore[index]


class TestCustomRegistry:
    def test_orphan_transform_rejected(self):
        """A transform without a source dimension is a registration error."""
        with pytest.raises(ValueError, match="without a source"):
            DimensionRegistry(sources={}, transforms_={"shout": lambda row, v: v.upper()})

    def test_failing_transform_degrades_to_empty(self):
        def broken(row, value):
            raise RuntimeError("boom")

        registry = DimensionRegistry(sources={"bad": "pagePath"}, transforms_={"bad": broken})
        assert registry.transform_of("bad")({}, "/x") == ""


class TestWithAliases:
    def test_adds_renamed_sources(self):
        registry = DEFAULT_REGISTRY.with_aliases({"source": "sessionSource"})
        assert registry.source_of("source") == "sessionSource"
        assert registry.transform_of("source") is None
        # original untouched
        assert DEFAULT_REGISTRY.source_of("source") == "source"

    def test_identity_aliases_skipped(self):
        registry = DEFAULT_REGISTRY.with_aliases({"country": "country"})
        assert "country" not in registry.sources

    def test_matching_builtin_alias_allowed(self):
        registry = DEFAULT_REGISTRY.with_aliases({"userType": "newVsReturning"})
        assert registry.transform_of("userType")({}, "new") == "New User"

    def test_conflicting_alias_rejected(self):
        """An alias can't repoint a built-in derived dimension."""
        with pytest.raises(ValueError, match="conflicts"):
            DEFAULT_REGISTRY.with_aliases({"domain": "hostName"})

    def test_transforms_survive(self):
        registry = DEFAULT_REGISTRY.with_aliases({"medium": "sessionMedium"})
        assert registry.transform_of("domain")({}, "/a") == "example.com"
