"""Tests for the catalogue loader."""

from datetime import date
from pathlib import Path

import pytest

from ga4explorer.config.loader import CatalogueRegistry


class TestDefaultCatalogue:
    def test_loads_shipped_presets(self, catalogue: CatalogueRegistry):
        """The shipped catalogue validates and has the standard presets."""
        assert "overview-dashboard" in catalogue.presets
        assert "top-pages" in catalogue.presets
        assert "domain-traffic" in catalogue.presets

    def test_metric_aliases(self, catalogue: CatalogueRegistry):
        assert catalogue.metric_name("users") == "totalUsers"
        assert catalogue.metric_name("pageviews") == "screenPageViews"
        # raw GA4 names pass through
        assert catalogue.metric_name("engagedSessions") == "engagedSessions"

    def test_default_date_range(self, catalogue: CatalogueRegistry):
        assert catalogue.default_date_range.start == date(2025, 1, 1)
        assert catalogue.default_date_range.end == date(2025, 12, 31)

    def test_dimension_registry_includes_aliases(self, catalogue: CatalogueRegistry):
        registry = catalogue.dimension_registry()
        assert registry.source_of("source") == "sessionSource"
        assert registry.source_of("domain") == "pagePath"
        assert registry.source_of("exitPage") == "pagePath"

    def test_dimension_registry_cached(self, catalogue: CatalogueRegistry):
        assert catalogue.dimension_registry() is catalogue.dimension_registry()

    def test_get_unknown_preset(self, catalogue: CatalogueRegistry):
        with pytest.raises(KeyError, match="Unknown preset"):
            catalogue.get_preset("nope")


class TestExtraCatalogue:
    def test_merges_extra_file(self, catalogue_file: Path):
        registry = CatalogueRegistry.default(catalogue_file)
        assert "regional" in registry.presets
        assert "overview-dashboard" in registry.presets
        assert registry.metric_name("engaged") == "engagedSessions"

    def test_preset_fields(self, catalogue_file: Path):
        preset = CatalogueRegistry.default(catalogue_file).get_preset("regional")
        assert preset.label == "Sessions by Region"
        assert preset.dimensions == ["country", "region"]
        assert preset.order_bys[0].metric == "sessions"
        assert preset.order_bys[0].desc is True
        assert preset.limit == 20

    def test_later_alias_wins(self, tmp_path: Path):
        path = tmp_path / "override.yaml"
        path.write_text("metrics:\n  users: activeUsers\n")
        registry = CatalogueRegistry.default(path)
        assert registry.metric_name("users") == "activeUsers"

    def test_duplicate_preset(self, tmp_path: Path):
        path = tmp_path / "dup.yaml"
        path.write_text(
            "presets:\n  - id: top-pages\n    label: Again\n    metrics: [sessions]\n"
        )
        with pytest.raises(ValueError, match="Duplicate preset"):
            CatalogueRegistry.default(path)

    def test_unknown_metric_in_preset(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("presets:\n  - id: bad\n    label: Bad\n    metrics: [nonsense]\n")
        with pytest.raises(ValueError, match="unknown metric"):
            CatalogueRegistry.default(path)

    def test_unknown_dimension_in_preset(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "presets:\n  - id: bad\n    label: Bad\n    metrics: [sessions]\n"
            "    dimensions: [nowhere]\n"
        )
        with pytest.raises(ValueError, match="unknown dimension"):
            CatalogueRegistry.default(path)

    def test_custom_definitions_allowed(self, tmp_path: Path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "presets:\n  - id: custom\n    label: Custom\n"
            "    metrics: ['customEvent:score']\n    dimensions: ['customUser:tier']\n"
        )
        registry = CatalogueRegistry.default(path)
        assert "custom" in registry.presets

    def test_conflicting_dimension_alias(self, tmp_path: Path):
        path = tmp_path / "conflict.yaml"
        path.write_text("dimensions:\n  domain: hostName\n")
        with pytest.raises(ValueError, match="conflicts"):
            CatalogueRegistry.default(path)

    def test_empty_file_ignored(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        registry = CatalogueRegistry.default(path)
        assert "top-pages" in registry.presets

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            CatalogueRegistry.default(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            CatalogueRegistry.default(path)

    def test_load_data(self):
        registry = CatalogueRegistry()
        registry.load_data(
            {"metrics": {"users": "totalUsers"}, "presets": [{"id": "a", "label": "A", "metrics": ["users"]}]}
        )
        registry.validate()
        assert registry.get_preset("a").metrics == ["users"]
