"""YAML loader and registry for the query catalogue.

the catalogue holds metric/dimension aliases and presets. yaml because it's
what people already edit for this kind of thing and it allows comments.
the shipped default lives next to this file; extra files merge on top.
"""

from pathlib import Path
from typing import Any

import yaml

from ga4explorer.dimensions.registry import DEFAULT_REGISTRY, DimensionRegistry
from ga4explorer.models.catalogue import Catalogue, Preset
from ga4explorer.models.query import DateRange

DEFAULT_CATALOGUE = Path(__file__).parent / "default_catalogue.yaml"

# GA4 custom definitions can't be known up front, let them through
CUSTOM_PREFIXES = ("customEvent:", "customUser:", "customItem:")


class CatalogueRegistry:
    """Aliases and presets, loaded from one or more yaml files.

    later files win for aliases (so you can repoint "users" at activeUsers),
    but preset ids must be unique across everything loaded.
    """

    def __init__(self) -> None:
        self.metric_aliases: dict[str, str] = {}
        self.dimension_aliases: dict[str, str] = {}
        self.presets: dict[str, Preset] = {}
        self.default_date_range: DateRange | None = None
        self._dimensions: DimensionRegistry | None = None

    @classmethod
    def default(cls, extra: Path | None = None) -> "CatalogueRegistry":
        """Shipped catalogue, optionally with a user file merged on top."""
        registry = cls()
        registry.load_file(DEFAULT_CATALOGUE)
        if extra is not None:
            registry.load_file(extra)
        registry.validate()
        return registry

    def load_file(self, path: Path) -> None:
        """Parse one catalogue file. Empty files are ignored."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Catalogue file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError(f"Catalogue {path} must be a mapping at the top level")

        self._merge(Catalogue.model_validate(data))

    def load_data(self, data: dict[str, Any]) -> None:
        """Merge an already-parsed catalogue mapping (handy for tests)."""
        self._merge(Catalogue.model_validate(data))

    def _merge(self, catalogue: Catalogue) -> None:
        self.metric_aliases.update(catalogue.metrics)
        self.dimension_aliases.update(catalogue.dimensions)
        if catalogue.default_date_range is not None:
            self.default_date_range = catalogue.default_date_range

        for preset in catalogue.presets:
            if preset.id in self.presets:
                raise ValueError(f"Duplicate preset: {preset.id}")
            self.presets[preset.id] = preset

        # aliases may have changed
        self._dimensions = None

    def validate(self) -> None:
        """Check every preset only references names we can resolve.

        building the dimension registry also catches aliases that fight with
        built-in derived dimensions.
        """
        dimensions = self.dimension_registry()
        known_metrics = set(self.metric_aliases) | set(self.metric_aliases.values())
        known_dimensions = (
            set(self.dimension_aliases)
            | set(self.dimension_aliases.values())
            | set(dimensions.sources)
        )

        for preset in self.presets.values():
            for metric in preset.metrics:
                if metric not in known_metrics and not metric.startswith(CUSTOM_PREFIXES):
                    raise ValueError(f"Preset '{preset.id}' references unknown metric '{metric}'")
            for dimension in preset.dimensions:
                if dimension not in known_dimensions and not dimension.startswith(CUSTOM_PREFIXES):
                    raise ValueError(
                        f"Preset '{preset.id}' references unknown dimension '{dimension}'"
                    )

    # --- lookup methods ---

    def get_preset(self, preset_id: str) -> Preset:
        if preset_id not in self.presets:
            raise KeyError(f"Unknown preset: {preset_id}")
        return self.presets[preset_id]

    def metric_name(self, name: str) -> str:
        """GA4 metric for a user-facing metric name (unknown names pass through)."""
        return self.metric_aliases.get(name, name)

    def dimension_registry(self) -> DimensionRegistry:
        """Built-in derived dimensions plus this catalogue's aliases. Cached."""
        if self._dimensions is None:
            self._dimensions = DEFAULT_REGISTRY.with_aliases(self.dimension_aliases)
        return self._dimensions
