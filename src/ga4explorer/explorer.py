"""Main Explorer interface for GA4 Explorer."""

import json
import logging
import time
from typing import Any

from ga4explorer.auth import load_credentials
from ga4explorer.client import GA4Client, build_request
from ga4explorer.config.loader import CatalogueRegistry
from ga4explorer.config.settings import Settings
from ga4explorer.dates import resolve_date_range
from ga4explorer.dimensions.pipeline import resolve_dimensions, shape_rows
from ga4explorer.models.query import (
    DateRange,
    OrderBy,
    PropertySummary,
    QueryResult,
    QuerySpec,
)
from ga4explorer.views import SortKey, sort_rows

logger = logging.getLogger(__name__)


class Explorer:
    """Main interface for GA4 Explorer.

    owns the catalogue, the (lazily authenticated) GA4 client and the stored
    property selection. the CLI and the API server both go through here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        catalogue: CatalogueRegistry | None = None,
        client: GA4Client | None = None,
        interactive: bool = True,
    ) -> None:
        """Initialize the explorer.

        Args:
            settings: Environment settings, read from env/.env if omitted.
            catalogue: Aliases and presets, the shipped catalogue if omitted.
            client: GA4 client; created on first use from stored credentials.
            interactive: Whether a browser OAuth flow may be started.
        """
        self.settings = settings or Settings()
        # load the catalogue upfront - a broken yaml file should fail fast
        self.catalogue = catalogue or CatalogueRegistry.default(self.settings.catalogue_file)
        self.interactive = interactive
        self._client = client

    @property
    def client(self) -> GA4Client:
        if self._client is None:
            self._client = GA4Client(load_credentials(self.settings, self.interactive))
        return self._client

    # --- queries ---

    def query(self, spec: QuerySpec, property_id: str | None = None) -> QueryResult:
        """Run an ad-hoc query and return shaped rows.

        the steps: resolve dimensions to GA4 sources, translate metric and
        order-by names, call runReport, shape the rows, then re-apply the
        ordering client-side so derived columns sort on their final values.
        """
        property_id = self.resolve_property(property_id)
        registry = self.catalogue.dimension_registry()

        metrics = list(dict.fromkeys(spec.metrics))
        resolved = resolve_dimensions(spec.dimensions, registry)
        api_metrics = [self.catalogue.metric_name(m) for m in metrics]
        # values come back by position, so each GA4 metric can only be asked for once
        seen: dict[str, str] = {}
        for name, api_name in zip(metrics, api_metrics):
            if api_name in seen:
                raise ValueError(
                    f"Metrics '{seen[api_name]}' and '{name}' both mean {api_name}; ask for one of them"
                )
            seen[api_name] = name

        limit = min(spec.limit or self.settings.page_size, self.settings.max_rows)
        api_order_bys = [self._api_order_by(o) for o in spec.order_bys]

        request = build_request(
            property_id,
            spec.date_range,
            resolved.api_dimensions,
            api_metrics,
            limit=limit,
            offset=spec.offset,
            order_bys=api_order_bys,
        )

        start = time.perf_counter()
        response = self.client.run_report(request)
        rows = shape_rows(response, spec.dimensions, metrics, registry, resolved)
        if spec.order_bys:
            rows = sort_rows(
                rows,
                [SortKey(column=o.field, direction="desc" if o.desc else "asc") for o in spec.order_bys],
            )
        elapsed_ms = (time.perf_counter() - start) * 1000

        return QueryResult(
            property_id=property_id,
            columns=[*dict.fromkeys(spec.dimensions), *metrics],
            data=rows,
            row_count=len(rows),
            api_dimensions=resolved.api_dimensions,
            api_metrics=api_metrics,
            date_range=spec.date_range,
            execution_time_ms=round(elapsed_ms, 2),
        )

    def run_preset(
        self,
        preset_id: str,
        date_range: DateRange | None = None,
        limit: int | None = None,
        property_id: str | None = None,
    ) -> QueryResult:
        """Run a catalogue preset. limit overrides the preset's own limit."""
        preset = self.catalogue.get_preset(preset_id)
        spec = QuerySpec(
            dimensions=preset.dimensions,
            metrics=preset.metrics,
            date_range=date_range or self.default_date_range(),
            limit=limit or preset.limit,
            order_bys=preset.order_bys,
        )
        return self.query(spec, property_id)

    def default_date_range(self) -> DateRange:
        return self.catalogue.default_date_range or resolve_date_range("last28")

    def _api_order_by(self, order_by: OrderBy) -> OrderBy:
        if order_by.metric is not None:
            return OrderBy(metric=self.catalogue.metric_name(order_by.metric), desc=order_by.desc)
        source = self.catalogue.dimension_registry().source_of(order_by.dimension)
        return OrderBy(dimension=source, desc=order_by.desc)

    # --- catalogue ---

    def list_presets(self) -> list[dict[str, Any]]:
        """List all presets."""
        return [
            {
                "id": p.id,
                "label": p.label,
                "description": p.description,
                "metrics": p.metrics,
                "dimensions": p.dimensions,
            }
            for p in self.catalogue.presets.values()
        ]

    def schema(self) -> dict[str, dict[str, str]]:
        """Friendly metric and dimension names with what they map to in GA4."""
        registry = self.catalogue.dimension_registry()
        dimensions = dict(self.catalogue.dimension_aliases)
        dimensions.update(registry.sources)
        return {"metrics": dict(self.catalogue.metric_aliases), "dimensions": dimensions}

    # --- properties ---

    def list_properties(self) -> list[PropertySummary]:
        return self.client.list_properties()

    def select_property(self, property_id: str) -> None:
        """Remember a property for later queries."""
        property_id = property_id.strip()
        if property_id.startswith("properties/"):
            property_id = property_id.split("/", 1)[1]
        if not property_id.isdigit():
            raise ValueError(f"Property IDs are numeric, got '{property_id}'")

        state = self._read_state()
        state["property_id"] = property_id
        self._write_state(state)
        logger.info("Selected property %s", property_id)

    def selected_property(self) -> str | None:
        return self._read_state().get("property_id")

    def clear_property(self) -> bool:
        """Forget the stored selection. Returns whether there was one."""
        state = self._read_state()
        if "property_id" not in state:
            return False
        del state["property_id"]
        self._write_state(state)
        return True

    def resolve_property(self, property_id: str | None = None) -> str:
        """Explicit argument, then stored selection, then GA_PROPERTY_ID."""
        resolved = property_id or self.selected_property() or self.settings.ga_property_id
        if not resolved:
            raise ValueError(
                "No Google Analytics property selected. Run 'gax select <id>' "
                "or set GA_PROPERTY_ID."
            )
        return resolved

    def _read_state(self) -> dict[str, Any]:
        path = self.settings.state_file
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt state file %s", path)
            return {}

    def _write_state(self, state: dict[str, Any]) -> None:
        path = self.settings.state_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(state, indent=2))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def __enter__(self) -> "Explorer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
