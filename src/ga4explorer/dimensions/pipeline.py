"""Row-shaping pipeline for GA4 report responses.

the flow for a single query:
  1. resolve the requested dimensions to a deduplicated list of GA4 dimensions
  2. (caller sends the request)
  3. expand each positional response row into a dict keyed by both the source
     names and every user-facing name mapped to them
  4. run derived-dimension transforms
  5. drop source columns that were only fetched to feed a derived column

everything here is pure and in-memory. rows number in the hundreds to low
thousands so there's no point being clever.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from ga4explorer.dimensions.registry import DEFAULT_REGISTRY, DimensionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ResolvedDimensions:
    """Output of the resolver.

    api_dimensions is what goes in the request body - its order is the order
    GA4 returns dimension values in, so it must stay stable. mapping records
    which user-facing names hang off each source.
    """

    api_dimensions: list[str] = field(default_factory=list)
    mapping: dict[str, list[str]] = field(default_factory=dict)


def resolve_dimensions(
    dimensions: list[str], registry: DimensionRegistry = DEFAULT_REGISTRY
) -> ResolvedDimensions:
    """Collapse requested dimensions into the minimal set of GA4 dimensions."""
    resolved = ResolvedDimensions()
    for name in dimensions:
        source = registry.source_of(name)
        if source not in resolved.mapping:
            resolved.api_dimensions.append(source)
            resolved.mapping[source] = []
        resolved.mapping[source].append(name)

    duplicates = sorted(name for name, count in Counter(dimensions).items() if count > 1)
    if duplicates:
        logger.warning("Dimensions requested more than once: %s", ", ".join(duplicates))

    return resolved


def parse_metric(value: Any) -> float:
    """Parse a GA4 metric value; anything missing or unparseable is 0."""
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _cell_value(cells: Any, index: int) -> Any:
    # lenient about everything: cells may be missing, short, or not dicts
    if not isinstance(cells, list) or index >= len(cells):
        return None
    cell = cells[index]
    if not isinstance(cell, dict):
        return None
    return cell.get("value")


def build_row(
    raw_row: dict[str, Any], resolved: ResolvedDimensions, metrics: list[str]
) -> dict[str, Any]:
    """Expand one positional GA4 row into a flat record.

    each source value is copied verbatim into the source key and every
    user-facing key mapped to it. transforms happen later.
    """
    row: dict[str, Any] = {}
    dimension_values = raw_row.get("dimensionValues")
    for index, source in enumerate(resolved.api_dimensions):
        value = _cell_value(dimension_values, index)
        value = "" if value is None else value
        row[source] = value
        for name in resolved.mapping[source]:
            row[name] = value

    metric_values = raw_row.get("metricValues")
    for index, metric in enumerate(metrics):
        row[metric] = parse_metric(_cell_value(metric_values, index))

    return row


def transform_row(
    row: dict[str, Any], dimensions: list[str], registry: DimensionRegistry = DEFAULT_REGISTRY
) -> dict[str, Any]:
    """Compute derived dimension values. Returns a new dict.

    reads from the source key, never the derived key, so running it twice
    gives the same answer.
    """
    transformed = dict(row)
    for name in dimensions:
        transform = registry.transform_of(name)
        if transform is None:
            continue
        transformed[name] = transform(row, row.get(registry.source_of(name), ""))
    return transformed


def instrumental_sources(
    dimensions: list[str], registry: DimensionRegistry = DEFAULT_REGISTRY
) -> set[str]:
    """Source columns that exist only to feed a derived column.

    asking for the source by name as well is the only way to keep it.
    """
    requested = set(dimensions)
    return {
        registry.source_of(name)
        for name in dimensions
        if registry.is_derived(name) and registry.source_of(name) not in requested
    }


def project_row(row: dict[str, Any], hidden: set[str]) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key not in hidden}


def shape_rows(
    response: dict[str, Any],
    dimensions: list[str],
    metrics: list[str],
    registry: DimensionRegistry = DEFAULT_REGISTRY,
    resolved: ResolvedDimensions | None = None,
) -> list[dict[str, Any]]:
    """Turn a raw runReport response into final display rows.

    pass the ResolvedDimensions used to build the request if you have it -
    otherwise it gets recomputed, which is fine since it's deterministic.
    """
    if resolved is None:
        resolved = resolve_dimensions(dimensions, registry)
    hidden = instrumental_sources(dimensions, registry)

    rows = []
    for raw_row in response.get("rows") or []:
        if not isinstance(raw_row, dict):
            logger.debug("Skipping non-object row in response: %r", raw_row)
            continue
        row = build_row(raw_row, resolved, metrics)
        row = transform_row(row, dimensions, registry)
        rows.append(project_row(row, hidden))
    return rows
