"""Derived-dimension registry and the row-shaping pipeline."""

from ga4explorer.dimensions.pipeline import (
    ResolvedDimensions,
    build_row,
    instrumental_sources,
    project_row,
    resolve_dimensions,
    shape_rows,
    transform_row,
)
from ga4explorer.dimensions.registry import DEFAULT_REGISTRY, DimensionRegistry

__all__ = [
    "DEFAULT_REGISTRY",
    "DimensionRegistry",
    "ResolvedDimensions",
    "build_row",
    "instrumental_sources",
    "project_row",
    "resolve_dimensions",
    "shape_rows",
    "transform_row",
]
