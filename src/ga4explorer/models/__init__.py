"""Pydantic models for GA4 Explorer."""

from ga4explorer.models.catalogue import Catalogue, Preset
from ga4explorer.models.query import (
    DateRange,
    OrderBy,
    PropertySummary,
    QueryResult,
    QuerySpec,
)

__all__ = [
    "Catalogue",
    "DateRange",
    "OrderBy",
    "Preset",
    "PropertySummary",
    "QueryResult",
    "QuerySpec",
]
