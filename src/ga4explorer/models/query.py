"""Pydantic models for GA4 queries and results.

the query model captures what the user asked for in user-facing names.
translating to GA4 names happens in the explorer, not here.
"""

from datetime import date
from typing import Any, Self

from pydantic import BaseModel, Field, model_validator


class DateRange(BaseModel):
    """Inclusive date range. GA4 takes ISO dates as strings."""

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> Self:
        if self.start > self.end:
            raise ValueError(f"Start date {self.start} is after end date {self.end}")
        return self


class OrderBy(BaseModel):
    """One ordering clause - either a metric or a dimension, not both."""

    metric: str | None = None
    dimension: str | None = None
    desc: bool = False

    @model_validator(mode="after")
    def check_target(self) -> Self:
        if (self.metric is None) == (self.dimension is None):
            raise ValueError("OrderBy needs exactly one of 'metric' or 'dimension'")
        return self

    @property
    def field(self) -> str:
        return self.metric or self.dimension  # type: ignore[return-value]


class QuerySpec(BaseModel):
    """A request for one GA4 report.

    dimensions may repeat or overlap on a source - the pipeline copes. a
    dimension that shares a name with a metric can't, since both would land
    on the same row key, so that's rejected up front.
    """

    dimensions: list[str] = Field(default_factory=list)
    metrics: list[str] = Field(min_length=1)
    date_range: DateRange
    limit: int | None = Field(default=None, gt=0)
    offset: int = Field(default=0, ge=0)
    order_bys: list[OrderBy] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_collisions(self) -> Self:
        clashes = sorted(set(self.dimensions) & set(self.metrics))
        if clashes:
            raise ValueError(f"Names used as both dimension and metric: {', '.join(clashes)}")
        return self


class QueryResult(BaseModel):
    """Shaped rows for one query, plus enough context to explain them.

    api_dimensions is kept for debugging - it's what actually went to GA4
    after derived dimensions were collapsed onto their sources.
    """

    property_id: str
    columns: list[str]
    data: list[dict[str, Any]]
    row_count: int
    api_dimensions: list[str] = Field(default_factory=list)
    api_metrics: list[str] = Field(default_factory=list)
    date_range: DateRange
    execution_time_ms: float = 0.0


class PropertySummary(BaseModel):
    """A GA4 property the signed-in account can see."""

    property_id: str
    display_name: str
    account_id: str
    account_name: str
