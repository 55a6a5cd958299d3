"""Pydantic models for the query catalogue (aliases and presets)."""

from pydantic import BaseModel, Field

from ga4explorer.models.query import DateRange, OrderBy


class Preset(BaseModel):
    """A canned report.

    metrics and dimensions are user-facing names - aliases from the catalogue
    or raw GA4 names, same as an ad-hoc query.
    """

    id: str
    label: str
    description: str | None = None
    metrics: list[str] = Field(min_length=1)
    dimensions: list[str] = Field(default_factory=list)
    order_bys: list[OrderBy] = Field(default_factory=list)
    limit: int | None = Field(default=None, gt=0)


class Catalogue(BaseModel):
    """Everything loaded from catalogue YAML files."""

    default_date_range: DateRange | None = None
    metrics: dict[str, str] = Field(default_factory=dict)  # alias -> GA4 metric
    dimensions: dict[str, str] = Field(default_factory=dict)  # alias -> GA4 dimension
    presets: list[Preset] = Field(default_factory=list)
