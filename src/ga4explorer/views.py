"""Filtering, sorting and pagination over finished rows.

the active filters and sort order live on an explicit ViewState. callers own
it and pass it in, so the API builds one per request and the CLI one per
command.
"""

import math
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

QueryOperator = Literal["=", "*", "<>", "<*>"]
CompareOperator = Literal[">=", "<=", ">", "<", "="]


class SortKey(BaseModel):
    column: str
    direction: Literal["asc", "desc"] = "asc"


class QueryFilter(BaseModel):
    """Case-insensitive string match. * is contains, <*> is not-contains."""

    field: str
    operator: QueryOperator
    value: str

    def matches(self, row: dict[str, Any]) -> bool:
        actual = as_text(row.get(self.field)).lower()
        wanted = self.value.lower()
        if self.operator == "=":
            return actual == wanted
        if self.operator == "*":
            return wanted in actual
        if self.operator == "<>":
            return actual != wanted
        return wanted not in actual

    def __str__(self) -> str:
        return f"{self.field}{self.operator}{self.value}"


class CompareFilter(BaseModel):
    """Numeric comparison. Rows whose field isn't a number never match."""

    field: str
    operator: CompareOperator
    value: float

    def matches(self, row: dict[str, Any]) -> bool:
        actual = _as_number(row.get(self.field))
        if actual is None:
            return False
        if self.operator == ">=":
            return actual >= self.value
        if self.operator == "<=":
            return actual <= self.value
        if self.operator == ">":
            return actual > self.value
        if self.operator == "<":
            return actual < self.value
        return actual == self.value

    def __str__(self) -> str:
        value = int(self.value) if self.value.is_integer() else self.value
        return f"{self.field}{self.operator}{value}"


class ViewState(BaseModel):
    """How a result set is being looked at right now."""

    sort_keys: list[SortKey] = Field(default_factory=list)
    query_filters: list[QueryFilter] = Field(default_factory=list)
    compare_filters: list[CompareFilter] = Field(default_factory=list)
    page_size: int = Field(default=50, gt=0)

    def add_filter(self, f: "QueryFilter | CompareFilter") -> None:
        if isinstance(f, CompareFilter):
            self.compare_filters.append(f)
        else:
            self.query_filters.append(f)

    def clear_filters(self) -> None:
        self.query_filters.clear()
        self.compare_filters.clear()


class Page(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: list[dict[str, Any]]
    current_page: int
    page_size: int
    total_records: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    start_index: int
    end_index: int


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        number = float(str(value))
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def as_text(value: Any) -> str:
    """Cell value as the user sees it: 42.0 is "42", None is ""."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def apply_filters(rows: list[dict[str, Any]], state: ViewState) -> list[dict[str, Any]]:
    """String filters first, then numeric ones - all must match."""
    filters = [*state.query_filters, *state.compare_filters]
    return [row for row in rows if all(f.matches(row) for f in filters)]


def _sort_value(value: Any) -> tuple:
    # missing sorts first, then numbers, then everything else as text.
    # keeps mixed columns from blowing up on str < float
    if value is None or value == "":
        return (0, 0.0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, float(value), "")
    return (2, 0.0, str(value))


def sort_rows(rows: list[dict[str, Any]], sort_keys: list[SortKey]) -> list[dict[str, Any]]:
    """Stable multi-key sort, first key has the highest priority.

    sorting by the last key first and working backwards gives the right
    result because python's sort is stable.
    """
    result = list(rows)
    for key in reversed(sort_keys):
        result.sort(key=lambda row: _sort_value(row.get(key.column)), reverse=key.direction == "desc")
    return result


def apply_view(rows: list[dict[str, Any]], state: ViewState) -> list[dict[str, Any]]:
    return sort_rows(apply_filters(rows, state), state.sort_keys)


def paginate(rows: list[dict[str, Any]], page: int = 1, page_size: int = 50) -> Page:
    """Slice out a 1-based page. Pages past the end come back empty."""
    if page < 1:
        raise ValueError("Page numbers start at 1")
    if page_size < 1:
        raise ValueError("Page size must be positive")

    total = len(rows)
    total_pages = math.ceil(total / page_size)
    start = (page - 1) * page_size
    end = min(start + page_size, total)
    return Page(
        data=rows[start:end],
        current_page=page,
        page_size=page_size,
        total_records=total,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
        start_index=start,
        end_index=end,
    )


def filters_summary(state: ViewState) -> str:
    parts = [str(f) for f in (*state.query_filters, *state.compare_filters)]
    return f"Filters: {'; '.join(parts)}" if parts else ""


# longest operators first so ">=" isn't read as ">" followed by "=..."
_FILTER_PATTERN = re.compile(r"^(?P<field>[^<>=*]+?)\s*(?P<op><\*>|<>|>=|<=|>|<|=|\*)\s*(?P<value>.*)$")


def parse_filter(text: str) -> QueryFilter | CompareFilter:
    """Parse a compact filter expression from the command line.

    "country=US", "pagePath*blog", "source<>google" are string filters;
    ">=", "<=", ">", "<" are numeric. "=" with a numeric value is still a
    string match since "US" vs "us" matters more than 1 vs 1.0 in practice.
    """
    match = _FILTER_PATTERN.match(text.strip())
    if not match or not match.group("value"):
        raise ValueError(f"Can't parse filter '{text}'. Expected e.g. country=US or sessions>=10")

    field, op, value = match.group("field").strip(), match.group("op"), match.group("value").strip()
    if op in (">=", "<=", ">", "<"):
        number = _as_number(value)
        if number is None:
            raise ValueError(f"Filter '{text}' compares against a non-number: {value}")
        return CompareFilter(field=field, operator=op, value=number)
    return QueryFilter(field=field, operator=op, value=value)


def parse_sort_key(text: str) -> SortKey:
    """"sessions:desc" -> SortKey. Direction defaults to asc."""
    column, _, direction = text.partition(":")
    direction = (direction or "asc").strip().lower()
    if direction not in ("asc", "desc"):
        raise ValueError(f"Sort direction must be asc or desc, got '{direction}'")
    return SortKey(column=column.strip(), direction=direction)
