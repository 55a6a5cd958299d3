"""REST API for GA4 Explorer.

same operations as the CLI over http. request bodies use camelCase since
that's what the existing web front-end sends; the models accept snake_case
too. every response carries "success" so clients can branch on one field.

there's no auth layer here - the server acts as whoever owns the cached
Google token, so bind it to localhost or put it behind something that does
authentication.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ga4explorer.dates import resolve_date_range
from ga4explorer.errors import GA4Error
from ga4explorer.explorer import Explorer
from ga4explorer.export import to_csv
from ga4explorer.models.query import DateRange, QuerySpec
from ga4explorer.session_flow import SessionFlowAnalyzer
from ga4explorer.views import (
    CompareFilter,
    QueryFilter,
    SortKey,
    ViewState,
    apply_filters,
    paginate,
    sort_rows,
)

logger = logging.getLogger(__name__)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DateRangeFields(ApiModel):
    date_range_type: str = "last7"
    custom_start_date: str | None = None
    custom_end_date: str | None = None

    def resolve(self) -> DateRange:
        return resolve_date_range(self.date_range_type, self.custom_start_date, self.custom_end_date)


class AdhocQueryRequest(DateRangeFields):
    metrics: list[str] = Field(default_factory=lambda: ["sessions", "users", "pageviews", "bounceRate"])
    dimensions: list[str] = Field(default_factory=lambda: ["pageTitle"])
    limit: int = Field(default=1000, gt=0)
    output_format: Literal["json", "csv", "table"] = "json"
    sorting: list[SortKey] = Field(default_factory=list)


class PresetQueryRequest(DateRangeFields):
    preset: str
    limit: int | None = Field(default=None, gt=0)
    output_format: Literal["json", "csv", "table"] = "json"


class FilterSpec(ApiModel):
    field: str
    operator: str
    value: str | float
    type: Literal["query", "compare"] = "query"


class FilterRequest(ApiModel):
    data: list[dict[str, Any]]
    filters: list[FilterSpec]


class PaginateRequest(ApiModel):
    data: list[dict[str, Any]]
    page: int = 1
    page_size: int = Field(default=50, gt=0)
    sorting: list[SortKey] = Field(default_factory=list)


class SelectPropertyRequest(ApiModel):
    property_id: str


class SessionFlowRequest(DateRangeFields):
    analysis_type: str
    output_format: Literal["json", "csv"] = "json"


def _csv_response(rows: list[dict[str, Any]], filename: str, columns: list[str] | None = None) -> Response:
    return Response(
        content=to_csv(rows, columns),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(explorer_factory: Callable[[], Explorer] | None = None) -> FastAPI:
    """Build the API app.

    explorer_factory is called once, on the first request that needs it.
    the default never opens a browser - authenticate with 'gax auth' first.
    """
    app = FastAPI(title="GA4 Explorer API")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    app.state.explorer_factory = explorer_factory or (lambda: Explorer(interactive=False))
    app.state.explorer = None

    def get_explorer(request: Request) -> Explorer:
        state = request.app.state
        if state.explorer is None:
            state.explorer = state.explorer_factory()
        return state.explorer

    # --- error mapping ---

    @app.exception_handler(GA4Error)
    async def _ga4_error(request: Request, exc: GA4Error) -> JSONResponse:
        return _error(exc.status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        # one message for the whole detail list, e.g. "body.data: Field required"
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return _error(400, "; ".join(problems) or "Invalid request")

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(KeyError)
    async def _key_error(request: Request, exc: KeyError) -> JSONResponse:
        return _error(404, str(exc.args[0]) if exc.args else "Not found")

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        return _error(500, str(exc))

    # --- status & configuration ---

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "GA4 Explorer API",
        }

    @app.get("/api/presets")
    def list_presets(explorer: Explorer = Depends(get_explorer)) -> dict[str, Any]:
        return {"success": True, "presets": explorer.list_presets()}

    @app.get("/api/schema")
    def schema(explorer: Explorer = Depends(get_explorer)) -> dict[str, Any]:
        return {"success": True, **explorer.schema()}

    # --- properties ---

    @app.get("/api/properties")
    def list_properties(explorer: Explorer = Depends(get_explorer)) -> dict[str, Any]:
        props = explorer.list_properties()
        return {
            "success": True,
            "properties": [p.model_dump(by_alias=False) for p in props],
            "total": len(props),
        }

    @app.get("/api/properties/current")
    def current_property(explorer: Explorer = Depends(get_explorer)) -> dict[str, Any]:
        return {"success": True, "propertyId": explorer.selected_property()}

    @app.post("/api/properties/current")
    def select_property(
        body: SelectPropertyRequest, explorer: Explorer = Depends(get_explorer)
    ) -> dict[str, Any]:
        explorer.select_property(body.property_id)
        return {"success": True, "propertyId": explorer.selected_property()}

    @app.delete("/api/properties/current")
    def clear_property(explorer: Explorer = Depends(get_explorer)) -> dict[str, Any]:
        return {"success": True, "cleared": explorer.clear_property()}

    # --- queries ---

    @app.post("/api/query/adhoc")
    def adhoc_query(body: AdhocQueryRequest, explorer: Explorer = Depends(get_explorer)) -> Any:
        if not body.metrics:
            raise ValueError("At least one metric is required")
        if not body.dimensions:
            raise ValueError("At least one dimension is required")

        spec = QuerySpec(
            metrics=body.metrics,
            dimensions=body.dimensions,
            date_range=body.resolve(),
            limit=body.limit,
        )
        result = explorer.query(spec)
        rows = sort_rows(result.data, body.sorting) if body.sorting else result.data

        if body.output_format == "csv":
            return _csv_response(rows, "ga4-data.csv", result.columns)
        return {
            "success": True,
            "data": rows,
            "total": len(rows),
            "property": result.property_id,
            "columns": result.columns,
            "query": {
                "metrics": body.metrics,
                "dimensions": body.dimensions,
                "dateRange": {
                    "start": spec.date_range.start.isoformat(),
                    "end": spec.date_range.end.isoformat(),
                },
                "limit": body.limit,
            },
        }

    @app.post("/api/query/preset")
    def preset_query(body: PresetQueryRequest, explorer: Explorer = Depends(get_explorer)) -> Any:
        date_range = body.resolve()
        result = explorer.run_preset(body.preset, date_range=date_range, limit=body.limit)

        if body.output_format == "csv":
            return _csv_response(result.data, "ga4-preset-data.csv", result.columns)
        return {
            "success": True,
            "data": result.data,
            "total": result.row_count,
            "property": result.property_id,
            "preset": body.preset,
            "columns": result.columns,
            "query": {
                "dateRange": {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()},
                "limit": body.limit,
            },
        }

    @app.post("/api/query/filter")
    def filter_rows(body: FilterRequest) -> dict[str, Any]:
        state = ViewState()
        for spec in body.filters:
            if spec.type == "compare":
                state.add_filter(CompareFilter(field=spec.field, operator=spec.operator, value=spec.value))
            else:
                state.add_filter(QueryFilter(field=spec.field, operator=spec.operator, value=str(spec.value)))

        filtered = apply_filters(body.data, state)
        return {
            "success": True,
            "originalCount": len(body.data),
            "filteredCount": len(filtered),
            "data": filtered,
            "filters": [f.model_dump(by_alias=True) for f in body.filters],
        }

    @app.post("/api/query/paginate")
    def paginate_rows(body: PaginateRequest) -> dict[str, Any]:
        rows = sort_rows(body.data, body.sorting) if body.sorting else body.data
        page = paginate(rows, body.page, body.page_size)
        return {
            "success": True,
            "data": page.data,
            "pagination": page.model_dump(by_alias=True, exclude={"data"}),
        }

    # --- session flow ---

    @app.post("/api/session-flow/analyze")
    def session_flow(body: SessionFlowRequest, explorer: Explorer = Depends(get_explorer)) -> Any:
        date_range = body.resolve()
        result = SessionFlowAnalyzer(explorer).analyze(body.analysis_type, date_range)

        if body.output_format == "csv":
            return _csv_response(result.rows(), "ga4-session-flow.csv")
        return {
            "success": True,
            "analysisType": body.analysis_type,
            "property": explorer.resolve_property(),
            "dateRange": {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()},
            "result": result.model_dump(),
        }

    return app


app = create_app()
