"""GA4 Data/Admin API client wrapper.

thin on purpose - builds RunReportRequests from already-resolved GA4 names
and hands back plain dicts in the same shape the REST API returns
({"dimensionValues": [{"value": ...}], ...}), so the row pipeline doesn't
care whether the data came from grpc, rest, or a test fixture.
"""

import logging
from typing import Any

from google.analytics.admin_v1beta import AnalyticsAdminServiceClient
from google.analytics.data_v1beta import BetaAnalyticsDataClient
from google.analytics.data_v1beta.types import (
    DateRange,
    Dimension,
    Metric,
    OrderBy,
    RunReportRequest,
)
from google.api_core import exceptions as google_exceptions
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ga4explorer.errors import (
    AuthError,
    GA4Error,
    InvalidQueryError,
    PropertyAccessError,
    PropertyNotFoundError,
)
from ga4explorer.models.query import DateRange as QueryDateRange
from ga4explorer.models.query import OrderBy as QueryOrderBy
from ga4explorer.models.query import PropertySummary

logger = logging.getLogger(__name__)

# quota and transient backend errors are worth another go, nothing else is
RETRYABLE = (
    google_exceptions.ResourceExhausted,
    google_exceptions.TooManyRequests,
    google_exceptions.ServiceUnavailable,
)


def build_request(
    property_id: str,
    date_range: QueryDateRange,
    dimensions: list[str],
    metrics: list[str],
    limit: int,
    offset: int = 0,
    order_bys: list[QueryOrderBy] | None = None,
) -> RunReportRequest:
    """Build a runReport request. All names must already be GA4 names."""
    request = RunReportRequest(
        property=f"properties/{property_id}",
        date_ranges=[
            DateRange(start_date=date_range.start.isoformat(), end_date=date_range.end.isoformat())
        ],
        dimensions=[Dimension(name=d) for d in dimensions],
        metrics=[Metric(name=m) for m in metrics],
        limit=limit,
        offset=offset,
    )
    if order_bys:
        request.order_bys = [_build_order_by(o) for o in order_bys]
    return request


def _build_order_by(order_by: QueryOrderBy) -> OrderBy:
    if order_by.metric is not None:
        return OrderBy(
            metric=OrderBy.MetricOrderBy(metric_name=order_by.metric), desc=order_by.desc
        )
    return OrderBy(
        dimension=OrderBy.DimensionOrderBy(dimension_name=order_by.dimension), desc=order_by.desc
    )


def response_to_dict(response: Any) -> dict[str, Any]:
    """Flatten a RunReportResponse into the REST json shape."""
    return {
        "dimensionHeaders": [h.name for h in response.dimension_headers],
        "metricHeaders": [h.name for h in response.metric_headers],
        "rows": [
            {
                "dimensionValues": [{"value": v.value} for v in row.dimension_values],
                "metricValues": [{"value": v.value} for v in row.metric_values],
            }
            for row in response.rows
        ],
        "rowCount": response.row_count,
    }


def translate_error(error: google_exceptions.GoogleAPICallError, property_id: str | None = None) -> GA4Error:
    """Map google api errors onto our own with messages a human can act on."""
    target = f"property {property_id}" if property_id else "Google Analytics"
    if isinstance(error, google_exceptions.Unauthenticated):
        return AuthError(
            "Authentication failed. Run 'gax auth' again and grant all requested permissions."
        )
    if isinstance(error, google_exceptions.PermissionDenied):
        return PropertyAccessError(
            f"Analytics access denied for {target}. Make sure your account has "
            'the "Viewer" or "Analyst" role.'
        )
    if isinstance(error, google_exceptions.NotFound):
        return PropertyNotFoundError(f"Analytics {target} not found. Check the property ID.")
    if isinstance(error, google_exceptions.InvalidArgument):
        return InvalidQueryError(f"Invalid Analytics query: {error.message}")
    return GA4Error(f"Analytics API error: {error.message}")


class GA4Client:
    """Data + Admin API access for one set of credentials.

    the google clients are created lazily - constructing them opens grpc
    channels, which is wasted work for commands that never hit the network.
    """

    def __init__(
        self,
        credentials: Any = None,
        data_client: BetaAnalyticsDataClient | None = None,
        admin_client: AnalyticsAdminServiceClient | None = None,
    ) -> None:
        self.credentials = credentials
        self._data_client = data_client
        self._admin_client = admin_client

    @property
    def data_client(self) -> BetaAnalyticsDataClient:
        if self._data_client is None:
            self._data_client = BetaAnalyticsDataClient(credentials=self.credentials)
        return self._data_client

    @property
    def admin_client(self) -> AnalyticsAdminServiceClient:
        if self._admin_client is None:
            self._admin_client = AnalyticsAdminServiceClient(credentials=self.credentials)
        return self._admin_client

    def run_report(self, request: RunReportRequest) -> dict[str, Any]:
        """Run a report and return it as a plain dict."""
        property_id = request.property.split("/")[-1]
        logger.debug("runReport request: %s", request)
        try:
            response = self._run_report(request)
        except google_exceptions.GoogleAPICallError as e:
            raise translate_error(e, property_id) from e

        result = response_to_dict(response)
        logger.info(
            "Analytics API returned %d rows for property %s (limit %d)",
            len(result["rows"]),
            property_id,
            request.limit,
        )
        return result

    @retry(
        retry=retry_if_exception_type(RETRYABLE),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    def _run_report(self, request: RunReportRequest) -> Any:
        return self.data_client.run_report(request)

    def list_properties(self) -> list[PropertySummary]:
        """Every property visible to the account, flattened out of account summaries."""
        try:
            summaries = list(self.admin_client.list_account_summaries())
        except google_exceptions.GoogleAPICallError as e:
            raise translate_error(e) from e

        properties = []
        for account in summaries:
            for prop in account.property_summaries:
                properties.append(
                    PropertySummary(
                        property_id=prop.property.split("/")[-1],
                        display_name=prop.display_name,
                        account_id=account.account.split("/")[-1],
                        account_name=account.display_name,
                    )
                )
        logger.info("Found %d properties across %d accounts", len(properties), len(summaries))
        return properties

    def close(self) -> None:
        """Close any grpc channels we opened."""
        for client in (self._data_client, self._admin_client):
            if client is not None:
                client.transport.close()
        self._data_client = None
        self._admin_client = None
