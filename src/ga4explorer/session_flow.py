"""Session flow reports built from grouped GA4 queries.

GA4's Data API has no path/funnel endpoint, so these approximate one by
pulling page-level rows grouped by session/client and stitching them back
together. they're illustrative - the "exit rate" in particular is just
sessions / pageviews per page, not GA's real exit rate (no entry/exit
distinction is available at this grain).

every result can flatten itself to rows() so the normal table/csv renderers
work on it.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from ga4explorer.explorer import Explorer
from ga4explorer.models.query import DateRange, QuerySpec

logger = logging.getLogger(__name__)

TOP_N = 10
PATH_SEPARATOR = " → "


def _rate(part: float, whole: float) -> float | None:
    if not whole:
        return None
    return round(part / whole * 100, 1)


class SessionPath(BaseModel):
    session_id: str
    pages: list[str]
    sessions: int


class PageSequence(BaseModel):
    pages: list[str]
    sessions: int


class PathExplorationResult(BaseModel):
    """Per-session page paths, ranked by weight.

    a session's weight is the sum of the sessions metric over all of its
    page rows, not the value from its first row.
    """

    kind: str = "path_exploration"
    top_sessions: list[SessionPath] = Field(default_factory=list)
    common_sequences: list[PageSequence] = Field(default_factory=list)

    def rows(self) -> list[dict[str, Any]]:
        return [
            {"session": s.session_id, "path": PATH_SEPARATOR.join(s.pages), "sessions": s.sessions}
            for s in self.top_sessions
        ]


class UserJourney(BaseModel):
    client_id: str
    sessions: dict[str, list[str]]  # session id -> pages in order seen


class UserJourneyResult(BaseModel):
    kind: str = "user_journey"
    users: list[UserJourney] = Field(default_factory=list)

    def rows(self) -> list[dict[str, Any]]:
        return [
            {"client": user.client_id, "session": session_id, "path": PATH_SEPARATOR.join(pages)}
            for user in self.users
            for session_id, pages in user.sessions.items()
        ]


class PageStats(BaseModel):
    path: str
    title: str = ""
    sessions: int
    pageviews: int


class FunnelStep(BaseModel):
    name: str
    sessions: int
    rate: float | None = None  # % of the previous step


class FunnelResult(BaseModel):
    kind: str = "funnel_analysis"
    top_pages: list[PageStats] = Field(default_factory=list)
    steps: list[FunnelStep] = Field(default_factory=list)
    overall_rate: float | None = None

    def rows(self) -> list[dict[str, Any]]:
        return [{"step": s.name, "sessions": s.sessions, "rate": s.rate} for s in self.steps]


class ExitPage(PageStats):
    exit_rate: float | None = None


class ExitPagesResult(BaseModel):
    kind: str = "exit_analysis"
    pages: list[ExitPage] = Field(default_factory=list)

    def rows(self) -> list[dict[str, Any]]:
        return [p.model_dump() for p in self.pages]


class LandingPage(BaseModel):
    page: str
    source: str
    medium: str
    sessions: int
    new_users: int
    new_user_rate: float | None = None


class LandingPagesResult(BaseModel):
    kind: str = "landing_analysis"
    pages: list[LandingPage] = Field(default_factory=list)

    def rows(self) -> list[dict[str, Any]]:
        return [p.model_dump() for p in self.pages]


class SessionFlowAnalyzer:
    """Runs the session flow reports for the explorer's current property."""

    def __init__(self, explorer: Explorer, property_id: str | None = None) -> None:
        self.explorer = explorer
        self.property_id = property_id
        self._analyses: dict[str, Callable[[DateRange], BaseModel]] = {
            "path_exploration": self.path_exploration,
            "user_journey": self.user_journey,
            "funnel_analysis": self.funnel,
            "exit_analysis": self.exit_pages,
            "landing_analysis": self.landing_pages,
        }

    @property
    def kinds(self) -> list[str]:
        return list(self._analyses)

    def analyze(self, kind: str, date_range: DateRange) -> BaseModel:
        if kind not in self._analyses:
            raise ValueError(f"Unknown analysis type: {kind}. Use one of: {', '.join(self.kinds)}")
        return self._analyses[kind](date_range)

    def _rows(
        self, dimensions: list[str], metrics: list[str], date_range: DateRange, limit: int
    ) -> list[dict[str, Any]]:
        spec = QuerySpec(dimensions=dimensions, metrics=metrics, date_range=date_range, limit=limit)
        result = self.explorer.query(spec, self.property_id)
        logger.debug("Session flow query %s returned %d rows", dimensions, result.row_count)
        return result.data

    def path_exploration(self, date_range: DateRange) -> PathExplorationResult:
        """Pages per session, busiest sessions first, plus the common sequences."""
        rows = self._rows(
            ["pagePath", "pageTitle", "sessionId"], ["sessions", "screenPageViews"], date_range, 1000
        )

        pages: dict[str, list[str]] = defaultdict(list)
        totals: dict[str, int] = defaultdict(int)
        for row in rows:
            session_id = row.get("sessionId") or "unknown"
            pages[session_id].append(row.get("pagePath", ""))
            totals[session_id] += int(row.get("sessions", 0))

        ranked = sorted(pages, key=lambda s: totals[s], reverse=True)
        top_sessions = [
            SessionPath(session_id=s, pages=pages[s], sessions=totals[s]) for s in ranked[:TOP_N]
        ]

        # single-page sessions aren't a path
        sequences: dict[tuple[str, ...], int] = defaultdict(int)
        for session_id, session_pages in pages.items():
            if len(session_pages) > 1:
                sequences[tuple(session_pages)] += totals[session_id]
        common = sorted(sequences.items(), key=lambda item: item[1], reverse=True)[:5]

        return PathExplorationResult(
            top_sessions=top_sessions,
            common_sequences=[PageSequence(pages=list(seq), sessions=n) for seq, n in common],
        )

    def user_journey(self, date_range: DateRange) -> UserJourneyResult:
        """Per-client session paths for the first handful of users."""
        rows = self._rows(
            ["pagePath", "pageTitle", "sessionId", "clientId"],
            ["sessions", "screenPageViews"],
            date_range,
            100,
        )

        journeys: dict[str, dict[str, list[str]]] = defaultdict(lambda: defaultdict(list))
        for row in rows:
            client_id = row.get("clientId") or "unknown"
            session_id = row.get("sessionId") or "unknown"
            journeys[client_id][session_id].append(row.get("pagePath", ""))

        users = [
            UserJourney(client_id=client_id, sessions=dict(sessions))
            for client_id, sessions in list(journeys.items())[:5]
        ]
        return UserJourneyResult(users=users)

    def _page_stats(self, dimensions: list[str], date_range: DateRange) -> list[PageStats]:
        rows = self._rows(dimensions, ["sessions", "screenPageViews"], date_range, 1000)
        stats = [
            PageStats(
                path=row.get("pagePath", ""),
                title=row.get("pageTitle", ""),
                sessions=int(row.get("sessions", 0)),
                pageviews=int(row.get("screenPageViews", 0)),
            )
            for row in rows
        ]
        return sorted(stats, key=lambda p: p.sessions, reverse=True)

    def funnel(self, date_range: DateRange) -> FunnelResult:
        """Homepage -> product pages -> checkout pages, by sessions.

        steps only appear while the previous one exists. rates are relative
        to the previous step.
        """
        pages = self._page_stats(["pagePath"], date_range)
        result = FunnelResult(top_pages=pages[:TOP_N])

        home = next((p for p in pages if p.path == "/"), None)
        if home is None:
            return result
        result.steps.append(FunnelStep(name="Homepage", sessions=home.sessions))

        product = sum(p.sessions for p in pages if "/product" in p.path)
        if not any("/product" in p.path for p in pages):
            return result
        result.steps.append(
            FunnelStep(name="Product Pages", sessions=product, rate=_rate(product, home.sessions))
        )

        if not any("/checkout" in p.path for p in pages):
            return result
        checkout = sum(p.sessions for p in pages if "/checkout" in p.path)
        result.steps.append(
            FunnelStep(name="Checkout Pages", sessions=checkout, rate=_rate(checkout, product))
        )
        result.overall_rate = _rate(checkout, home.sessions)
        return result

    def exit_pages(self, date_range: DateRange) -> ExitPagesResult:
        pages = self._page_stats(["pagePath", "pageTitle"], date_range)[:TOP_N]
        return ExitPagesResult(
            pages=[
                ExitPage(**p.model_dump(), exit_rate=_rate(p.sessions, p.pageviews)) for p in pages
            ]
        )

    def landing_pages(self, date_range: DateRange) -> LandingPagesResult:
        rows = self._rows(
            ["landingPage", "sessionSource", "sessionMedium"], ["sessions", "newUsers"], date_range, 1000
        )
        pages = [
            LandingPage(
                page=row.get("landingPage", ""),
                source=row.get("sessionSource", ""),
                medium=row.get("sessionMedium", ""),
                sessions=int(row.get("sessions", 0)),
                new_users=int(row.get("newUsers", 0)),
                new_user_rate=_rate(row.get("newUsers", 0), row.get("sessions", 0)),
            )
            for row in rows
        ]
        pages.sort(key=lambda p: p.sessions, reverse=True)
        return LandingPagesResult(pages=pages[:TOP_N])
