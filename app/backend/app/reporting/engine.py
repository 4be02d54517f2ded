"""Report facade assembling summaries, rankings, trends, time series and cross-tabs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime

import structlog

from app.reporting.aggregation import (
    EntityLabels,
    group_by_property,
    group_by_property_and_provider,
    group_by_provider,
    rank_groups,
    summarize,
)
from app.reporting.filters import InvalidReportQueryError, filter_invoices, parse_window
from app.reporting.periods import MalformedTimestampError, parse_timestamp, period_labels
from app.reporting.trends import (
    TrendEntity,
    build_time_series,
    build_trend_series,
    property_entity,
    provider_entity,
)
from app.reporting.types import (
    Granularity,
    InvoiceRecord,
    Report,
    ReportQuery,
    ReportSnapshot,
    SeriesEntry,
    TimeSeriesPoint,
    TrendMode,
)

logger = structlog.get_logger(__name__)

DEFAULT_PERIOD_COUNTS: dict[Granularity, int] = {
    Granularity.WEEK: 12,
    Granularity.MONTH: 5,
    Granularity.YEAR: 3,
}

ALL_ENTITIES_ID = "all"
ALL_PROPERTIES_NAME = "All Properties"
ALL_PROVIDERS_NAME = "All Providers"
ACTIVE = "active"


class ReportEngine:
    """Pure report computations over one snapshot of billing data."""

    def __init__(
        self,
        snapshot: ReportSnapshot,
        *,
        period_counts: Mapping[Granularity, int] | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.period_counts = {**DEFAULT_PERIOD_COUNTS, **(period_counts or {})}
        self.labels = EntityLabels(snapshot.properties, snapshot.providers)

    # ---------- Inputs ----------
    def _window_is_valid(self, query: ReportQuery) -> bool:
        try:
            parse_window(query)
        except InvalidReportQueryError as exc:
            logger.warning(
                "report_window_invalid",
                date_from=query.date_from,
                date_to=query.date_to,
                error=str(exc),
            )
            return False
        return True

    def _filtered(self, query: ReportQuery) -> list[InvoiceRecord]:
        return filter_invoices(self.snapshot.invoices, query)

    def historical_trend_invoices(self, query: ReportQuery) -> list[InvoiceRecord]:
        """Invoices for a trend over full history, ignoring the date window."""

        return filter_invoices(self.snapshot.invoices, query, apply_date_window=False)

    def _trend_invoices(self, query: ReportQuery, filtered: list[InvoiceRecord]) -> list[InvoiceRecord]:
        if TrendMode(query.trend_mode) is TrendMode.HISTORICAL:
            return self.historical_trend_invoices(query)
        # Windowed trends reuse the report's own filtered set.
        return filtered

    @staticmethod
    def _as_of(query: ReportQuery) -> datetime | None:
        if query.as_of is None:
            return None
        return parse_timestamp(query.as_of)

    @staticmethod
    def _latest_issue_date(invoices: Sequence[InvoiceRecord]) -> datetime | None:
        latest: datetime | None = None
        for invoice in invoices:
            try:
                issued = parse_timestamp(invoice.issue_date)
            except MalformedTimestampError:
                continue
            if latest is None or issued > latest:
                latest = issued
        return latest

    def _trend_anchor(self, query: ReportQuery, invoices: Sequence[InvoiceRecord]) -> datetime:
        if TrendMode(query.trend_mode) is TrendMode.WINDOWED:
            window = parse_window(query)
            if window is not None:
                return window.end
        return self._as_of(query) or self._latest_issue_date(invoices) or datetime.utcnow()

    def trend_labels(self, query: ReportQuery, invoices: Sequence[InvoiceRecord]) -> list[str]:
        granularity = Granularity(query.granularity)
        return period_labels(
            granularity,
            self._trend_anchor(query, invoices),
            self.period_counts[granularity],
        )

    # ---------- Series ----------
    def _property_entities(self, query: ReportQuery) -> list[TrendEntity]:
        if query.property_id:
            return [property_entity(query.property_id, self.labels.property_name(query.property_id))]
        entities = [
            property_entity(row.id, row.name)
            for row in self.snapshot.properties
            if row.status == ACTIVE
        ]
        entities.append(TrendEntity(identity={"property_id": ALL_ENTITIES_ID, "property_name": ALL_PROPERTIES_NAME}))
        return entities

    def _provider_entities(self, query: ReportQuery) -> list[TrendEntity]:
        if query.provider_id:
            return [provider_entity(query.provider_id, self.labels.provider_name(query.provider_id))]
        entities = [
            provider_entity(row.id, row.display_name)
            for row in self.snapshot.providers
            if row.status == ACTIVE
        ]
        entities.append(TrendEntity(identity={"provider_id": ALL_ENTITIES_ID, "provider_name": ALL_PROVIDERS_NAME}))
        return entities

    def _series(
        self,
        query: ReportQuery,
        filtered: list[InvoiceRecord],
        entities: list[TrendEntity],
    ) -> list[SeriesEntry]:
        invoices = self._trend_invoices(query, filtered)
        return build_trend_series(
            invoices,
            self.trend_labels(query, invoices),
            Granularity(query.granularity),
            entities,
        )

    # ---------- Reports ----------
    def _empty_report(self, query: ReportQuery, *, combined: bool = False) -> Report:
        return Report(
            summary=summarize([], as_of=self._as_of(query)),
            combined_data=[] if combined else None,
        )

    def summary_report(self, query: ReportQuery) -> Report:
        if not self._window_is_valid(query):
            return self._empty_report(query)
        return Report(summary=summarize(self._filtered(query), as_of=self._as_of(query)))

    def property_report(self, query: ReportQuery) -> Report:
        if not self._window_is_valid(query):
            return self._empty_report(query)
        filtered = self._filtered(query)
        report = Report(
            summary=summarize(filtered, as_of=self._as_of(query)),
            by_property=rank_groups(group_by_property(filtered, self.labels).values()),
            series=self._series(query, filtered, self._property_entities(query)),
        )
        logger.debug("property_report_built", invoices=len(filtered), groups=len(report.by_property))
        return report

    def provider_report(self, query: ReportQuery) -> Report:
        if not self._window_is_valid(query):
            return self._empty_report(query)
        filtered = self._filtered(query)
        report = Report(
            summary=summarize(filtered, as_of=self._as_of(query)),
            by_provider=rank_groups(group_by_provider(filtered, self.labels).values()),
            series=self._series(query, filtered, self._provider_entities(query)),
        )
        logger.debug("provider_report_built", invoices=len(filtered), groups=len(report.by_provider))
        return report

    def combined_report(self, query: ReportQuery) -> Report:
        if not self._window_is_valid(query):
            return self._empty_report(query, combined=True)
        filtered = self._filtered(query)
        report = Report(
            summary=summarize(filtered, as_of=self._as_of(query)),
            by_property=rank_groups(group_by_property(filtered, self.labels).values()),
            by_provider=rank_groups(group_by_provider(filtered, self.labels).values()),
            series=self._series(query, filtered, self._property_entities(query)),
            combined_data=rank_groups(group_by_property_and_provider(filtered, self.labels).values()),
        )
        logger.debug("combined_report_built", invoices=len(filtered), pairs=len(report.combined_data or []))
        return report

    def time_series(self, query: ReportQuery) -> list[TimeSeriesPoint]:
        """Revenue per period across the whole filtered window, oldest first."""

        if not self._window_is_valid(query):
            return []
        filtered = self._filtered(query)
        points = build_time_series(filtered, Granularity(query.granularity))
        logger.debug("time_series_built", invoices=len(filtered), periods=len(points))
        return points
