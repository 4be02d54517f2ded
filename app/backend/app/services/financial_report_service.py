"""Financial report service layer: snapshot loading and response shaping."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.reporting.aggregation import ranked
from app.reporting.engine import ReportEngine
from app.reporting.filters import InvalidReportQueryError, parse_window
from app.reporting.types import (
    Granularity,
    GroupMetrics,
    Report,
    ReportQuery,
    ReportSnapshot,
    ReportSummary,
    SeriesEntry,
    TimeSeriesPoint,
)
from app.repositories.billing_repository import BillingRepository, load_snapshot

logger = structlog.get_logger(__name__)

ReportBuilder = Callable[[ReportEngine, ReportQuery], Report]


def _number(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


class FinancialReportService:
    """Loads billing snapshots and renders engine reports for the API."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BillingRepository(db)
        self.settings = get_settings()

    # ---------- Inputs ----------
    @staticmethod
    def _validate_query(query: ReportQuery) -> None:
        try:
            parse_window(query)
        except InvalidReportQueryError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc

    def _load_snapshot(self) -> ReportSnapshot:
        try:
            return load_snapshot(self.repo)
        except SQLAlchemyError as exc:
            logger.error("report_source_unavailable", error=str(exc))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Report data source unavailable.",
            ) from exc

    def _engine(self) -> ReportEngine:
        return ReportEngine(
            self._load_snapshot(),
            period_counts={
                Granularity.WEEK: self.settings.trend_periods_week,
                Granularity.MONTH: self.settings.trend_periods_month,
                Granularity.YEAR: self.settings.trend_periods_year,
            },
        )

    def _run(self, report_key: str, query: ReportQuery, build: ReportBuilder) -> dict[str, object]:
        self._validate_query(query)
        report = build(self._engine(), query)
        logger.info(
            "report_served",
            report_key=report_key,
            property_id=query.property_id,
            provider_id=query.provider_id,
            granularity=query.granularity.value,
            invoices=report.summary.total_invoices,
        )
        return {
            "reportKey": report_key,
            "from": query.date_from or None,
            "to": query.date_to or None,
            "granularity": query.granularity.value,
            "trendMode": query.trend_mode.value,
        } | self.serialize_report(report)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_group(row: GroupMetrics, *, rank: int | None = None) -> dict[str, object]:
        payload: dict[str, object] = {}
        if rank is not None:
            payload["rank"] = rank
        if row.property_id is not None:
            payload["propertyId"] = row.property_id
            payload["propertyName"] = row.property_name
        if row.provider_id is not None:
            payload["providerId"] = row.provider_id
            payload["providerName"] = row.provider_name
        payload |= {
            "revenue": _number(row.revenue),
            "expenses": _number(row.expenses),
            "profit": _number(row.profit),
            "marginPct": _number(row.margin_pct),
            "invoicesPaidPct": _number(row.invoices_paid_pct),
            "invoices": {
                "paid": row.paid_invoices,
                "total": row.total_invoices,
                "overdue": row.overdue_invoices,
            },
        }
        return payload

    @staticmethod
    def serialize_summary(summary: ReportSummary) -> dict[str, object]:
        return {
            "revenue": _number(summary.revenue),
            "expenses": _number(summary.expenses),
            "profit": _number(summary.profit),
            "marginPct": _number(summary.margin_pct),
            "invoicesPaidPct": _number(summary.invoices_paid_pct),
            "totalInvoices": summary.total_invoices,
            "paidInvoices": summary.paid_invoices,
            "overdueInvoices": summary.overdue_invoices,
            "overdueAmount": _number(summary.overdue_amount),
            "pendingAmount": _number(summary.pending_amount),
        }

    @classmethod
    def serialize_series_entry(cls, entry: SeriesEntry) -> dict[str, object]:
        return cls.serialize_group(entry.metrics) | {
            "trend": [
                {
                    "label": point.label,
                    "revenue": _number(point.revenue),
                    "profit": _number(point.profit),
                }
                for point in entry.trend
            ]
        }

    @staticmethod
    def serialize_time_series_point(point: TimeSeriesPoint) -> dict[str, object]:
        return {
            "period": point.period,
            "revenue": _number(point.revenue),
            "expenses": _number(point.expenses),
            "profit": _number(point.profit),
            "invoiceCount": point.invoice_count,
        }

    @classmethod
    def serialize_report(cls, report: Report) -> dict[str, object]:
        payload: dict[str, object] = {
            "summary": cls.serialize_summary(report.summary),
            "byProperty": [cls.serialize_group(row, rank=pos) for pos, row in ranked(report.by_property)],
            "byProvider": [cls.serialize_group(row, rank=pos) for pos, row in ranked(report.by_provider)],
            "series": [cls.serialize_series_entry(entry) for entry in report.series],
        }
        if report.combined_data is not None:
            payload["combinedData"] = [
                cls.serialize_group(row, rank=pos) for pos, row in ranked(report.combined_data)
            ]
        return payload

    # ---------- Reports ----------
    def summary_report(self, query: ReportQuery) -> dict[str, object]:
        return self._run("financial-summary", query, ReportEngine.summary_report)

    def property_report(self, query: ReportQuery) -> dict[str, object]:
        return self._run("property-financials", query, ReportEngine.property_report)

    def provider_report(self, query: ReportQuery) -> dict[str, object]:
        return self._run("provider-financials", query, ReportEngine.provider_report)

    def combined_report(self, query: ReportQuery) -> dict[str, object]:
        return self._run("combined-financials", query, ReportEngine.combined_report)

    def time_series(self, query: ReportQuery) -> dict[str, object]:
        self._validate_query(query)
        points = self._engine().time_series(query)
        logger.info(
            "report_served",
            report_key="financial-time-series",
            property_id=query.property_id,
            provider_id=query.provider_id,
            granularity=query.granularity.value,
            periods=len(points),
        )
        return {
            "reportKey": "financial-time-series",
            "from": query.date_from or None,
            "to": query.date_to or None,
            "granularity": query.granularity.value,
            "timeSeries": [self.serialize_time_series_point(point) for point in points],
        }
