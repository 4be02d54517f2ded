"""Financial report endpoints for properties, providers, their pairings and time series."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db_session
from app.reporting.types import Granularity, ReportQuery, TrendMode
from app.services.financial_report_service import FinancialReportService

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session) -> FinancialReportService:
    return FinancialReportService(db)


def report_query(
    property_id: str | None = Query(default=None, alias="propertyId"),
    provider_id: str | None = Query(default=None, alias="providerId"),
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    granularity: Granularity = Granularity.MONTH,
    trend_mode: TrendMode = Query(default=TrendMode.WINDOWED, alias="trendMode"),
    as_of: datetime | None = Query(default=None, alias="asOf"),
) -> ReportQuery:
    return ReportQuery(
        property_id=property_id or None,
        provider_id=provider_id or None,
        date_from=date_from,
        date_to=date_to,
        granularity=granularity,
        trend_mode=trend_mode,
        as_of=as_of,
    )


@router.get("/summary")
def report_summary(
    query: ReportQuery = Depends(report_query),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).summary_report(query)


@router.get("/properties")
def report_properties(
    query: ReportQuery = Depends(report_query),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).property_report(query)


@router.get("/providers")
def report_providers(
    query: ReportQuery = Depends(report_query),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).provider_report(query)


@router.get("/combined")
def report_combined(
    query: ReportQuery = Depends(report_query),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).combined_report(query)


@router.get("/time-series")
def report_time_series(
    query: ReportQuery = Depends(report_query),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    return _service(db).time_series(query)
