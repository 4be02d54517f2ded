"""Value types shared by the reporting engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

ZERO = Decimal("0.00")


class Granularity(str, enum.Enum):
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class TrendMode(str, enum.Enum):
    # Trend periods follow the query's date window.
    WINDOWED = "windowed"
    # Trend periods ignore the date window and show full history.
    HISTORICAL = "historical"


@dataclass(slots=True)
class InvoiceRecord:
    id: str
    property_id: str
    provider_id: str
    issue_date: datetime | date | str | None
    status: str
    total: Decimal
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    due_date: datetime | date | str | None = None
    currency: str = "USD"
    invoice_number: str | None = None


@dataclass(slots=True)
class PropertyRecord:
    id: str
    name: str
    status: str = "active"


@dataclass(slots=True)
class ProviderRecord:
    id: str
    name: str
    status: str = "active"
    business_name: str | None = None
    service: str | None = None
    property_ids: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.business_name or self.name


@dataclass(slots=True)
class ReportSnapshot:
    """Point-in-time collections the engine aggregates over."""

    invoices: list[InvoiceRecord] = field(default_factory=list)
    properties: list[PropertyRecord] = field(default_factory=list)
    providers: list[ProviderRecord] = field(default_factory=list)


@dataclass(slots=True)
class ReportQuery:
    property_id: str | None = None
    provider_id: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    granularity: Granularity = Granularity.MONTH
    trend_mode: TrendMode = TrendMode.WINDOWED
    as_of: datetime | None = None


@dataclass(slots=True)
class GroupMetrics:
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    margin_pct: Decimal
    invoices_paid_pct: Decimal
    paid_invoices: int
    total_invoices: int
    overdue_invoices: int
    property_id: str | None = None
    property_name: str | None = None
    provider_id: str | None = None
    provider_name: str | None = None


@dataclass(slots=True)
class ReportSummary:
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    margin_pct: Decimal | None
    invoices_paid_pct: Decimal
    total_invoices: int
    paid_invoices: int
    overdue_invoices: int
    overdue_amount: Decimal
    pending_amount: Decimal


@dataclass(slots=True)
class TrendPoint:
    label: str
    revenue: Decimal
    profit: Decimal


@dataclass(slots=True)
class TimeSeriesPoint:
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    invoice_count: int


@dataclass(slots=True)
class SeriesEntry:
    metrics: GroupMetrics
    trend: list[TrendPoint]


@dataclass(slots=True)
class Report:
    summary: ReportSummary
    by_property: list[GroupMetrics] = field(default_factory=list)
    by_provider: list[GroupMetrics] = field(default_factory=list)
    series: list[SeriesEntry] = field(default_factory=list)
    combined_data: list[GroupMetrics] | None = None
