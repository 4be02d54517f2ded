"""Per-entity revenue/profit trend series over a fixed list of periods."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from app.reporting.aggregation import accumulate, as_amount, split_revenue
from app.reporting.periods import MalformedTimestampError, period_key
from app.reporting.types import ZERO, Granularity, InvoiceRecord, SeriesEntry, TimeSeriesPoint, TrendPoint

logger = structlog.get_logger(__name__)


def _match_all(invoice: InvoiceRecord) -> bool:
    return True


@dataclass(slots=True)
class TrendEntity:
    """One series to emit: identity fields plus an invoice membership test."""

    identity: dict[str, str | None]
    matches: Callable[[InvoiceRecord], bool] = field(default=_match_all)


def property_entity(property_id: str, name: str) -> TrendEntity:
    return TrendEntity(
        identity={"property_id": property_id, "property_name": name},
        matches=lambda invoice: invoice.property_id == property_id,
    )


def provider_entity(provider_id: str, name: str) -> TrendEntity:
    return TrendEntity(
        identity={"provider_id": provider_id, "provider_name": name},
        matches=lambda invoice: invoice.provider_id == provider_id,
    )


def bucket_by_period(
    invoices: Iterable[InvoiceRecord],
    granularity: Granularity,
) -> dict[str, list[InvoiceRecord]]:
    """Group invoices by period key, dropping those with unusable issue dates."""

    buckets: dict[str, list[InvoiceRecord]] = {}
    for invoice in invoices:
        try:
            key = period_key(invoice.issue_date, granularity)
        except MalformedTimestampError:
            logger.warning(
                "invoice_dropped_from_trend",
                invoice_id=invoice.id,
                issue_date=str(invoice.issue_date),
            )
            continue
        buckets.setdefault(key, []).append(invoice)
    return buckets


def build_trend_series(
    invoices: Iterable[InvoiceRecord],
    labels: Sequence[str],
    granularity: Granularity,
    entities: Sequence[TrendEntity],
) -> list[SeriesEntry]:
    """Emit one series entry per entity that has revenue in any listed period.

    Trend points follow the order of ``labels`` and periods without revenue
    are omitted, so series are not contiguous. Each entry's totals cover only
    the invoices that fell into the listed periods.
    """

    buckets = bucket_by_period(invoices, granularity)

    series: list[SeriesEntry] = []
    for entity in entities:
        trend: list[TrendPoint] = []
        covered: list[InvoiceRecord] = []
        for label in labels:
            period_invoices = [invoice for invoice in buckets.get(label, ()) if entity.matches(invoice)]
            revenue = sum((as_amount(invoice.total) for invoice in period_invoices), ZERO)
            covered.extend(period_invoices)
            if revenue > ZERO:
                _, profit = split_revenue(revenue)
                trend.append(TrendPoint(label=label, revenue=revenue, profit=profit))
        if not trend:
            continue
        series.append(SeriesEntry(metrics=accumulate(covered, **entity.identity), trend=trend))
    return series


def build_time_series(invoices: Iterable[InvoiceRecord], granularity: Granularity) -> list[TimeSeriesPoint]:
    """One point per non-empty period of ``invoices``, oldest first.

    Unlike :func:`build_trend_series` the periods are not a fixed list: every
    period that holds an invoice is emitted, so the series spans the whole
    date window.
    """

    points: list[TimeSeriesPoint] = []
    for key, period_invoices in sorted(bucket_by_period(invoices, granularity).items()):
        revenue = sum((as_amount(invoice.total) for invoice in period_invoices), ZERO)
        expenses, profit = split_revenue(revenue)
        points.append(
            TimeSeriesPoint(
                period=key,
                revenue=revenue,
                expenses=expenses,
                profit=profit,
                invoice_count=len(period_invoices),
            )
        )
    return points
