"""Grouping, ranking and summary math for invoice reports."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

import structlog

from app.reporting.periods import MalformedTimestampError, parse_timestamp
from app.reporting.types import (
    ZERO,
    GroupMetrics,
    InvoiceRecord,
    PropertyRecord,
    ProviderRecord,
    ReportSummary,
)

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)

# Placeholder cost model: expenses and profit are a fixed share of revenue
# until real cost accounting exists.
EXPENSE_RATIO = Decimal("0.30")
PROFIT_RATIO = Decimal("0.70")
GROUP_MARGIN_PCT = Decimal("70.00")

HUNDRED = Decimal("100")
Q2 = Decimal("0.01")

UNKNOWN_PROPERTY = "Unknown Property"
UNKNOWN_PROVIDER = "Unknown Provider"

PAID = "paid"
OVERDUE = "overdue"
PENDING_STATUSES = frozenset({"sent", "overdue"})


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return _q2(numerator / denominator * HUNDRED)


def as_amount(value: Decimal | float | int | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _status(invoice: InvoiceRecord) -> str:
    return str(getattr(invoice.status, "value", invoice.status)).lower()


def split_revenue(revenue: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(expenses, profit)`` for ``revenue`` under the fixed cost model."""

    return revenue * EXPENSE_RATIO, revenue * PROFIT_RATIO


@dataclass(slots=True)
class _Accumulator:
    revenue: Decimal = ZERO
    paid_amount: Decimal = ZERO
    pending_amount: Decimal = ZERO
    count: int = 0
    paid_count: int = 0
    overdue_count: int = 0

    def add(self, invoice: InvoiceRecord) -> None:
        total = as_amount(invoice.total)
        status = _status(invoice)
        self.revenue += total
        self.count += 1
        if status == PAID:
            self.paid_amount += total
            self.paid_count += 1
        elif status == OVERDUE:
            self.overdue_count += 1
        if status in PENDING_STATUSES:
            self.pending_amount += total

    def metrics(self, **identity: str | None) -> GroupMetrics:
        expenses, profit = split_revenue(self.revenue)
        return GroupMetrics(
            revenue=self.revenue,
            expenses=expenses,
            profit=profit,
            margin_pct=GROUP_MARGIN_PCT,
            invoices_paid_pct=_pct(self.paid_amount, self.revenue),
            paid_invoices=self.paid_count,
            total_invoices=self.count,
            overdue_invoices=self.overdue_count,
            **identity,
        )


def accumulate(invoices: Iterable[InvoiceRecord], **identity: str | None) -> GroupMetrics:
    """Collapse ``invoices`` into a single group row."""

    bucket = _Accumulator()
    for invoice in invoices:
        bucket.add(invoice)
    return bucket.metrics(**identity)


class EntityLabels:
    """Display-name lookup for properties and providers."""

    def __init__(self, properties: Sequence[PropertyRecord], providers: Sequence[ProviderRecord]) -> None:
        self.property_names = {row.id: row.name for row in properties}
        self.provider_names = {row.id: row.display_name for row in providers}

    def property_name(self, property_id: str) -> str:
        name = self.property_names.get(property_id)
        if name is None:
            logger.warning("invoice_references_unknown_property", property_id=property_id)
            return UNKNOWN_PROPERTY
        return name

    def provider_name(self, provider_id: str) -> str:
        name = self.provider_names.get(provider_id)
        if name is None:
            logger.warning("invoice_references_unknown_provider", provider_id=provider_id)
            return UNKNOWN_PROVIDER
        return name


def aggregate_groups(
    invoices: Iterable[InvoiceRecord],
    key_fn: Callable[[InvoiceRecord], K],
    describe: Callable[[K], dict[str, str | None]],
) -> dict[K, GroupMetrics]:
    """Sum invoices per group key in a single pass.

    Groups appear in the order their first invoice was seen; groups without
    invoices are never produced.
    """

    buckets: dict[K, _Accumulator] = {}
    for invoice in invoices:
        buckets.setdefault(key_fn(invoice), _Accumulator()).add(invoice)
    return {key: bucket.metrics(**describe(key)) for key, bucket in buckets.items()}


def group_by_property(invoices: Iterable[InvoiceRecord], labels: EntityLabels) -> dict[str, GroupMetrics]:
    return aggregate_groups(
        invoices,
        lambda invoice: invoice.property_id,
        lambda property_id: {"property_id": property_id, "property_name": labels.property_name(property_id)},
    )


def group_by_provider(invoices: Iterable[InvoiceRecord], labels: EntityLabels) -> dict[str, GroupMetrics]:
    return aggregate_groups(
        invoices,
        lambda invoice: invoice.provider_id,
        lambda provider_id: {"provider_id": provider_id, "provider_name": labels.provider_name(provider_id)},
    )


def group_by_property_and_provider(
    invoices: Iterable[InvoiceRecord],
    labels: EntityLabels,
) -> dict[tuple[str, str], GroupMetrics]:
    return aggregate_groups(
        invoices,
        lambda invoice: (invoice.property_id, invoice.provider_id),
        lambda pair: {
            "property_id": pair[0],
            "property_name": labels.property_name(pair[0]),
            "provider_id": pair[1],
            "provider_name": labels.provider_name(pair[1]),
        },
    )


def rank_groups(groups: Iterable[GroupMetrics]) -> list[GroupMetrics]:
    """Order groups by revenue, highest first; ties keep their input order."""

    return sorted(groups, key=lambda row: row.revenue, reverse=True)


def ranked(groups: Sequence[GroupMetrics]) -> list[tuple[int, GroupMetrics]]:
    return list(enumerate(groups, start=1))


def _past_due(invoice: InvoiceRecord, reference: datetime) -> bool:
    if _status(invoice) != OVERDUE:
        return False
    try:
        return parse_timestamp(invoice.due_date) < reference
    except MalformedTimestampError:
        return False


def summarize(invoices: Iterable[InvoiceRecord], *, as_of: datetime | None = None) -> ReportSummary:
    """Whole-query totals. Margin is ``None`` when there is no revenue.

    The overdue count and amount only include ``overdue`` invoices whose due
    date has passed at ``as_of`` (default: now); invoices without a usable due
    date are left out. Per-group ``overdue_invoices`` counts go by status alone.
    """

    reference = as_of or datetime.utcnow()
    bucket = _Accumulator()
    overdue_count = 0
    overdue_amount = ZERO
    for invoice in invoices:
        bucket.add(invoice)
        if _past_due(invoice, reference):
            overdue_count += 1
            overdue_amount += as_amount(invoice.total)

    expenses, profit = split_revenue(bucket.revenue)
    margin_pct = None if bucket.revenue == ZERO else _pct(profit, bucket.revenue)
    return ReportSummary(
        revenue=bucket.revenue,
        expenses=expenses,
        profit=profit,
        margin_pct=margin_pct,
        invoices_paid_pct=_pct(bucket.paid_amount, bucket.revenue),
        total_invoices=bucket.count,
        paid_invoices=bucket.paid_count,
        overdue_invoices=overdue_count,
        overdue_amount=overdue_amount,
        pending_amount=bucket.pending_amount,
    )
