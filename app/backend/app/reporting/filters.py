"""Invoice narrowing by date window, property and provider."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from app.reporting.periods import YEAR_ONLY_RE, MalformedTimestampError, parse_timestamp
from app.reporting.types import InvoiceRecord, ReportQuery

logger = structlog.get_logger(__name__)


class InvalidReportQueryError(ValueError):
    """Raised when query bounds are present but cannot be parsed."""


@dataclass(slots=True, frozen=True)
class DateWindow:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def _parse_bound(value: str, *, upper: bool) -> datetime:
    text = value.strip()
    if upper and YEAR_ONLY_RE.match(text):
        return datetime(int(text), 12, 31, 23, 59, 59)
    try:
        return parse_timestamp(text)
    except MalformedTimestampError as exc:
        raise InvalidReportQueryError(f"Invalid date bound: {value!r}") from exc


def parse_window(query: ReportQuery) -> DateWindow | None:
    """Resolve the inclusive window of ``query``; ``None`` means all time."""

    if not query.date_from or not query.date_from.strip():
        return None
    if not query.date_to or not query.date_to.strip():
        return None

    start = _parse_bound(query.date_from, upper=False)
    end = _parse_bound(query.date_to, upper=True)
    if start > end:
        logger.warning("report_window_reversed", date_from=query.date_from, date_to=query.date_to)
        start, end = end, start
    return DateWindow(start=start, end=end)


def _issued_within(invoice: InvoiceRecord, window: DateWindow) -> bool:
    try:
        issued = parse_timestamp(invoice.issue_date)
    except MalformedTimestampError:
        logger.warning("invoice_issue_date_malformed", invoice_id=invoice.id, issue_date=str(invoice.issue_date))
        return False
    return window.contains(issued)


def filter_invoices(
    invoices: Iterable[InvoiceRecord],
    query: ReportQuery,
    *,
    apply_date_window: bool = True,
) -> list[InvoiceRecord]:
    """Return a new list of invoices matching every filter of ``query``."""

    window = parse_window(query) if apply_date_window else None

    selected: list[InvoiceRecord] = []
    for invoice in invoices:
        if query.property_id and invoice.property_id != query.property_id:
            continue
        if query.provider_id and invoice.provider_id != query.provider_id:
            continue
        if window is not None and not _issued_within(invoice, window):
            continue
        selected.append(invoice)
    return selected
