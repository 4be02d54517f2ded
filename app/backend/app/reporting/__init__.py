"""Financial aggregation and reporting engine."""

from app.reporting.engine import ReportEngine
from app.reporting.filters import InvalidReportQueryError
from app.reporting.periods import MalformedTimestampError, period_key, period_labels
from app.reporting.types import (
    Granularity,
    InvoiceRecord,
    PropertyRecord,
    ProviderRecord,
    Report,
    ReportQuery,
    ReportSnapshot,
    TimeSeriesPoint,
    TrendMode,
)

__all__ = [
    "Granularity",
    "InvalidReportQueryError",
    "InvoiceRecord",
    "MalformedTimestampError",
    "PropertyRecord",
    "ProviderRecord",
    "Report",
    "ReportEngine",
    "ReportQuery",
    "ReportSnapshot",
    "TimeSeriesPoint",
    "TrendMode",
    "period_key",
    "period_labels",
]
