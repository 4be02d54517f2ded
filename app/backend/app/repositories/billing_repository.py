"""Read access to invoices, properties and providers for reporting."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.entities import Invoice, Property, Provider
from app.reporting.types import InvoiceRecord, PropertyRecord, ProviderRecord, ReportSnapshot


class ReportDataSource(Protocol):
    def list_invoices(self) -> list[InvoiceRecord]: ...

    def list_properties(self) -> list[PropertyRecord]: ...

    def list_providers(self) -> list[ProviderRecord]: ...


def load_snapshot(source: ReportDataSource) -> ReportSnapshot:
    return ReportSnapshot(
        invoices=source.list_invoices(),
        properties=source.list_properties(),
        providers=source.list_providers(),
    )


class BillingRepository:
    """SQLAlchemy-backed report data source."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _invoice_record(row: Invoice) -> InvoiceRecord:
        return InvoiceRecord(
            id=row.id,
            property_id=row.property_id,
            provider_id=row.provider_id,
            issue_date=row.issue_date,
            due_date=row.due_date,
            status=row.status.value,
            subtotal=row.subtotal,
            tax=row.tax,
            total=row.total,
            currency=row.currency,
            invoice_number=row.invoice_number,
        )

    def list_invoices(self) -> list[InvoiceRecord]:
        rows = self.db.scalars(select(Invoice).order_by(Invoice.issue_date.desc(), Invoice.id.asc())).all()
        return [self._invoice_record(row) for row in rows]

    def list_properties(self) -> list[PropertyRecord]:
        rows = self.db.scalars(select(Property).order_by(Property.name.asc(), Property.id.asc())).all()
        return [PropertyRecord(id=row.id, name=row.name, status=row.status.value) for row in rows]

    def list_providers(self) -> list[ProviderRecord]:
        rows = self.db.scalars(select(Provider).order_by(Provider.name.asc(), Provider.id.asc())).all()
        return [
            ProviderRecord(
                id=row.id,
                name=row.name,
                status=row.status.value,
                business_name=row.business_name,
                service=row.service,
                property_ids=tuple(sorted(prop.id for prop in row.properties)),
            )
            for row in rows
        ]
