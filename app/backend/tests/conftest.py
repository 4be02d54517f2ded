from __future__ import annotations

from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import Invoice, Property, Provider, provider_properties
from app.reporting.types import InvoiceRecord, PropertyRecord, ProviderRecord, ReportSnapshot

TEST_TABLES = [
    Property.__table__,
    Provider.__table__,
    provider_properties,
    Invoice.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def invoice(
    invoice_id: str,
    *,
    property_id: str = "P1",
    provider_id: str = "V1",
    issue_date: datetime | str | None = "2024-01-15T10:00:00",
    status: str = "sent",
    total: str = "100.00",
    due_date: datetime | str | None = None,
) -> InvoiceRecord:
    amount = Decimal(total)
    return InvoiceRecord(
        id=invoice_id,
        property_id=property_id,
        provider_id=provider_id,
        issue_date=issue_date,
        status=status,
        subtotal=amount,
        tax=Decimal("0.00"),
        total=amount,
        due_date=due_date,
    )


@pytest.fixture()
def snapshot() -> ReportSnapshot:
    """Two active properties, one inactive, and three providers."""

    return ReportSnapshot(
        invoices=[
            invoice("inv-1", property_id="P1", provider_id="V1", issue_date="2024-01-10T09:00:00", status="paid", total="1000.00"),
            invoice("inv-2", property_id="P2", provider_id="V1", issue_date="2024-01-20T09:00:00", status="sent", total="500.00"),
            invoice("inv-3", property_id="P1", provider_id="V2", issue_date="2023-12-05T09:00:00", status="overdue", total="250.00", due_date="2023-12-20T00:00:00"),
            invoice("inv-4", property_id="P3", provider_id="V2", issue_date="2023-11-15T09:00:00", status="paid", total="500.00"),
            invoice("inv-5", property_id="P2", provider_id="V3", issue_date="2023-06-01T09:00:00", status="paid", total="300.00"),
        ],
        properties=[
            PropertyRecord(id="P1", name="The Flour Market"),
            PropertyRecord(id="P2", name="Cavendish Center"),
            PropertyRecord(id="P3", name="Knysna Mall", status="inactive"),
        ],
        providers=[
            ProviderRecord(id="V1", name="Parking Plus", business_name="Parking Plus Services", property_ids=("P1", "P2")),
            ProviderRecord(id="V2", name="CleanPro", property_ids=("P1", "P3")),
            ProviderRecord(id="V3", name="SecureGuard", status="suspended", property_ids=("P2",)),
        ],
    )
