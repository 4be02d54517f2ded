from __future__ import annotations

from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.dependencies import get_db_session
from app.main import create_app
from app.models.entities import (
    Invoice,
    InvoiceStatus,
    Property,
    PropertyStatus,
    Provider,
    ProviderStatus,
)


def _seed(db: Session) -> None:
    now = datetime.utcnow()
    flour = Property(id="P1", name="The Flour Market", status=PropertyStatus.ACTIVE, created_at=now)
    cavendish = Property(id="P2", name="Cavendish Center", status=PropertyStatus.ACTIVE, created_at=now)
    knysna = Property(id="P3", name="Knysna Mall", status=PropertyStatus.INACTIVE, created_at=now)
    db.add_all([flour, cavendish, knysna])
    db.add_all(
        [
            Provider(
                id="V1",
                name="Parking Plus",
                business_name="Parking Plus Services",
                service="Parking",
                status=ProviderStatus.ACTIVE,
                created_at=now,
                properties=[flour, cavendish],
            ),
            Provider(id="V2", name="CleanPro", status=ProviderStatus.ACTIVE, created_at=now, properties=[flour, knysna]),
            Provider(id="V3", name="SecureGuard", status=ProviderStatus.SUSPENDED, created_at=now, properties=[cavendish]),
        ]
    )
    rows = [
        ("inv-1", "P1", "V1", datetime(2024, 1, 10, 9), InvoiceStatus.PAID, "1000.00"),
        ("inv-2", "P2", "V1", datetime(2024, 1, 20, 9), InvoiceStatus.SENT, "500.00"),
        ("inv-3", "P1", "V2", datetime(2023, 12, 5, 9), InvoiceStatus.OVERDUE, "250.00"),
        ("inv-4", "P3", "V2", datetime(2023, 11, 15, 9), InvoiceStatus.PAID, "500.00"),
        ("inv-5", "P2", "V3", datetime(2023, 6, 1, 9), InvoiceStatus.PAID, "300.00"),
    ]
    for invoice_id, property_id, provider_id, issued, status, total in rows:
        db.add(
            Invoice(
                id=invoice_id,
                invoice_number=f"INV-{invoice_id[-1]}",
                property_id=property_id,
                provider_id=provider_id,
                issue_date=issued,
                status=status,
                subtotal=Decimal(total),
                tax=Decimal("0.00"),
                total=Decimal(total),
                currency="USD",
            )
        )
    db.commit()


def test_property_report_endpoint(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/reports/properties")

    assert response.status_code == 200
    payload = response.json()
    assert payload["reportKey"] == "property-financials"
    assert payload["granularity"] == "MONTH"
    assert payload["trendMode"] == "windowed"
    assert payload["from"] is None and payload["to"] is None

    summary = payload["summary"]
    assert summary["revenue"] == 2550.0
    assert summary["expenses"] == 765.0
    assert summary["profit"] == 1785.0
    assert summary["marginPct"] == 70.0
    assert summary["invoicesPaidPct"] == 70.59
    assert summary["pendingAmount"] == 750.0

    by_property = payload["byProperty"]
    assert [(row["rank"], row["propertyId"], row["revenue"]) for row in by_property] == [
        (1, "P1", 1250.0),
        (2, "P2", 800.0),
        (3, "P3", 500.0),
    ]
    assert by_property[0]["propertyName"] == "The Flour Market"
    assert by_property[0]["marginPct"] == 70.0
    assert by_property[0]["invoicesPaidPct"] == 80.0
    assert by_property[0]["invoices"] == {"paid": 1, "total": 2, "overdue": 1}
    assert "providerId" not in by_property[0]

    assert [entry["propertyId"] for entry in payload["series"]] == ["P2", "P1", "all"]
    assert payload["series"][-1]["trend"] == [
        {"label": "2024-01", "revenue": 1500.0, "profit": 1050.0},
        {"label": "2023-12", "revenue": 250.0, "profit": 175.0},
        {"label": "2023-11", "revenue": 500.0, "profit": 350.0},
    ]
    assert payload["byProvider"] == []
    assert "combinedData" not in payload


def test_provider_report_endpoint_with_filter(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/reports/providers", params={"providerId": "V1"})

    assert response.status_code == 200
    payload = response.json()
    assert [(row["providerId"], row["providerName"]) for row in payload["byProvider"]] == [
        ("V1", "Parking Plus Services"),
    ]
    assert payload["byProvider"][0]["invoicesPaidPct"] == 66.67
    assert [entry["providerId"] for entry in payload["series"]] == ["V1"]
    assert payload["series"][0]["trend"] == [{"label": "2024-01", "revenue": 1500.0, "profit": 1050.0}]


def test_combined_report_endpoint(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get(
        "/api/v1/reports/combined",
        params={"from": "2023", "to": "2024", "granularity": "YEAR"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["reportKey"] == "combined-financials"
    assert [(row["propertyId"], row["providerId"], row["revenue"]) for row in payload["combinedData"]] == [
        ("P1", "V1", 1000.0),
        ("P2", "V1", 500.0),
        ("P3", "V2", 500.0),
        ("P2", "V3", 300.0),
        ("P1", "V2", 250.0),
    ]
    assert [row["rank"] for row in payload["combinedData"]] == [1, 2, 3, 4, 5]
    assert payload["series"][-1]["trend"] == [
        {"label": "2024", "revenue": 1500.0, "profit": 1050.0},
        {"label": "2023", "revenue": 1050.0, "profit": 735.0},
    ]


def test_summary_endpoint_with_window(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/reports/summary", params={"from": "2024-01-01", "to": "2024-01-31"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["reportKey"] == "financial-summary"
    assert payload["summary"]["revenue"] == 1500.0
    assert payload["summary"]["totalInvoices"] == 2
    assert payload["summary"]["paidInvoices"] == 1
    assert payload["series"] == []


def test_empty_database_returns_zero_summary(client: TestClient) -> None:
    response = client.get("/api/v1/reports/combined")

    assert response.status_code == 200
    payload = response.json()
    assert payload["summary"]["revenue"] == 0.0
    assert payload["summary"]["marginPct"] is None
    assert payload["combinedData"] == []
    assert payload["series"] == []


def test_invalid_date_bound_is_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/reports/properties", params={"from": "soon", "to": "2024-01-31"})

    assert response.status_code == 422
    assert "soon" in response.json()["detail"]


def test_unknown_granularity_is_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/reports/properties", params={"granularity": "DAY"})

    assert response.status_code == 422


def test_unavailable_data_source_returns_503() -> None:
    # No tables are created, so every query fails.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    BrokenSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        session = BrokenSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        response = test_client.get("/api/v1/reports/summary")
    app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"detail": "Report data source unavailable."}


def test_time_series_endpoint(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get(
        "/api/v1/reports/time-series",
        params={"from": "2023-01-01", "to": "2024-12-31", "granularity": "MONTH", "propertyId": "P2"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["reportKey"] == "financial-time-series"
    assert payload["timeSeries"] == [
        {"period": "2023-06", "revenue": 300.0, "expenses": 90.0, "profit": 210.0, "invoiceCount": 1},
        {"period": "2024-01", "revenue": 500.0, "expenses": 150.0, "profit": 350.0, "invoiceCount": 1},
    ]


def test_time_series_endpoint_rejects_invalid_bound(client: TestClient) -> None:
    response = client.get("/api/v1/reports/time-series", params={"from": "2024-01-01", "to": "later"})

    assert response.status_code == 422
