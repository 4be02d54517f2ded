"""ORM model package."""

from app.models.entities import (
    Invoice,
    InvoiceStatus,
    Property,
    PropertyStatus,
    Provider,
    ProviderStatus,
    provider_properties,
)

__all__ = [
    "Invoice",
    "InvoiceStatus",
    "Property",
    "PropertyStatus",
    "Provider",
    "ProviderStatus",
    "provider_properties",
]
