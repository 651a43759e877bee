"""Backend service modules.

Each service binds one backend of the endpoint catalog to the query layer:
reads are cached under the query key registry, writes invalidate the keys
they affect. Import services from their modules (``services.auth``,
``services.homeowner``, ...); this package exports the shared models only.
"""

from rentvest.core.services.models import (
    BookingStatus,
    Envelope,
    InvestmentStatus,
    KycStatus,
    OtpType,
    PaymentStatus,
    PropertyStatus,
    UserRole,
)

__all__ = [
    "BookingStatus",
    "Envelope",
    "InvestmentStatus",
    "KycStatus",
    "OtpType",
    "PaymentStatus",
    "PropertyStatus",
    "UserRole",
]
