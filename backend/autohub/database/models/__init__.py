"""
Database models package initialization.

Importing this package registers every model with the Base metadata, which
Alembic autogeneration and relationship resolution rely on.
"""

from autohub.database.base import Base, BaseModel, TimestampMixin, UUIDMixin
from autohub.database.models.order import PartOrder, PartOrderItem, PartOrderStatus
from autohub.database.models.part import CarPart, PartStatus
from autohub.database.models.payment import (
    PaymentTransaction,
    ReferencePaymentStatus,
    ReferenceType,
    TransactionStatus,
)
from autohub.database.models.service import (
    RentalBooking,
    RentalBookingStatus,
    ServiceRequest,
    ServiceRequestStatus,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "CarPart",
    "PartStatus",
    "PartOrder",
    "PartOrderItem",
    "PartOrderStatus",
    "PaymentTransaction",
    "ReferencePaymentStatus",
    "ReferenceType",
    "TransactionStatus",
    "ServiceRequest",
    "ServiceRequestStatus",
    "RentalBooking",
    "RentalBookingStatus",
]
