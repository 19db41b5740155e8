"""
Payable service models: service requests and rental bookings.

Both are referenced by payment transactions and carry the propagated
``payment_status`` column alongside their own lifecycle status.
"""

import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Enum as SQLEnum, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from autohub.database.base import BaseModel
from autohub.database.models.payment import (
    ReferencePaymentStatus,
    enum_values,
    reference_payment_status_column,
)


class ServiceRequestStatus(str, Enum):
    PENDING = "pending"
    QUOTED = "quoted"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class RentalBookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ServiceRequest(BaseModel):
    """Vehicle service request raised by a user."""

    __tablename__ = "service_requests"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Requesting user",
    )

    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Serviced vehicle",
    )

    service_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Requested service type",
    )

    status: Mapped[ServiceRequestStatus] = mapped_column(
        SQLEnum(
            ServiceRequestStatus,
            name="service_request_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=ServiceRequestStatus.PENDING,
        comment="Request status",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Amount due for the service",
    )

    payment_status: Mapped[Optional[ReferencePaymentStatus]] = (
        reference_payment_status_column()
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_service_requests_total_non_negative"),
        {"comment": "Vehicle service requests"},
    )


class RentalBooking(BaseModel):
    """Rental car booking made by a user."""

    __tablename__ = "rental_bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Booking user",
    )

    rental_car_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Booked rental car",
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Rental start date",
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Rental end date",
    )

    status: Mapped[RentalBookingStatus] = mapped_column(
        SQLEnum(
            RentalBookingStatus,
            name="rental_booking_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=RentalBookingStatus.PENDING,
        comment="Booking status",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Booking total cost",
    )

    payment_status: Mapped[Optional[ReferencePaymentStatus]] = (
        reference_payment_status_column()
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_rental_bookings_date_order"),
        CheckConstraint("total_amount >= 0", name="ck_rental_bookings_total_non_negative"),
        {"comment": "Rental car bookings"},
    )
