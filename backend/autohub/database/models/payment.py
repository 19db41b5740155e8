"""
Payment transaction model and the payment status vocabulary.

A PaymentTransaction pays for exactly one referenced entity, identified by a
(reference_type, reference_id) pair rather than a foreign key: the referenced
row may live in service_requests, rental_bookings or part_orders. The
referenced entities expose a ``payment_status`` column holding one of the
ReferencePaymentStatus values written back whenever the transaction changes.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from autohub.database.base import BaseModel


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]


class TransactionStatus(str, Enum):
    """
    Payment transaction lifecycle.

    Attributes:
        PENDING: Transaction recorded, payment not confirmed
        COMPLETED: Payment confirmed; only a refund may follow
        FAILED: Payment failed
        REFUNDED: Completed payment returned to the payer
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    @classmethod
    def from_string(cls, value: str) -> "TransactionStatus":
        """
        Create TransactionStatus from string value.

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid transaction status: {value}")

    @property
    def is_finalized(self) -> bool:
        """Check if the transaction only accepts a refund from here."""
        return self == TransactionStatus.COMPLETED


class ReferenceType(str, Enum):
    """Kinds of entity a payment transaction can pay for."""

    SERVICE_REQUEST = "service_request"
    RENTAL_BOOKING = "rental_booking"
    PART_ORDER = "part_order"

    @classmethod
    def from_string(cls, value: str) -> "ReferenceType":
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid reference type: {value}")


class ReferencePaymentStatus(str, Enum):
    """Payment status mirrored onto a referenced entity."""

    PAYMENT_PENDING = "payment_pending"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_REFUNDED = "payment_refunded"


def reference_payment_status_column() -> Mapped[Optional[ReferencePaymentStatus]]:
    """Column definition shared by every payable entity."""
    return mapped_column(
        SQLEnum(
            ReferencePaymentStatus,
            name="reference_payment_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=True,
        default=None,
        comment="Payment status propagated from the latest transaction",
    )


class PaymentTransaction(BaseModel):
    """
    Payment made against a service request, rental booking or part order.

    Attributes:
        payer_id: Identity of the paying user
        amount: Amount paid; equals the reference total at creation
        currency: ISO 4217 currency code
        payment_method: Free-form method label (card, cash, transfer...)
        reference_type: Kind of the referenced entity
        reference_id: Identifier of the referenced entity
        status: Current transaction status
        receipt_url: Stored receipt attachment path
        remarks: Operator remarks from the latest status update
    """

    __tablename__ = "payment_transactions"

    payer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Paying user identifier",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Transaction amount",
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD",
        comment="Currency code (ISO 4217)",
    )

    payment_method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Payment method label",
    )

    reference_type: Mapped[ReferenceType] = mapped_column(
        SQLEnum(
            ReferenceType,
            name="payment_reference_type",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        comment="Kind of referenced entity",
    )

    reference_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Referenced entity identifier",
    )

    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(
            TransactionStatus,
            name="transaction_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
        comment="Current transaction status",
    )

    receipt_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Stored receipt path",
    )

    remarks: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Remarks from the latest status update",
    )

    __table_args__ = (
        Index("ix_payment_transactions_reference", "reference_type", "reference_id"),
        Index("ix_payment_transactions_payer_created", "payer_id", "created_at"),
        CheckConstraint("amount >= 0", name="ck_payment_transactions_amount_non_negative"),
        {"comment": "Payments against service requests, rentals and part orders"},
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentTransaction(id={self.id}, reference={self.reference_type.value}:"
            f"{self.reference_id}, status={self.status.value})>"
        )
