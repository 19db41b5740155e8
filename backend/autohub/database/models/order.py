"""
Part order models.

A PartOrder aggregates ordered line items. Each line snapshots the part's
unit price at creation time, so later price changes on the part never alter
an existing order, and ``total_amount`` always equals the sum of the line
subtotals.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autohub.database.base import Base, BaseModel
from autohub.database.models.payment import (
    ReferencePaymentStatus,
    enum_values,
    reference_payment_status_column,
)


class PartOrderStatus(str, Enum):
    """
    Part order lifecycle status.

    Attributes:
        PENDING: Order placed, stock reserved by decrement
        CONFIRMED: Seller accepted the order
        SHIPPED: Handed to carrier; requires a tracking number
        DELIVERED: Received by the buyer
        CANCELLED: Cancelled; stock restored once
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def from_string(cls, value: str) -> "PartOrderStatus":
        """
        Create PartOrderStatus from string value.

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(str(value).lower())
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid order status: {value}. Valid values are: {valid_values}"
            )

    @property
    def is_terminal(self) -> bool:
        """Check if the order no longer holds stock for its parts."""
        return self in (PartOrderStatus.DELIVERED, PartOrderStatus.CANCELLED)


class PartOrder(BaseModel):
    """
    Order of car parts placed by a buyer.

    Attributes:
        buyer_id: Identity of the ordering user
        status: Lifecycle status
        total_amount: Sum of line subtotals, fixed at creation
        payment_status: Status propagated from payment transactions
        shipping_address: Free-form shipping details
        tracking_number: Carrier tracking number, required once shipped
        remarks: Remarks from the latest status update
        documents: Stored shipping document paths
        items: Ordered line items
    """

    __tablename__ = "part_orders"

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Buyer identifier",
    )

    status: Mapped[PartOrderStatus] = mapped_column(
        SQLEnum(
            PartOrderStatus,
            name="part_order_status",
            values_callable=enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=PartOrderStatus.PENDING,
        index=True,
        comment="Order status",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Order total (sum of line subtotals)",
    )

    payment_status: Mapped[Optional[ReferencePaymentStatus]] = (
        reference_payment_status_column()
    )

    shipping_address: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Shipping details",
    )

    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Carrier tracking number",
    )

    remarks: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Remarks from the latest status update",
    )

    documents: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Stored shipping document paths",
    )

    items: Mapped[list["PartOrderItem"]] = relationship(
        "PartOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PartOrderItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_part_orders_total_non_negative"),
        Index("ix_part_orders_buyer_created", "buyer_id", "created_at"),
        {"comment": "Car part orders"},
    )


class PartOrderItem(Base):
    """
    Line item of a part order.

    ``unit_price`` is the part price when the order was created and
    ``subtotal`` is ``unit_price * quantity``.
    """

    __tablename__ = "part_order_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Line item identifier",
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("part_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning order",
    )

    part_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("car_parts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Ordered part, cleared when the part is deleted",
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Line position within the order",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Ordered units",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Unit price snapshot",
    )

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="unit_price * quantity",
    )

    order: Mapped["PartOrder"] = relationship("PartOrder", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_part_order_items_quantity_positive"),
        {"comment": "Part order line items"},
    )
