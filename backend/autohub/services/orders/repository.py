"""
Part order data access repository.

Implements OrderRepository: creating orders with their line items, loading
orders with items, filtered listing with pagination, field updates and the
aggregate queries behind the order statistics endpoint.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from autohub.core.exceptions import RepositoryError
from autohub.core.logging import get_logger
from autohub.database.models.order import PartOrder, PartOrderItem, PartOrderStatus
from autohub.database.models.part import CarPart

logger = get_logger(__name__)


class OrderRepository:
    """
    Repository for part order data access operations.

    Orders are always loaded together with their line items.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def create_order(
        self,
        buyer_id: uuid.UUID,
        lines: Sequence[dict[str, Any]],
        total_amount: Decimal,
        shipping_address: dict[str, Any],
    ) -> PartOrder:
        """
        Insert an order in pending status together with its line items.

        Args:
            buyer_id: Ordering user
            lines: Line dicts with part_id, quantity, unit_price and subtotal
            total_amount: Sum of the line subtotals
            shipping_address: Shipping details

        Returns:
            Created order with items loaded

        Raises:
            RepositoryError: If the insert fails
        """
        try:
            order = PartOrder(
                buyer_id=buyer_id,
                status=PartOrderStatus.PENDING,
                total_amount=total_amount,
                shipping_address=shipping_address,
                documents=[],
                items=[
                    PartOrderItem(
                        part_id=line["part_id"],
                        position=position,
                        quantity=line["quantity"],
                        unit_price=line["unit_price"],
                        subtotal=line["subtotal"],
                    )
                    for position, line in enumerate(lines)
                ],
            )
            self.session.add(order)
            await self.session.flush()
            await self.session.refresh(order, ["items", "created_at", "updated_at"])

            logger.info(
                "Part order inserted",
                order_id=str(order.id),
                buyer_id=str(buyer_id),
                item_count=len(lines),
            )
            return order

        except IntegrityError as e:
            logger.error(
                "Order creation failed - integrity error",
                buyer_id=str(buyer_id),
                error=str(e),
            )
            raise RepositoryError(
                "Order creation failed due to data integrity violation",
                buyer_id=str(buyer_id),
                error=str(e),
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Order creation failed - database error",
                buyer_id=str(buyer_id),
                error=str(e),
            )
            raise RepositoryError(
                "Order creation failed due to database error",
                buyer_id=str(buyer_id),
                error=str(e),
            ) from e

    async def get_order(self, order_id: uuid.UUID) -> Optional[PartOrder]:
        """
        Get order by ID with its line items.

        Returns:
            Order if found, None otherwise
        """
        try:
            stmt = (
                select(PartOrder)
                .where(PartOrder.id == order_id)
                .options(selectinload(PartOrder.items))
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error("Failed to fetch order", order_id=str(order_id), error=str(e))
            raise RepositoryError(
                "Failed to fetch order",
                order_id=str(order_id),
                error=str(e),
            ) from e

    async def list_orders(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[PartOrderStatus] = None,
        buyer_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
    ) -> tuple[Sequence[PartOrder], int]:
        """
        List orders matching the filters, newest first.

        Returns:
            Tuple of (orders page, total matching count)
        """
        conditions = []
        if status:
            conditions.append(PartOrder.status == status)
        if buyer_id:
            conditions.append(PartOrder.buyer_id == buyer_id)
        if start_date and end_date:
            conditions.append(PartOrder.created_at.between(start_date, end_date))
        if min_amount is not None:
            conditions.append(PartOrder.total_amount >= min_amount)
        if max_amount is not None:
            conditions.append(PartOrder.total_amount <= max_amount)

        try:
            stmt = (
                select(PartOrder)
                .where(*conditions)
                .options(selectinload(PartOrder.items))
                .order_by(PartOrder.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            count_stmt = select(func.count()).select_from(PartOrder).where(*conditions)

            orders = (await self.session.execute(stmt)).scalars().all()
            total = (await self.session.execute(count_stmt)).scalar_one()

            logger.debug("Orders listed", count=len(orders), total=total)
            return orders, total

        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise RepositoryError("Failed to list orders", error=str(e)) from e

    async def update_order(self, order: PartOrder, **fields: Any) -> PartOrder:
        """
        Apply field updates to a loaded order and flush.

        ``updated_at`` is refreshed even when no column value changes.
        """
        try:
            for key, value in fields.items():
                setattr(order, key, value)
            order.updated_at = func.now()
            await self.session.flush()
            await self.session.refresh(order, ["updated_at"])
            return order

        except SQLAlchemyError as e:
            logger.error("Order update failed", order_id=str(order.id), error=str(e))
            raise RepositoryError(
                "Order update failed",
                order_id=str(order.id),
                error=str(e),
            ) from e

    async def get_status_stats(self) -> list[dict[str, Any]]:
        """Count, revenue and average order value per status."""
        stmt = select(
            PartOrder.status,
            func.count(PartOrder.id),
            func.coalesce(func.sum(PartOrder.total_amount), 0),
            func.coalesce(func.avg(PartOrder.total_amount), 0),
        ).group_by(PartOrder.status)
        rows = await self._fetch_rows(stmt, "status")
        return [
            {
                "status": status.value,
                "count": count,
                "total_revenue": Decimal(revenue),
                "avg_order_value": Decimal(avg).quantize(Decimal("0.01")),
            }
            for status, count, revenue, avg in rows
        ]

    async def get_monthly_stats(self, months: int = 12) -> list[dict[str, Any]]:
        """Order count and revenue for the most recent ``months`` months."""
        month = func.date_trunc("month", PartOrder.created_at).label("month")
        stmt = (
            select(
                month,
                func.count(PartOrder.id),
                func.coalesce(func.sum(PartOrder.total_amount), 0),
            )
            .group_by(month)
            .order_by(month.desc())
            .limit(months)
        )
        rows = await self._fetch_rows(stmt, "monthly")
        return [
            {
                "year": bucket.year,
                "month": bucket.month,
                "orders": count,
                "revenue": Decimal(revenue),
            }
            for bucket, count, revenue in rows
        ]

    async def get_top_selling_parts(self, limit: int = 10) -> list[dict[str, Any]]:
        """Parts ranked by ordered quantity across all orders."""
        total_quantity = func.sum(PartOrderItem.quantity).label("total_quantity")
        stmt = (
            select(
                PartOrderItem.part_id,
                CarPart.name,
                total_quantity,
                func.sum(PartOrderItem.subtotal),
            )
            .join(CarPart, CarPart.id == PartOrderItem.part_id)
            .group_by(PartOrderItem.part_id, CarPart.name)
            .order_by(total_quantity.desc())
            .limit(limit)
        )
        rows = await self._fetch_rows(stmt, "top_parts")
        return [
            {
                "part_id": str(part_id),
                "name": name,
                "total_quantity": int(quantity),
                "total_revenue": Decimal(revenue),
            }
            for part_id, name, quantity, revenue in rows
        ]

    async def _fetch_rows(self, stmt: Any, query_name: str) -> Sequence[Any]:
        try:
            return (await self.session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error("Order statistics query failed", query=query_name, error=str(e))
            raise RepositoryError(
                "Order statistics query failed",
                query=query_name,
                error=str(e),
            ) from e
