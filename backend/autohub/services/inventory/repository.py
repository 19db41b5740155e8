"""
Car part inventory data access.

Provides async CRUD for car parts plus the two stock mutations used by the
order flow. The decrement is a single conditional UPDATE, so stock can never
go negative even when two orders race for the same part: the loser simply
matches no row.
"""

import uuid
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.exceptions import RepositoryError
from autohub.core.logging import get_logger
from autohub.database.models.order import PartOrder, PartOrderItem, PartOrderStatus
from autohub.database.models.part import CarPart, PartStatus

logger = get_logger(__name__)


class InventoryRepository:
    """
    Repository for car part data access operations.

    Attributes:
        session: Async database session for executing queries
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_part(self, **fields: Any) -> CarPart:
        """
        Persist a new car part.

        Args:
            **fields: CarPart column values

        Returns:
            Created part

        Raises:
            RepositoryError: If the insert fails
        """
        try:
            part = CarPart(**fields)
            self.session.add(part)
            await self.session.flush()
            await self.session.refresh(part)

            logger.info(
                "Car part created",
                part_id=str(part.id),
                stock_quantity=part.stock_quantity,
            )
            return part

        except SQLAlchemyError as e:
            logger.error("Car part creation failed", error=str(e))
            raise RepositoryError("Car part creation failed", error=str(e)) from e

    async def get_part(self, part_id: uuid.UUID) -> Optional[CarPart]:
        """
        Get car part by ID.

        Returns:
            Part if found, None otherwise
        """
        try:
            return await self.session.get(CarPart, part_id)
        except SQLAlchemyError as e:
            logger.error("Failed to fetch car part", part_id=str(part_id), error=str(e))
            raise RepositoryError(
                "Failed to fetch car part",
                part_id=str(part_id),
                error=str(e),
            ) from e

    async def get_related_parts(
        self,
        part: CarPart,
        limit: int = 5,
    ) -> Sequence[CarPart]:
        """Get other parts of the same category."""
        if not part.category:
            return []
        try:
            stmt = (
                select(CarPart)
                .where(CarPart.category == part.category, CarPart.id != part.id)
                .order_by(CarPart.created_at.desc())
                .limit(limit)
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryError(
                "Failed to fetch related parts",
                part_id=str(part.id),
                error=str(e),
            ) from e

    async def list_parts(
        self,
        skip: int = 0,
        limit: int = 10,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        status: Optional[PartStatus] = None,
        seller_id: Optional[uuid.UUID] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        compatibility_pattern: Optional[str] = None,
    ) -> tuple[Sequence[CarPart], int]:
        """
        List parts matching the filters, newest first.

        Args:
            compatibility_pattern: Case-insensitive regular expression matched
                against the compatibility text

        Returns:
            Tuple of (parts page, total matching count)
        """
        conditions = []
        if category:
            conditions.append(CarPart.category == category)
        if brand:
            conditions.append(CarPart.brand == brand)
        if status:
            conditions.append(CarPart.status == status)
        if seller_id:
            conditions.append(CarPart.seller_id == seller_id)
        if min_price is not None:
            conditions.append(CarPart.price >= min_price)
        if max_price is not None:
            conditions.append(CarPart.price <= max_price)
        if compatibility_pattern:
            conditions.append(CarPart.compatibility.regexp_match(compatibility_pattern, "i"))

        try:
            stmt = (
                select(CarPart)
                .where(*conditions)
                .order_by(CarPart.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            count_stmt = select(func.count()).select_from(CarPart).where(*conditions)

            parts = (await self.session.execute(stmt)).scalars().all()
            total = (await self.session.execute(count_stmt)).scalar_one()
            return parts, total

        except SQLAlchemyError as e:
            logger.error("Failed to list car parts", error=str(e))
            raise RepositoryError("Failed to list car parts", error=str(e)) from e

    async def update_part(self, part: CarPart, **fields: Any) -> CarPart:
        """Apply field updates to a loaded part and flush."""
        try:
            for key, value in fields.items():
                setattr(part, key, value)
            await self.session.flush()
            await self.session.refresh(part)

            logger.info(
                "Car part updated",
                part_id=str(part.id),
                fields=sorted(fields),
            )
            return part

        except SQLAlchemyError as e:
            logger.error("Car part update failed", part_id=str(part.id), error=str(e))
            raise RepositoryError(
                "Car part update failed",
                part_id=str(part.id),
                error=str(e),
            ) from e

    async def delete_part(self, part_id: uuid.UUID) -> None:
        try:
            await self.session.execute(delete(CarPart).where(CarPart.id == part_id))
            logger.info("Car part deleted", part_id=str(part_id))
        except SQLAlchemyError as e:
            logger.error("Car part deletion failed", part_id=str(part_id), error=str(e))
            raise RepositoryError(
                "Car part deletion failed",
                part_id=str(part_id),
                error=str(e),
            ) from e

    async def count_open_orders_for_part(self, part_id: uuid.UUID) -> int:
        """Count orders referencing the part that are not delivered or cancelled."""
        terminal = [PartOrderStatus.DELIVERED, PartOrderStatus.CANCELLED]
        try:
            stmt = (
                select(func.count(func.distinct(PartOrder.id)))
                .select_from(PartOrder)
                .join(PartOrderItem, PartOrderItem.order_id == PartOrder.id)
                .where(PartOrderItem.part_id == part_id, PartOrder.status.not_in(terminal))
            )
            return (await self.session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise RepositoryError(
                "Failed to count open orders for part",
                part_id=str(part_id),
                error=str(e),
            ) from e

    async def decrement_stock(self, part_id: uuid.UUID, quantity: int) -> bool:
        """
        Take ``quantity`` units out of stock if enough are on hand.

        Returns:
            True if the stock was decremented, False if the part is missing
            or holds fewer than ``quantity`` units
        """
        stmt = (
            update(CarPart)
            .where(CarPart.id == part_id, CarPart.stock_quantity >= quantity)
            .values(stock_quantity=CarPart.stock_quantity - quantity)
            .returning(CarPart.stock_quantity)
        )
        remaining = await self._apply_stock_change(stmt, part_id, "decrement")

        logger.debug(
            "Stock decrement",
            part_id=str(part_id),
            quantity=quantity,
            applied=remaining is not None,
        )
        return remaining is not None

    async def restore_stock(self, part_id: uuid.UUID, quantity: int) -> None:
        """Put ``quantity`` units back into stock."""
        stmt = (
            update(CarPart)
            .where(CarPart.id == part_id)
            .values(stock_quantity=CarPart.stock_quantity + quantity)
            .returning(CarPart.stock_quantity)
        )
        remaining = await self._apply_stock_change(stmt, part_id, "restore")

        if remaining is None:
            logger.warning(
                "Stock restore skipped - part no longer exists",
                part_id=str(part_id),
                quantity=quantity,
            )

    async def _apply_stock_change(
        self,
        stmt: Any,
        part_id: uuid.UUID,
        operation: str,
    ) -> Optional[int]:
        """Run a stock UPDATE ... RETURNING and resync the part status."""
        try:
            remaining = (await self.session.execute(stmt)).scalar_one_or_none()
            if remaining is not None:
                await self.session.execute(
                    update(CarPart)
                    .where(CarPart.id == part_id)
                    .values(status=PartStatus.for_stock(remaining))
                )
            return remaining
        except SQLAlchemyError as e:
            logger.error(
                "Stock update failed",
                part_id=str(part_id),
                operation=operation,
                error=str(e),
            )
            raise RepositoryError(
                f"Stock {operation} failed",
                part_id=str(part_id),
                error=str(e),
            ) from e
