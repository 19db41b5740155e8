"""
Payment transaction data access.

TransactionRepository persists payment transactions and serves the listing
and statistics queries. PayableRepository is the generic accessor for the
entities a transaction can pay for (service requests, rental bookings, part
orders): load by id and write the propagated payment status.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.exceptions import RepositoryError
from autohub.core.logging import get_logger
from autohub.database.base import BaseModel
from autohub.database.models.payment import (
    PaymentTransaction,
    ReferencePaymentStatus,
    ReferenceType,
    TransactionStatus,
)

logger = get_logger(__name__)


class TransactionRepository:
    """
    Repository for payment transaction records.

    Attributes:
        session: Async database session for executing queries
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_transaction(
        self,
        payer_id: uuid.UUID,
        amount: Decimal,
        currency: str,
        payment_method: str,
        reference_type: ReferenceType,
        reference_id: uuid.UUID,
        receipt_url: Optional[str] = None,
    ) -> PaymentTransaction:
        """
        Insert a transaction in pending status.

        Returns:
            Created transaction

        Raises:
            RepositoryError: If the insert fails
        """
        try:
            transaction = PaymentTransaction(
                payer_id=payer_id,
                amount=amount,
                currency=currency,
                payment_method=payment_method,
                reference_type=reference_type,
                reference_id=reference_id,
                status=TransactionStatus.PENDING,
                receipt_url=receipt_url,
            )
            self.session.add(transaction)
            await self.session.flush()
            await self.session.refresh(transaction)

            logger.info(
                "Payment transaction inserted",
                transaction_id=str(transaction.id),
                reference_type=reference_type.value,
                reference_id=str(reference_id),
                amount=str(amount),
            )
            return transaction

        except SQLAlchemyError as e:
            logger.error(
                "Payment transaction creation failed",
                reference_type=reference_type.value,
                reference_id=str(reference_id),
                error=str(e),
            )
            raise RepositoryError(
                "Payment transaction creation failed",
                reference_id=str(reference_id),
                error=str(e),
            ) from e

    async def get_transaction(self, transaction_id: uuid.UUID) -> Optional[PaymentTransaction]:
        try:
            return await self.session.get(PaymentTransaction, transaction_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch payment transaction",
                transaction_id=str(transaction_id),
                error=str(e),
            )
            raise RepositoryError(
                "Failed to fetch payment transaction",
                transaction_id=str(transaction_id),
                error=str(e),
            ) from e

    async def list_transactions(
        self,
        skip: int = 0,
        limit: int = 10,
        status: Optional[TransactionStatus] = None,
        payer_id: Optional[uuid.UUID] = None,
        payment_method: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
    ) -> tuple[Sequence[PaymentTransaction], int]:
        """
        List transactions matching the filters, newest first.

        Returns:
            Tuple of (transactions page, total matching count)
        """
        conditions = []
        if status:
            conditions.append(PaymentTransaction.status == status)
        if payer_id:
            conditions.append(PaymentTransaction.payer_id == payer_id)
        if payment_method:
            conditions.append(PaymentTransaction.payment_method == payment_method)
        if reference_type:
            conditions.append(PaymentTransaction.reference_type == reference_type)
        if start_date and end_date:
            conditions.append(PaymentTransaction.created_at.between(start_date, end_date))
        if min_amount is not None:
            conditions.append(PaymentTransaction.amount >= min_amount)
        if max_amount is not None:
            conditions.append(PaymentTransaction.amount <= max_amount)

        try:
            stmt = (
                select(PaymentTransaction)
                .where(*conditions)
                .order_by(PaymentTransaction.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            count_stmt = (
                select(func.count()).select_from(PaymentTransaction).where(*conditions)
            )

            transactions = (await self.session.execute(stmt)).scalars().all()
            total = (await self.session.execute(count_stmt)).scalar_one()
            return transactions, total

        except SQLAlchemyError as e:
            logger.error("Failed to list payment transactions", error=str(e))
            raise RepositoryError("Failed to list payment transactions", error=str(e)) from e

    async def update_transaction(
        self,
        transaction: PaymentTransaction,
        **fields: Any,
    ) -> PaymentTransaction:
        """Apply field updates to a loaded transaction and flush."""
        try:
            for key, value in fields.items():
                setattr(transaction, key, value)
            transaction.updated_at = func.now()
            await self.session.flush()
            await self.session.refresh(transaction, ["updated_at"])
            return transaction

        except SQLAlchemyError as e:
            logger.error(
                "Payment transaction update failed",
                transaction_id=str(transaction.id),
                error=str(e),
            )
            raise RepositoryError(
                "Payment transaction update failed",
                transaction_id=str(transaction.id),
                error=str(e),
            ) from e

    async def get_status_stats(self) -> list[dict[str, Any]]:
        """Count and summed amount per transaction status."""
        stmt = select(
            PaymentTransaction.status,
            func.count(PaymentTransaction.id),
            func.coalesce(func.sum(PaymentTransaction.amount), 0),
        ).group_by(PaymentTransaction.status)
        rows = await self._fetch_rows(stmt, "status")
        return [
            {"status": status.value, "count": count, "total_amount": Decimal(total)}
            for status, count, total in rows
        ]

    async def get_payment_method_stats(self) -> list[dict[str, Any]]:
        """Count, summed amount and completion rate per payment method."""
        completed = case(
            (PaymentTransaction.status == TransactionStatus.COMPLETED, 1),
            else_=0,
        )
        stmt = select(
            PaymentTransaction.payment_method,
            func.count(PaymentTransaction.id),
            func.coalesce(func.sum(PaymentTransaction.amount), 0),
            func.avg(completed),
        ).group_by(PaymentTransaction.payment_method)
        rows = await self._fetch_rows(stmt, "payment_method")
        return [
            {
                "payment_method": method,
                "count": count,
                "total_amount": Decimal(total),
                "success_rate": round(float(rate or 0), 4),
            }
            for method, count, total, rate in rows
        ]

    async def get_daily_stats(self, days: int = 30) -> list[dict[str, Any]]:
        """Transaction count and summed amount per day over the last ``days`` days."""
        day = func.date(PaymentTransaction.created_at).label("day")
        since = datetime.now(timezone.utc) - timedelta(days=days)
        stmt = (
            select(
                day,
                func.count(PaymentTransaction.id),
                func.coalesce(func.sum(PaymentTransaction.amount), 0),
            )
            .where(PaymentTransaction.created_at >= since)
            .group_by(day)
            .order_by(day.desc())
        )
        rows = await self._fetch_rows(stmt, "daily")
        return [
            {"date": bucket.isoformat(), "count": count, "total_amount": Decimal(total)}
            for bucket, count, total in rows
        ]

    async def _fetch_rows(self, stmt: Any, query_name: str) -> Sequence[Any]:
        try:
            return (await self.session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error(
                "Transaction statistics query failed",
                query=query_name,
                error=str(e),
            )
            raise RepositoryError(
                "Transaction statistics query failed",
                query=query_name,
                error=str(e),
            ) from e


class PayableRepository:
    """
    Accessor for one kind of payable entity.

    The model must expose ``total_amount`` and ``payment_status`` columns.
    """

    def __init__(self, session: AsyncSession, model: type[BaseModel]):
        self.session = session
        self.model = model

    async def get(self, entity_id: uuid.UUID) -> Optional[BaseModel]:
        try:
            return await self.session.get(self.model, entity_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch payable entity",
                model=self.model.__name__,
                entity_id=str(entity_id),
                error=str(e),
            )
            raise RepositoryError(
                "Failed to fetch payable entity",
                model=self.model.__name__,
                entity_id=str(entity_id),
                error=str(e),
            ) from e

    async def set_payment_status(
        self,
        entity_id: uuid.UUID,
        payment_status: ReferencePaymentStatus,
    ) -> bool:
        """
        Write the propagated payment status.

        Returns:
            True if a row was updated
        """
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id)
            .values(payment_status=payment_status)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Payment status propagation failed",
                model=self.model.__name__,
                entity_id=str(entity_id),
                error=str(e),
            )
            raise RepositoryError(
                "Payment status propagation failed",
                model=self.model.__name__,
                entity_id=str(entity_id),
                error=str(e),
            ) from e
        return result.rowcount > 0
