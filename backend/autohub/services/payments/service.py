"""
Payment transaction service.

Records payments against service requests, rental bookings and part orders
and keeps the referenced entity's ``payment_status`` in step with each
transaction event through the injected ReferenceRegistry.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.config import Settings, get_settings
from autohub.core.exceptions import (
    AmountMismatchError,
    IllegalTransitionError,
    InvalidArgumentError,
    NotFoundError,
)
from autohub.core.logging import get_logger
from autohub.core.validation import parse_decimal, parse_enum, parse_uuid
from autohub.database.models.payment import (
    PaymentTransaction,
    ReferencePaymentStatus,
    ReferenceType,
    TransactionStatus,
)
from autohub.services.attachments.storage import AttachmentStorage, UploadedFile
from autohub.services.pagination import Page, PageRequest
from autohub.services.payments.references import (
    PaymentReference,
    ReferenceRegistry,
    build_reference_registry,
)
from autohub.services.payments.repository import TransactionRepository
from autohub.services.payments.transitions import (
    reference_payment_status_for,
    resolve_transaction_transition,
)

logger = get_logger(__name__)

RECEIPT_DIRECTORY = "payment-receipts"
STATS_DAYS = 30


@dataclass
class TransactionDetails:
    transaction: PaymentTransaction
    reference: Optional[Any]


class PaymentService:
    """
    Payment transaction operations.

    Attributes:
        repository: Transaction data access
        references: Reference type to handler registry
        storage: Receipt storage
        refund_as_refunded: Propagate refunds as ``payment_refunded``
            instead of ``payment_failed``
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        repository: Optional[TransactionRepository] = None,
        references: Optional[ReferenceRegistry] = None,
        storage: Optional[AttachmentStorage] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository or TransactionRepository(session)
        self.references = references or build_reference_registry(session)
        self.storage = storage or AttachmentStorage(
            self.settings.upload_dir,
            max_size_bytes=self.settings.max_upload_size_bytes,
        )
        self.refund_as_refunded = self.settings.propagate_refund_as_refunded

    async def create_transaction(
        self,
        payer_id: Union[str, uuid.UUID],
        reference_type: Union[str, ReferenceType],
        reference_id: Union[str, uuid.UUID],
        amount: Any,
        payment_method: str,
        currency: Optional[str] = None,
        receipt: Optional[UploadedFile] = None,
    ) -> PaymentTransaction:
        """
        Record a pending payment for a referenced entity.

        The amount must equal the reference total exactly. On success the
        reference is marked ``payment_pending``.

        Raises:
            InvalidArgumentError: Bad ids, unknown reference type, missing
                payment method or malformed amount
            NotFoundError: Referenced entity does not exist
            AmountMismatchError: Amount differs from the reference total
            AttachmentRejectedError: Receipt with a disallowed extension
        """
        payer_id = parse_uuid(payer_id, "payer_id")
        reference = PaymentReference.parse(reference_type, reference_id)
        amount = parse_decimal(amount, "amount")
        if not (payment_method or "").strip():
            raise InvalidArgumentError("Payment method is required")
        currency = (currency or "USD").strip().upper()
        if len(currency) != 3:
            raise InvalidArgumentError("Currency must be a 3-letter code", currency=currency)

        if receipt is not None:
            self.storage.validate(receipt, self.settings.receipt_extensions)

        entity = await self.references.resolve(reference)
        expected = Decimal(entity.total_amount)
        if amount != expected:
            logger.warning(
                "Transaction rejected - amount mismatch",
                reference=str(reference),
                amount=str(amount),
                expected=str(expected),
            )
            raise AmountMismatchError(
                "Payment amount does not match reference amount",
                reference_type=reference.type,
                reference_id=reference.id,
                amount=amount,
                expected=expected,
            )

        receipt_url = None
        if receipt is not None:
            receipt_url = await self.storage.save(receipt, RECEIPT_DIRECTORY)

        try:
            transaction = await self.repository.create_transaction(
                payer_id=payer_id,
                amount=amount,
                currency=currency,
                payment_method=payment_method.strip(),
                reference_type=reference.type,
                reference_id=reference.id,
                receipt_url=receipt_url,
            )
            await self.references.propagate(reference, ReferencePaymentStatus.PAYMENT_PENDING)
        except Exception:
            if receipt_url:
                await self.storage.delete(receipt_url)
            raise

        logger.info(
            "Payment transaction created",
            transaction_id=str(transaction.id),
            payer_id=str(payer_id),
            reference=str(reference),
            amount=str(amount),
        )
        return transaction

    async def update_transaction_status(
        self,
        transaction_id: Union[str, uuid.UUID],
        status: Union[str, TransactionStatus],
        remarks: Optional[str] = None,
    ) -> PaymentTransaction:
        """
        Move a transaction to a new status and propagate it to the reference.

        Raises:
            InvalidArgumentError: Bad transaction id or unknown status
            NotFoundError: Transaction does not exist
            TransactionFinalizedError: Transaction is completed and the
                requested status is not refunded
        """
        transaction_id = parse_uuid(transaction_id, "transaction_id")
        requested = parse_enum(TransactionStatus, status, "status")
        transaction = await self._require_transaction(transaction_id)
        previous = transaction.status

        try:
            new_status = resolve_transaction_transition(previous, requested)
        except IllegalTransitionError as e:
            logger.warning(
                "Transaction status transition rejected",
                transaction_id=str(transaction_id),
                current_status=previous.value,
                requested_status=requested.value,
                reason=e.code,
            )
            raise

        changes: dict[str, Any] = {"status": new_status}
        if remarks is not None:
            changes["remarks"] = remarks
        transaction = await self.repository.update_transaction(transaction, **changes)

        payment_status = reference_payment_status_for(
            new_status, refund_as_refunded=self.refund_as_refunded
        )
        await self.references.propagate(
            PaymentReference(transaction.reference_type, transaction.reference_id),
            payment_status,
        )

        logger.info(
            "Transaction status updated",
            transaction_id=str(transaction_id),
            previous_status=previous.value,
            new_status=new_status.value,
            reference_payment_status=payment_status.value,
        )
        return transaction

    async def get_transaction(self, transaction_id: Union[str, uuid.UUID]) -> TransactionDetails:
        """Get a transaction with its referenced entity, which may since have been removed."""
        transaction = await self._require_transaction(parse_uuid(transaction_id, "transaction_id"))
        handler = self.references.handler_for(transaction.reference_type)
        reference = await handler.get(transaction.reference_id)
        return TransactionDetails(transaction=transaction, reference=reference)

    async def list_transactions(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[Union[str, TransactionStatus]] = None,
        payer_id: Optional[Union[str, uuid.UUID]] = None,
        payment_method: Optional[str] = None,
        reference_type: Optional[Union[str, ReferenceType]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Any = None,
        max_amount: Any = None,
    ) -> Page[PaymentTransaction]:
        request = PageRequest.build(page, limit)
        transactions, total = await self.repository.list_transactions(
            skip=request.skip,
            limit=request.limit,
            status=parse_enum(TransactionStatus, status, "status") if status else None,
            payer_id=parse_uuid(payer_id, "payer_id") if payer_id else None,
            payment_method=payment_method,
            reference_type=(
                parse_enum(ReferenceType, reference_type, "reference_type")
                if reference_type
                else None
            ),
            start_date=start_date,
            end_date=end_date,
            min_amount=parse_decimal(min_amount, "min_amount") if min_amount is not None else None,
            max_amount=parse_decimal(max_amount, "max_amount") if max_amount is not None else None,
        )
        return Page(items=transactions, total=total, request=request)

    async def get_user_transactions(
        self,
        payer_id: Union[str, uuid.UUID],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[PaymentTransaction]:
        return await self.list_transactions(
            page=page,
            limit=limit,
            payer_id=parse_uuid(payer_id, "payer_id"),
        )

    async def get_transaction_stats(self) -> dict[str, Any]:
        return {
            "status_stats": await self.repository.get_status_stats(),
            "payment_method_stats": await self.repository.get_payment_method_stats(),
            "daily_stats": await self.repository.get_daily_stats(days=STATS_DAYS),
        }

    async def _require_transaction(self, transaction_id: uuid.UUID) -> PaymentTransaction:
        transaction = await self.repository.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found", transaction_id=transaction_id)
        return transaction
