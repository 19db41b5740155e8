"""
Payment reference resolution and payment status propagation.

A payment transaction references exactly one payable entity through a
PaymentReference (reference type plus id). The ReferenceRegistry maps every
ReferenceType to a ReferenceHandler that can load the entity and write its
propagated ``payment_status``. The registry is built explicitly and handed to
the payment service, so tests can substitute in-memory handlers.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.exceptions import InvalidArgumentError, NotFoundError
from autohub.core.logging import get_logger
from autohub.core.validation import parse_uuid
from autohub.database.models.order import PartOrder
from autohub.database.models.payment import ReferencePaymentStatus, ReferenceType
from autohub.database.models.service import RentalBooking, ServiceRequest
from autohub.services.payments.repository import PayableRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentReference:
    """Tagged reference to the entity a transaction pays for."""

    type: ReferenceType
    id: uuid.UUID

    @classmethod
    def parse(
        cls,
        reference_type: Union[str, ReferenceType],
        reference_id: Union[str, uuid.UUID],
    ) -> "PaymentReference":
        """
        Build a reference from raw request values.

        Raises:
            InvalidArgumentError: If the type tag is unknown or the id is not a UUID
        """
        return cls(
            type=_coerce_type(reference_type),
            id=parse_uuid(reference_id, "reference_id"),
        )

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"


@runtime_checkable
class ReferenceHandler(Protocol):
    """Loads a payable entity and writes its propagated payment status."""

    async def get(self, entity_id: uuid.UUID) -> Optional[Any]:
        ...

    async def set_payment_status(
        self,
        entity_id: uuid.UUID,
        payment_status: ReferencePaymentStatus,
    ) -> bool:
        ...


class ReferenceRegistry:
    """
    Dispatch table from reference type to handler.

    Construction fails unless every ReferenceType member has a handler.
    """

    def __init__(self, handlers: Mapping[ReferenceType, ReferenceHandler]):
        missing = [member.value for member in ReferenceType if member not in handlers]
        if missing:
            raise ValueError(f"No reference handler registered for: {', '.join(missing)}")

        for reference_type, handler in handlers.items():
            if not isinstance(handler, ReferenceHandler):
                raise TypeError(
                    f"Handler for {reference_type} does not implement ReferenceHandler"
                )

        self._handlers: dict[ReferenceType, ReferenceHandler] = dict(handlers)

    def handler_for(self, reference_type: Union[str, ReferenceType]) -> ReferenceHandler:
        """
        Get the handler for a reference type.

        Raises:
            InvalidArgumentError: If the type tag is not a known reference type
        """
        return self._handlers[_coerce_type(reference_type)]

    async def resolve(self, reference: PaymentReference) -> Any:
        """
        Load the referenced entity.

        Raises:
            InvalidArgumentError: If the reference type is unknown
            NotFoundError: If no entity exists for the reference
        """
        entity = await self.handler_for(reference.type).get(reference.id)
        if entity is None:
            logger.warning("Payment reference not found", reference=str(reference))
            raise NotFoundError(
                f"Referenced {_coerce_type(reference.type).value} not found",
                reference_type=reference.type,
                reference_id=reference.id,
            )
        return entity

    async def propagate(
        self,
        reference: PaymentReference,
        payment_status: ReferencePaymentStatus,
    ) -> None:
        """
        Write ``payment_status`` onto the referenced entity.

        Raises:
            InvalidArgumentError: If the reference type is unknown
            NotFoundError: If the referenced entity no longer exists
        """
        updated = await self.handler_for(reference.type).set_payment_status(
            reference.id, payment_status
        )
        if not updated:
            logger.warning(
                "Payment status propagation matched no entity",
                reference=str(reference),
                payment_status=payment_status.value,
            )
            raise NotFoundError(
                "Referenced entity not found during payment status propagation",
                reference_type=reference.type,
                reference_id=reference.id,
            )

        logger.info(
            "Payment status propagated",
            reference=str(reference),
            payment_status=payment_status.value,
        )


def build_reference_registry(session: AsyncSession) -> ReferenceRegistry:
    """Registry backed by the database tables of every payable entity."""
    return ReferenceRegistry(
        {
            ReferenceType.SERVICE_REQUEST: PayableRepository(session, ServiceRequest),
            ReferenceType.RENTAL_BOOKING: PayableRepository(session, RentalBooking),
            ReferenceType.PART_ORDER: PayableRepository(session, PartOrder),
        }
    )


def _coerce_type(value: Union[str, ReferenceType]) -> ReferenceType:
    if isinstance(value, ReferenceType):
        return value
    try:
        return ReferenceType.from_string(value)
    except ValueError as e:
        raise InvalidArgumentError(
            str(e),
            reference_type=value,
            allowed=[member.value for member in ReferenceType],
        ) from e
