"""Part order status transition rules.

The decision is a pure function of the current status, the requested status
and the tracking number supplied with the request. Persisting the new status
and restoring stock are left to the caller.
"""

from dataclasses import dataclass
from typing import Optional

from autohub.core.exceptions import AlreadyShippedError, MissingTrackingInfoError
from autohub.database.models.order import PartOrderStatus


@dataclass(frozen=True)
class OrderTransition:
    """Outcome of an accepted order status transition.

    Attributes:
        previous_status: Status before the transition
        new_status: Status to persist
        restore_stock: Whether every line quantity must go back into stock
    """

    previous_status: PartOrderStatus
    new_status: PartOrderStatus
    restore_stock: bool = False

    @property
    def changed(self) -> bool:
        return self.previous_status != self.new_status


def resolve_order_transition(
    current: PartOrderStatus,
    requested: PartOrderStatus,
    tracking_number: Optional[str] = None,
) -> OrderTransition:
    """Decide whether ``current -> requested`` is allowed.

    Args:
        current: Order's persisted status
        requested: Status asked for by the caller
        tracking_number: Shipment tracking identifier, required for ``shipped``

    Returns:
        Accepted transition

    Raises:
        AlreadyShippedError: Cancelling an order that has shipped
        MissingTrackingInfoError: Shipping without a tracking number
    """
    if requested == PartOrderStatus.CANCELLED and current == PartOrderStatus.SHIPPED:
        raise AlreadyShippedError(
            "Cannot cancel an order that has already been shipped",
            current_status=current,
            requested_status=requested,
        )

    if requested == PartOrderStatus.SHIPPED and not (tracking_number or "").strip():
        raise MissingTrackingInfoError(
            "Tracking number is required when marking an order as shipped",
            current_status=current,
            requested_status=requested,
        )

    restore = requested == PartOrderStatus.CANCELLED and current != PartOrderStatus.CANCELLED
    return OrderTransition(
        previous_status=current,
        new_status=requested,
        restore_stock=restore,
    )
