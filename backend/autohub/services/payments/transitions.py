"""Payment transaction status rules and the derived reference payment status."""

from autohub.core.exceptions import TransactionFinalizedError
from autohub.database.models.payment import ReferencePaymentStatus, TransactionStatus


def resolve_transaction_transition(
    current: TransactionStatus,
    requested: TransactionStatus,
) -> TransactionStatus:
    """
    Decide whether a transaction may move from ``current`` to ``requested``.

    A completed transaction is final except for a refund. Every other
    transition, including re-requesting the current status, is accepted.

    Raises:
        TransactionFinalizedError: If current is completed and requested is
            anything other than refunded
    """
    if current.is_finalized and requested != TransactionStatus.REFUNDED:
        raise TransactionFinalizedError(
            "Completed transaction can only be refunded",
            current_status=current,
            requested_status=requested,
        )
    return requested


def reference_payment_status_for(
    status: TransactionStatus,
    refund_as_refunded: bool = False,
) -> ReferencePaymentStatus:
    """
    Map a transaction status update onto the referenced entity's payment status.

    ``completed`` maps to ``payment_completed`` and everything else to
    ``payment_failed``, refunds included. With ``refund_as_refunded`` set, a
    refund maps to ``payment_refunded`` instead.
    """
    if status == TransactionStatus.COMPLETED:
        return ReferencePaymentStatus.PAYMENT_COMPLETED
    if refund_as_refunded and status == TransactionStatus.REFUNDED:
        return ReferencePaymentStatus.PAYMENT_REFUNDED
    return ReferencePaymentStatus.PAYMENT_FAILED
