"""Tests for part order status transition rules."""

import pytest

from autohub.core.exceptions import (
    AlreadyShippedError,
    IllegalTransitionError,
    MissingTrackingInfoError,
)
from autohub.database.models.order import PartOrderStatus
from autohub.services.orders.transitions import resolve_order_transition


class TestCancellation:
    """Cancelling an order."""

    @pytest.mark.parametrize(
        "current",
        [PartOrderStatus.PENDING, PartOrderStatus.CONFIRMED, PartOrderStatus.DELIVERED],
    )
    def test_cancel_restores_stock(self, current: PartOrderStatus):
        transition = resolve_order_transition(current, PartOrderStatus.CANCELLED)

        assert transition.new_status == PartOrderStatus.CANCELLED
        assert transition.restore_stock is True
        assert transition.changed is True

    def test_cancel_already_cancelled_does_not_restore_again(self):
        transition = resolve_order_transition(
            PartOrderStatus.CANCELLED, PartOrderStatus.CANCELLED
        )

        assert transition.restore_stock is False
        assert transition.changed is False

    def test_cancel_shipped_order_is_rejected(self):
        with pytest.raises(AlreadyShippedError) as exc_info:
            resolve_order_transition(PartOrderStatus.SHIPPED, PartOrderStatus.CANCELLED)

        assert exc_info.value.current_status == PartOrderStatus.SHIPPED
        assert exc_info.value.requested_status == PartOrderStatus.CANCELLED
        assert isinstance(exc_info.value, IllegalTransitionError)


class TestShipping:
    """Marking an order shipped."""

    def test_ship_with_tracking_number(self):
        transition = resolve_order_transition(
            PartOrderStatus.CONFIRMED, PartOrderStatus.SHIPPED, "1Z999AA10123456784"
        )

        assert transition.new_status == PartOrderStatus.SHIPPED
        assert transition.restore_stock is False

    @pytest.mark.parametrize("tracking_number", [None, "", "   "])
    def test_ship_without_tracking_number_is_rejected(self, tracking_number):
        with pytest.raises(MissingTrackingInfoError):
            resolve_order_transition(
                PartOrderStatus.PENDING, PartOrderStatus.SHIPPED, tracking_number
            )


class TestOtherTransitions:
    """Transitions without extra rules are accepted as requested."""

    @pytest.mark.parametrize(
        "current,requested",
        [
            (PartOrderStatus.PENDING, PartOrderStatus.CONFIRMED),
            (PartOrderStatus.SHIPPED, PartOrderStatus.DELIVERED),
            (PartOrderStatus.CANCELLED, PartOrderStatus.PENDING),
            (PartOrderStatus.DELIVERED, PartOrderStatus.CONFIRMED),
        ],
    )
    def test_transition_accepted(self, current, requested):
        transition = resolve_order_transition(current, requested)

        assert transition.previous_status == current
        assert transition.new_status == requested
        assert transition.restore_stock is False
