"""
Test suite for OrderRepository.

Covers inserting an order with its line items, field updates and the
statistics queries against a mocked AsyncSession, including the wrapping of
database failures as RepositoryError.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.exceptions import RepositoryError
from autohub.database.models.order import PartOrder, PartOrderStatus
from autohub.services.orders.repository import OrderRepository


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def mock_session() -> AsyncMock:
    """
    Create mock async database session.

    Returns:
        AsyncMock: Mocked AsyncSession with common methods
    """
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def order_repository(mock_session: AsyncMock) -> OrderRepository:
    return OrderRepository(session=mock_session)


@pytest.fixture
def lines() -> list[dict]:
    """Two lines: 2 x 4.50 and 3 x 12.25."""
    return [
        {
            "part_id": uuid.uuid4(),
            "quantity": 2,
            "unit_price": Decimal("4.50"),
            "subtotal": Decimal("9.00"),
        },
        {
            "part_id": uuid.uuid4(),
            "quantity": 3,
            "unit_price": Decimal("12.25"),
            "subtotal": Decimal("36.75"),
        },
    ]


@pytest.fixture
def sample_order() -> PartOrder:
    return PartOrder(
        id=uuid.uuid4(),
        buyer_id=uuid.uuid4(),
        status=PartOrderStatus.PENDING,
        total_amount=Decimal("30.00"),
        shipping_address={},
        documents=[],
    )


# ============================================================================
# Unit Tests - create_order
# ============================================================================


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_create_order_with_lines(self, order_repository, mock_session, lines):
        """
        Order is inserted pending with one item per line.

        Verifies:
        - Items keep line order through ``position``
        - Price snapshot and subtotal are copied from the line
        - Items and timestamps are refreshed after the flush
        """
        buyer_id = uuid.uuid4()

        order = await order_repository.create_order(
            buyer_id, lines, Decimal("45.75"), {"city": "Austin"}
        )

        assert order.status == PartOrderStatus.PENDING
        assert order.buyer_id == buyer_id
        assert order.total_amount == Decimal("45.75")
        assert order.documents == []
        assert [item.position for item in order.items] == [0, 1]
        assert [item.part_id for item in order.items] == [line["part_id"] for line in lines]
        assert order.items[1].unit_price == Decimal("12.25")
        assert order.items[1].subtotal == Decimal("36.75")
        mock_session.add.assert_called_once_with(order)
        mock_session.flush.assert_awaited_once()
        mock_session.refresh.assert_awaited_once_with(
            order, ["items", "created_at", "updated_at"]
        )

    @pytest.mark.asyncio
    async def test_integrity_error_is_wrapped(self, order_repository, mock_session, lines):
        mock_session.flush.side_effect = IntegrityError(
            "INSERT INTO part_order_items", {}, Exception("foreign key violation")
        )

        with pytest.raises(RepositoryError) as exc_info:
            await order_repository.create_order(uuid.uuid4(), lines, Decimal("45.75"), {})

        assert "integrity" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    @pytest.mark.asyncio
    async def test_database_error_is_wrapped(self, order_repository, mock_session, lines):
        mock_session.flush.side_effect = SQLAlchemyError("connection reset")

        with pytest.raises(RepositoryError, match="database error"):
            await order_repository.create_order(uuid.uuid4(), lines, Decimal("45.75"), {})


# ============================================================================
# Unit Tests - get/update
# ============================================================================


class TestGetAndUpdateOrder:
    @pytest.mark.asyncio
    async def test_get_order(self, order_repository, mock_session, sample_order):
        result = MagicMock()
        result.scalar_one_or_none.return_value = sample_order
        mock_session.execute.return_value = result

        assert await order_repository.get_order(sample_order.id) is sample_order

    @pytest.mark.asyncio
    async def test_get_order_error_is_wrapped(self, order_repository, mock_session):
        mock_session.execute.side_effect = SQLAlchemyError("timeout")

        with pytest.raises(RepositoryError, match="Failed to fetch order"):
            await order_repository.get_order(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_update_order_sets_fields(self, order_repository, mock_session, sample_order):
        updated = await order_repository.update_order(
            sample_order,
            status=PartOrderStatus.SHIPPED,
            tracking_number="TRK-1",
        )

        assert updated is sample_order
        assert updated.status == PartOrderStatus.SHIPPED
        assert updated.tracking_number == "TRK-1"
        mock_session.flush.assert_awaited_once()
        mock_session.refresh.assert_awaited_once_with(sample_order, ["updated_at"])

    @pytest.mark.asyncio
    async def test_update_order_error_is_wrapped(
        self, order_repository, mock_session, sample_order
    ):
        mock_session.flush.side_effect = SQLAlchemyError("serialization failure")

        with pytest.raises(RepositoryError) as exc_info:
            await order_repository.update_order(sample_order, status=PartOrderStatus.CANCELLED)

        assert exc_info.value.context["order_id"] == str(sample_order.id)


# ============================================================================
# Unit Tests - Statistics
# ============================================================================


class TestOrderStats:
    @pytest.mark.asyncio
    async def test_status_stats(self, order_repository, mock_session):
        result = MagicMock()
        result.all.return_value = [
            (PartOrderStatus.PENDING, 3, Decimal("100.00"), Decimal("33.3333")),
        ]
        mock_session.execute.return_value = result

        stats = await order_repository.get_status_stats()

        assert stats == [
            {
                "status": "pending",
                "count": 3,
                "total_revenue": Decimal("100.00"),
                "avg_order_value": Decimal("33.33"),
            }
        ]

    @pytest.mark.asyncio
    async def test_monthly_stats(self, order_repository, mock_session):
        result = MagicMock()
        result.all.return_value = [(datetime(2026, 9, 1), 4, Decimal("120.00"))]
        mock_session.execute.return_value = result

        stats = await order_repository.get_monthly_stats()

        assert stats == [
            {"year": 2026, "month": 9, "orders": 4, "revenue": Decimal("120.00")}
        ]

    @pytest.mark.asyncio
    async def test_stats_error_is_wrapped(self, order_repository, mock_session):
        mock_session.execute.side_effect = SQLAlchemyError("relation does not exist")

        with pytest.raises(RepositoryError) as exc_info:
            await order_repository.get_top_selling_parts()

        assert exc_info.value.context["query"] == "top_parts"
