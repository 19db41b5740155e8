"""
Pytest configuration and shared fixtures for the AutoHub test suite.

Services are exercised against in-memory repositories that mirror the
behaviour of the SQLAlchemy ones (conditional stock decrement, status resync,
pagination), so business rules can be tested without a database. API tests
reuse the same fakes through ``app.dependency_overrides``.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_NOTIFICATIONS_ENABLED", "false")

import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from autohub.core.config import Settings
from autohub.database.models.order import PartOrder, PartOrderItem, PartOrderStatus
from autohub.database.models.part import CarPart, PartStatus
from autohub.database.models.payment import (
    PaymentTransaction,
    ReferencePaymentStatus,
    ReferenceType,
    TransactionStatus,
)
from autohub.database.models.service import (
    RentalBooking,
    RentalBookingStatus,
    ServiceRequest,
    ServiceRequestStatus,
)
from autohub.services.attachments.storage import AttachmentStorage
from autohub.services.inventory.service import InventoryService
from autohub.services.orders.service import OrderService
from autohub.services.payments.references import ReferenceRegistry
from autohub.services.payments.service import PaymentService


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# In-memory repositories
# ============================================================================


class FakeInventoryRepository:
    """Dictionary backed stand-in for InventoryRepository."""

    def __init__(self) -> None:
        self.parts: dict[uuid.UUID, CarPart] = {}
        self.open_orders: dict[uuid.UUID, int] = {}
        self.decrements: list[tuple[uuid.UUID, int]] = []

    def add(
        self,
        name: str = "Brake Pad",
        price: str = "10.00",
        stock_quantity: int = 5,
        **fields: Any,
    ) -> CarPart:
        part = CarPart(
            id=fields.pop("id", uuid.uuid4()),
            name=name,
            price=Decimal(price),
            stock_quantity=stock_quantity,
            status=PartStatus.for_stock(stock_quantity),
            images=fields.pop("images", []),
            created_at=_now(),
            updated_at=_now(),
            **fields,
        )
        self.parts[part.id] = part
        return part

    async def create_part(self, **fields: Any) -> CarPart:
        part = CarPart(id=uuid.uuid4(), created_at=_now(), updated_at=_now(), **fields)
        self.parts[part.id] = part
        return part

    async def get_part(self, part_id: uuid.UUID) -> Optional[CarPart]:
        return self.parts.get(part_id)

    async def get_related_parts(self, part: CarPart, limit: int = 5) -> Sequence[CarPart]:
        if not part.category:
            return []
        related = [
            p for p in self.parts.values() if p.category == part.category and p.id != part.id
        ]
        return related[:limit]

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
        parts = list(self.parts.values())
        if category:
            parts = [p for p in parts if p.category == category]
        if brand:
            parts = [p for p in parts if p.brand == brand]
        if status:
            parts = [p for p in parts if p.status == status]
        if seller_id:
            parts = [p for p in parts if p.seller_id == seller_id]
        if min_price is not None:
            parts = [p for p in parts if p.price >= min_price]
        if max_price is not None:
            parts = [p for p in parts if p.price <= max_price]
        if compatibility_pattern:
            parts = [
                p
                for p in parts
                if p.compatibility
                and re.search(compatibility_pattern, p.compatibility, re.IGNORECASE)
            ]
        return parts[skip : skip + limit], len(parts)

    async def update_part(self, part: CarPart, **fields: Any) -> CarPart:
        for key, value in fields.items():
            setattr(part, key, value)
        part.updated_at = _now()
        return part

    async def delete_part(self, part_id: uuid.UUID) -> None:
        self.parts.pop(part_id, None)

    async def count_open_orders_for_part(self, part_id: uuid.UUID) -> int:
        return self.open_orders.get(part_id, 0)

    async def decrement_stock(self, part_id: uuid.UUID, quantity: int) -> bool:
        part = self.parts.get(part_id)
        if part is None or part.stock_quantity < quantity:
            return False
        self.decrements.append((part_id, quantity))
        part.stock_quantity -= quantity
        part.status = PartStatus.for_stock(part.stock_quantity)
        return True

    async def restore_stock(self, part_id: uuid.UUID, quantity: int) -> None:
        part = self.parts.get(part_id)
        if part is None:
            return
        part.stock_quantity += quantity
        part.status = PartStatus.for_stock(part.stock_quantity)


class FakeOrderRepository:
    """Dictionary backed stand-in for OrderRepository."""

    def __init__(self) -> None:
        self.orders: dict[uuid.UUID, PartOrder] = {}

    async def create_order(
        self,
        buyer_id: uuid.UUID,
        lines: Sequence[dict[str, Any]],
        total_amount: Decimal,
        shipping_address: dict[str, Any],
    ) -> PartOrder:
        order = PartOrder(
            id=uuid.uuid4(),
            buyer_id=buyer_id,
            status=PartOrderStatus.PENDING,
            total_amount=total_amount,
            shipping_address=shipping_address,
            documents=[],
            created_at=_now(),
            updated_at=_now(),
            items=[
                PartOrderItem(id=uuid.uuid4(), position=position, **line)
                for position, line in enumerate(lines)
            ],
        )
        self.orders[order.id] = order
        return order

    async def get_order(self, order_id: uuid.UUID) -> Optional[PartOrder]:
        return self.orders.get(order_id)

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
        orders = list(reversed(list(self.orders.values())))
        if status:
            orders = [o for o in orders if o.status == status]
        if buyer_id:
            orders = [o for o in orders if o.buyer_id == buyer_id]
        if start_date and end_date:
            orders = [o for o in orders if start_date <= o.created_at <= end_date]
        if min_amount is not None:
            orders = [o for o in orders if o.total_amount >= min_amount]
        if max_amount is not None:
            orders = [o for o in orders if o.total_amount <= max_amount]
        return orders[skip : skip + limit], len(orders)

    async def update_order(self, order: PartOrder, **fields: Any) -> PartOrder:
        for key, value in fields.items():
            setattr(order, key, value)
        order.updated_at = _now()
        return order

    async def get_status_stats(self) -> list[dict[str, Any]]:
        stats = []
        for status in PartOrderStatus:
            orders = [o for o in self.orders.values() if o.status == status]
            if not orders:
                continue
            revenue = sum((o.total_amount for o in orders), Decimal("0.00"))
            stats.append(
                {
                    "status": status,
                    "count": len(orders),
                    "total_revenue": revenue,
                    "avg_order_value": revenue / len(orders),
                }
            )
        return stats

    async def get_monthly_stats(self, months: int = 12) -> list[dict[str, Any]]:
        return []

    async def get_top_selling_parts(self, limit: int = 10) -> list[dict[str, Any]]:
        return []


class FakeTransactionRepository:
    """Dictionary backed stand-in for TransactionRepository."""

    def __init__(self) -> None:
        self.transactions: dict[uuid.UUID, PaymentTransaction] = {}

    async def create_transaction(self, **fields: Any) -> PaymentTransaction:
        transaction = PaymentTransaction(
            id=uuid.uuid4(),
            status=TransactionStatus.PENDING,
            remarks=None,
            created_at=_now(),
            updated_at=_now(),
            **fields,
        )
        self.transactions[transaction.id] = transaction
        return transaction

    async def get_transaction(self, transaction_id: uuid.UUID) -> Optional[PaymentTransaction]:
        return self.transactions.get(transaction_id)

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
        transactions = list(reversed(list(self.transactions.values())))
        if status:
            transactions = [t for t in transactions if t.status == status]
        if payer_id:
            transactions = [t for t in transactions if t.payer_id == payer_id]
        if payment_method:
            transactions = [t for t in transactions if t.payment_method == payment_method]
        if reference_type:
            transactions = [t for t in transactions if t.reference_type == reference_type]
        if min_amount is not None:
            transactions = [t for t in transactions if t.amount >= min_amount]
        if max_amount is not None:
            transactions = [t for t in transactions if t.amount <= max_amount]
        return transactions[skip : skip + limit], len(transactions)

    async def update_transaction(
        self, transaction: PaymentTransaction, **fields: Any
    ) -> PaymentTransaction:
        for key, value in fields.items():
            setattr(transaction, key, value)
        transaction.updated_at = _now()
        return transaction

    async def get_status_stats(self) -> list[dict[str, Any]]:
        return []

    async def get_payment_method_stats(self) -> list[dict[str, Any]]:
        return []

    async def get_daily_stats(self, days: int = 30) -> list[dict[str, Any]]:
        return []


class FakePayableHandler:
    """In-memory ReferenceHandler keyed by entity id."""

    def __init__(self, entities: Optional[dict[uuid.UUID, Any]] = None) -> None:
        self.entities = entities if entities is not None else {}
        self.updates: list[tuple[uuid.UUID, ReferencePaymentStatus]] = []

    async def get(self, entity_id: uuid.UUID) -> Optional[Any]:
        return self.entities.get(entity_id)

    async def set_payment_status(
        self,
        entity_id: uuid.UUID,
        payment_status: ReferencePaymentStatus,
    ) -> bool:
        entity = self.entities.get(entity_id)
        if entity is None:
            return False
        entity.payment_status = payment_status
        self.updates.append((entity_id, payment_status))
        return True


class FakeNotificationService:
    """Records notifications instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, Any]] = []

    async def order_created(self, email, order_id, total) -> bool:
        self.sent.append(("order_created", (email, order_id, total)))
        return True

    async def order_status_changed(self, email, order_id, status, tracking_number=None) -> bool:
        self.sent.append(("order_status_changed", (email, order_id, status, tracking_number)))
        return True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings for a test run.

    Attachments are written below the test's temporary directory and
    notifications are disabled.

    Returns:
        Settings: Test configuration
    """
    return Settings(
        environment="test",
        upload_dir=str(tmp_path / "uploads"),
        notifications_enabled=False,
    )


@pytest.fixture
def storage(test_settings: Settings) -> AttachmentStorage:
    return AttachmentStorage(
        test_settings.upload_dir,
        max_size_bytes=test_settings.max_upload_size_bytes,
    )


@pytest.fixture
def inventory_repository() -> FakeInventoryRepository:
    return FakeInventoryRepository()


@pytest.fixture
def order_repository() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def transaction_repository() -> FakeTransactionRepository:
    return FakeTransactionRepository()


@pytest.fixture
def notifications() -> FakeNotificationService:
    return FakeNotificationService()


@pytest.fixture
def payable_handlers(order_repository: FakeOrderRepository) -> dict[ReferenceType, FakePayableHandler]:
    """
    One handler per reference type.

    The part order handler shares its storage with the order repository, so
    orders created through OrderService are payable.
    """
    return {
        ReferenceType.SERVICE_REQUEST: FakePayableHandler(),
        ReferenceType.RENTAL_BOOKING: FakePayableHandler(),
        ReferenceType.PART_ORDER: FakePayableHandler(order_repository.orders),
    }


@pytest.fixture
def reference_registry(payable_handlers) -> ReferenceRegistry:
    return ReferenceRegistry(payable_handlers)


@pytest.fixture
def inventory_service(inventory_repository, storage, test_settings) -> InventoryService:
    return InventoryService(
        repository=inventory_repository,
        storage=storage,
        settings=test_settings,
    )


@pytest.fixture
def order_service(
    order_repository,
    inventory_repository,
    storage,
    notifications,
    test_settings,
) -> OrderService:
    return OrderService(
        order_repository=order_repository,
        inventory_repository=inventory_repository,
        storage=storage,
        notification_service=notifications,
        settings=test_settings,
    )


@pytest.fixture
def payment_service(
    transaction_repository,
    reference_registry,
    storage,
    test_settings,
) -> PaymentService:
    return PaymentService(
        repository=transaction_repository,
        references=reference_registry,
        storage=storage,
        settings=test_settings,
    )


@pytest.fixture
def make_service_request(payable_handlers):
    """
    Factory registering a service request with the given total.

    Example:
        def test_pay(make_service_request):
            request = make_service_request("120.00")
    """

    def _make(total_amount: str = "100.00") -> ServiceRequest:
        request = ServiceRequest(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            vehicle_id=uuid.uuid4(),
            service_type="oil_change",
            status=ServiceRequestStatus.PENDING,
            total_amount=Decimal(total_amount),
            payment_status=None,
            created_at=_now(),
            updated_at=_now(),
        )
        payable_handlers[ReferenceType.SERVICE_REQUEST].entities[request.id] = request
        return request

    return _make


@pytest.fixture
def make_rental_booking(payable_handlers):
    def _make(total_amount: str = "250.00") -> RentalBooking:
        booking = RentalBooking(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            rental_car_id=uuid.uuid4(),
            start_date=_now().date(),
            end_date=_now().date(),
            status=RentalBookingStatus.PENDING,
            total_amount=Decimal(total_amount),
            payment_status=None,
            created_at=_now(),
            updated_at=_now(),
        )
        payable_handlers[ReferenceType.RENTAL_BOOKING].entities[booking.id] = booking
        return booking

    return _make


@pytest.fixture
def test_client(inventory_service, order_service, payment_service):
    """
    Create test client for API testing.

    The service dependencies are replaced with the in-memory backed services
    from this module, so requests never touch a database.

    Yields:
        TestClient: Client bound to the application

    Example:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from autohub.api.deps import (
        get_inventory_service,
        get_order_service,
        get_payment_service,
    )
    from autohub.main import app

    app.dependency_overrides[get_inventory_service] = lambda: inventory_service
    app.dependency_overrides[get_order_service] = lambda: order_service
    app.dependency_overrides[get_payment_service] = lambda: payment_service
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
