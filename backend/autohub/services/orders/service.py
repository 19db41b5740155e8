"""
Part order service.

Builds orders from line items against current inventory, applies status
transitions and serves order listings and statistics. All writes of one
call share the caller's session, so an error in a later step (a stock
decrement losing a race, a failed document upload) rolls back the order row
and every earlier decrement together.
"""

import uuid
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.config import Settings, get_settings
from autohub.core.exceptions import (
    IllegalTransitionError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)
from autohub.core.logging import get_logger, log_performance
from autohub.core.validation import parse_decimal, parse_enum, parse_uuid
from autohub.database.models.order import PartOrder, PartOrderStatus
from autohub.services.attachments.storage import AttachmentStorage, UploadedFile
from autohub.services.inventory.repository import InventoryRepository
from autohub.services.notifications.service import NotificationService
from autohub.services.orders.repository import OrderRepository
from autohub.services.orders.transitions import resolve_order_transition
from autohub.services.pagination import Page, PageRequest

logger = get_logger(__name__)

ORDER_DOCUMENT_DIRECTORY = "order-documents"
STATS_MONTHS = 12
TOP_PARTS_LIMIT = 10


class OrderService:
    """
    Part order operations.

    Attributes:
        orders: Order data access
        inventory: Car part data access used for price snapshots and stock
        storage: Shipping document storage
        notifications: Email sender for order events
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        order_repository: Optional[OrderRepository] = None,
        inventory_repository: Optional[InventoryRepository] = None,
        storage: Optional[AttachmentStorage] = None,
        notification_service: Optional[NotificationService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.orders = order_repository or OrderRepository(session)
        self.inventory = inventory_repository or InventoryRepository(session)
        self.storage = storage or AttachmentStorage(
            self.settings.upload_dir,
            max_size_bytes=self.settings.max_upload_size_bytes,
        )
        self.notifications = notification_service or NotificationService(
            settings=self.settings
        )

    async def create_order(
        self,
        buyer_id: Union[str, uuid.UUID],
        items: Any,
        shipping_address: Optional[dict[str, Any]] = None,
        attachments: Sequence[UploadedFile] = (),
    ) -> PartOrder:
        """
        Create a pending order and take its quantities out of stock.

        Each line snapshots the part's current price; the order total is the
        sum of the line subtotals. Lines for the same part are checked
        against stock with their quantities summed.

        Args:
            buyer_id: Ordering user
            items: Non-empty list of ``{"part_id", "quantity"}`` mappings
            shipping_address: Shipping details; an ``email`` key receives
                order notifications
            attachments: Shipping documents

        Returns:
            Created order with its line items

        Raises:
            InvalidArgumentError: Bad buyer id, empty or malformed items
            NotFoundError: A referenced part does not exist
            InsufficientStockError: A part holds fewer units than ordered
            AttachmentRejectedError: A document has a disallowed extension
        """
        buyer_id = parse_uuid(buyer_id, "buyer_id")
        requested = self._parse_items(items)
        if shipping_address is not None and not isinstance(shipping_address, dict):
            raise InvalidArgumentError("Shipping address must be an object")
        shipping_address = dict(shipping_address or {})

        self.storage.validate_all(attachments, self.settings.order_document_extensions)

        logger.info(
            "Creating part order",
            buyer_id=str(buyer_id),
            item_count=len(requested),
            attachment_count=len(attachments),
        )

        with log_performance(logger, "create_part_order", buyer_id=str(buyer_id)):
            totals: "OrderedDict[uuid.UUID, int]" = OrderedDict()
            for part_id, quantity in requested:
                totals[part_id] = totals.get(part_id, 0) + quantity

            prices: dict[uuid.UUID, Decimal] = {}
            for part_id, quantity in totals.items():
                part = await self.inventory.get_part(part_id)
                if part is None:
                    logger.warning("Order rejected - part not found", part_id=str(part_id))
                    raise NotFoundError(f"Part not found: {part_id}", part_id=part_id)
                if quantity > part.stock_quantity:
                    logger.warning(
                        "Order rejected - insufficient stock",
                        part_id=str(part_id),
                        requested=quantity,
                        available=part.stock_quantity,
                    )
                    raise InsufficientStockError(
                        f"Insufficient stock for part: {part.name}",
                        part_id=part_id,
                        requested=quantity,
                        available=part.stock_quantity,
                    )
                prices[part_id] = part.price

            lines = [
                {
                    "part_id": part_id,
                    "quantity": quantity,
                    "unit_price": prices[part_id],
                    "subtotal": prices[part_id] * quantity,
                }
                for part_id, quantity in requested
            ]
            total_amount = sum((line["subtotal"] for line in lines), Decimal("0.00"))

            order = await self.orders.create_order(
                buyer_id=buyer_id,
                lines=lines,
                total_amount=total_amount,
                shipping_address=shipping_address,
            )

            for part_id in sorted(totals):
                if not await self.inventory.decrement_stock(part_id, totals[part_id]):
                    logger.warning(
                        "Stock decrement lost to a concurrent order",
                        order_id=str(order.id),
                        part_id=str(part_id),
                        requested=totals[part_id],
                    )
                    raise InsufficientStockError(
                        "Insufficient stock for part: stock changed while ordering",
                        part_id=part_id,
                        requested=totals[part_id],
                        available=0,
                    )

            if attachments:
                order = await self._attach_documents(order, attachments)

        logger.info(
            "Part order created",
            order_id=str(order.id),
            buyer_id=str(buyer_id),
            total_amount=str(order.total_amount),
        )

        await self.notifications.order_created(
            shipping_address.get("email"),
            str(order.id),
            str(order.total_amount),
        )
        return order

    async def update_order_status(
        self,
        order_id: Union[str, uuid.UUID],
        status: Union[str, PartOrderStatus],
        tracking_number: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> PartOrder:
        """
        Move an order to a new status.

        Cancelling puts every line quantity back into stock unless the order
        is already cancelled.

        Raises:
            InvalidArgumentError: Bad order id or unknown status
            NotFoundError: Order does not exist
            AlreadyShippedError: Cancelling a shipped order
            MissingTrackingInfoError: Shipping without a tracking number
        """
        order_id = parse_uuid(order_id, "order_id")
        requested = parse_enum(PartOrderStatus, status, "status")
        order = await self._require_order(order_id)

        try:
            transition = resolve_order_transition(order.status, requested, tracking_number)
        except IllegalTransitionError as e:
            logger.warning(
                "Order status transition rejected",
                order_id=str(order_id),
                current_status=order.status.value,
                requested_status=requested.value,
                reason=e.code,
            )
            raise

        if transition.restore_stock:
            restored: dict[uuid.UUID, int] = {}
            for item in order.items:
                if item.part_id is not None:
                    restored[item.part_id] = restored.get(item.part_id, 0) + item.quantity
            for part_id in sorted(restored):
                await self.inventory.restore_stock(part_id, restored[part_id])
            logger.info(
                "Stock restored for cancelled order",
                order_id=str(order_id),
                parts=len(restored),
            )

        changes: dict[str, Any] = {"status": transition.new_status}
        if tracking_number:
            changes["tracking_number"] = tracking_number.strip()
        if remarks is not None:
            changes["remarks"] = remarks

        order = await self.orders.update_order(order, **changes)

        logger.info(
            "Order status updated",
            order_id=str(order_id),
            previous_status=transition.previous_status.value,
            new_status=transition.new_status.value,
        )

        if transition.changed:
            await self.notifications.order_status_changed(
                (order.shipping_address or {}).get("email"),
                str(order.id),
                transition.new_status.value,
                order.tracking_number,
            )
        return order

    async def get_order(self, order_id: Union[str, uuid.UUID]) -> PartOrder:
        return await self._require_order(parse_uuid(order_id, "order_id"))

    async def list_orders(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[Union[str, PartOrderStatus]] = None,
        buyer_id: Optional[Union[str, uuid.UUID]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        min_amount: Any = None,
        max_amount: Any = None,
    ) -> Page[PartOrder]:
        """
        List orders newest first.

        The date range applies only when both ends are given.
        """
        request = PageRequest.build(page, limit)
        orders, total = await self.orders.list_orders(
            skip=request.skip,
            limit=request.limit,
            status=parse_enum(PartOrderStatus, status, "status") if status else None,
            buyer_id=parse_uuid(buyer_id, "buyer_id") if buyer_id else None,
            start_date=start_date,
            end_date=end_date,
            min_amount=parse_decimal(min_amount, "min_amount") if min_amount is not None else None,
            max_amount=parse_decimal(max_amount, "max_amount") if max_amount is not None else None,
        )
        return Page(items=orders, total=total, request=request)

    async def get_user_orders(
        self,
        buyer_id: Union[str, uuid.UUID],
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[PartOrder]:
        return await self.list_orders(
            page=page,
            limit=limit,
            buyer_id=parse_uuid(buyer_id, "buyer_id"),
        )

    async def get_order_stats(self) -> dict[str, Any]:
        """Per-status totals, recent monthly figures and best-selling parts."""
        return {
            "status_stats": await self.orders.get_status_stats(),
            "monthly_stats": await self.orders.get_monthly_stats(months=STATS_MONTHS),
            "top_selling_parts": await self.orders.get_top_selling_parts(limit=TOP_PARTS_LIMIT),
        }

    async def _attach_documents(
        self,
        order: PartOrder,
        attachments: Sequence[UploadedFile],
    ) -> PartOrder:
        stored = await self.storage.save_all(
            attachments, f"{ORDER_DOCUMENT_DIRECTORY}/{order.id}"
        )
        try:
            return await self.orders.update_order(order, documents=stored)
        except Exception:
            for path in stored:
                await self.storage.delete(path)
            raise

    async def _require_order(self, order_id: uuid.UUID) -> PartOrder:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", order_id=order_id)
        return order

    @staticmethod
    def _parse_items(items: Any) -> list[tuple[uuid.UUID, int]]:
        if not isinstance(items, (list, tuple)) or not items:
            raise InvalidArgumentError("Order must contain at least one item")

        parsed = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise InvalidArgumentError("Order item must be an object", index=index)
            part_id = parse_uuid(item.get("part_id"), "part_id")
            quantity = item.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidArgumentError(
                    "Item quantity must be a positive integer",
                    index=index,
                    part_id=part_id,
                    quantity=quantity,
                )
            parsed.append((part_id, quantity))
        return parsed
