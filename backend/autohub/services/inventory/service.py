"""
Car part inventory service.

Handles listing, validation and image management for car parts. Stock is
only changed here through explicit updates; the order flow uses the
repository's conditional decrement directly.
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.config import Settings, get_settings
from autohub.core.exceptions import InvalidArgumentError, NotFoundError, ResourceInUseError
from autohub.core.logging import get_logger
from autohub.core.validation import parse_decimal, parse_enum, parse_uuid
from autohub.database.models.part import CarPart, PartStatus
from autohub.services.attachments.storage import AttachmentStorage, UploadedFile
from autohub.services.inventory.repository import InventoryRepository
from autohub.services.pagination import Page, PageRequest

logger = get_logger(__name__)

PART_IMAGE_DIRECTORY = "car-parts"
RELATED_PARTS_LIMIT = 5

UPDATABLE_FIELDS = frozenset(
    {"name", "brand", "category", "compatibility", "price", "stock_quantity", "seller_id"}
)


@dataclass
class PartDetails:
    part: CarPart
    related_parts: Sequence[CarPart]


def compatibility_pattern(
    make: Optional[str] = None,
    model: Optional[str] = None,
    year: Optional[Union[str, int]] = None,
) -> Optional[str]:
    """
    Build the ``make.*model.*year`` pattern matched against compatibility text.

    Returns:
        Regular expression, or None when no component is given
    """
    if not any((make, model, year)):
        return None
    parts = [re.escape(str(value).strip()) if value else "" for value in (make, model, year)]
    return ".*".join(parts)


class InventoryService:
    """
    Car part operations.

    Attributes:
        repository: Car part data access
        storage: Image attachment storage
    """

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        repository: Optional[InventoryRepository] = None,
        storage: Optional[AttachmentStorage] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository or InventoryRepository(session)
        self.storage = storage or AttachmentStorage(
            self.settings.upload_dir,
            max_size_bytes=self.settings.max_upload_size_bytes,
        )

    async def create_part(
        self,
        name: str,
        price: Any,
        stock_quantity: int,
        seller_id: Optional[Union[str, uuid.UUID]] = None,
        brand: Optional[str] = None,
        category: Optional[str] = None,
        compatibility: Optional[str] = None,
        images: Sequence[UploadedFile] = (),
    ) -> CarPart:
        """
        Create a car part with optional images.

        Raises:
            InvalidArgumentError: Bad seller id, negative price or stock
            AttachmentRejectedError: Image with a disallowed extension
        """
        fields = self._validated_fields(
            {
                "name": name,
                "price": price,
                "stock_quantity": stock_quantity,
                "seller_id": seller_id,
                "brand": brand,
                "category": category,
                "compatibility": compatibility,
            }
        )
        if not (fields.get("name") or "").strip():
            raise InvalidArgumentError("Part name is required")

        self.storage.validate_all(images, self.settings.part_image_extensions)
        stored = await self.storage.save_all(images, PART_IMAGE_DIRECTORY)

        try:
            part = await self.repository.create_part(
                **fields,
                status=PartStatus.for_stock(fields["stock_quantity"]),
                images=stored,
            )
        except Exception:
            for path in stored:
                await self.storage.delete(path)
            raise

        logger.info(
            "Car part listed",
            part_id=str(part.id),
            seller_id=str(part.seller_id) if part.seller_id else None,
            image_count=len(stored),
        )
        return part

    async def get_part(self, part_id: Union[str, uuid.UUID]) -> PartDetails:
        """
        Get a part with up to five other parts of the same category.

        Raises:
            InvalidArgumentError: Malformed part id
            NotFoundError: Part does not exist
        """
        part = await self._require_part(part_id)
        related = await self.repository.get_related_parts(part, limit=RELATED_PARTS_LIMIT)
        return PartDetails(part=part, related_parts=related)

    async def list_parts(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        status: Optional[Union[str, PartStatus]] = None,
        seller_id: Optional[Union[str, uuid.UUID]] = None,
        min_price: Any = None,
        max_price: Any = None,
        make: Optional[str] = None,
        model: Optional[str] = None,
        year: Optional[Union[str, int]] = None,
    ) -> Page[CarPart]:
        request = PageRequest.build(page, limit)
        parts, total = await self.repository.list_parts(
            skip=request.skip,
            limit=request.limit,
            category=category,
            brand=brand,
            status=parse_enum(PartStatus, status, "status") if status else None,
            seller_id=parse_uuid(seller_id, "seller_id") if seller_id else None,
            min_price=parse_decimal(min_price, "min_price") if min_price is not None else None,
            max_price=parse_decimal(max_price, "max_price") if max_price is not None else None,
            compatibility_pattern=compatibility_pattern(make, model, year),
        )
        return Page(items=parts, total=total, request=request)

    async def update_part(
        self,
        part_id: Union[str, uuid.UUID],
        fields: dict[str, Any],
        images: Optional[Sequence[UploadedFile]] = None,
    ) -> CarPart:
        """
        Update part fields and optionally replace its images.

        Status is recomputed from the resulting stock. Replaced image files
        are removed once the update is stored.

        Raises:
            InvalidArgumentError: Unknown field, negative price or stock
            NotFoundError: Part does not exist
            AttachmentRejectedError: Image with a disallowed extension
        """
        part = await self._require_part(part_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(
                "Unknown part fields",
                fields=sorted(unknown),
                allowed=sorted(UPDATABLE_FIELDS),
            )
        changes = self._validated_fields(fields)
        stock = changes.get("stock_quantity", part.stock_quantity)
        changes["status"] = PartStatus.for_stock(stock)

        old_images: list[str] = []
        if images:
            self.storage.validate_all(images, self.settings.part_image_extensions)
            changes["images"] = await self.storage.save_all(images, PART_IMAGE_DIRECTORY)
            old_images = list(part.images or [])

        try:
            part = await self.repository.update_part(part, **changes)
        except Exception:
            for path in changes.get("images", []):
                await self.storage.delete(path)
            raise

        for path in old_images:
            await self.storage.delete(path)

        return part

    async def delete_part(self, part_id: Union[str, uuid.UUID]) -> None:
        """
        Delete a part and its images.

        Raises:
            NotFoundError: Part does not exist
            ResourceInUseError: An order that is neither delivered nor
                cancelled still references the part
        """
        part = await self._require_part(part_id)

        open_orders = await self.repository.count_open_orders_for_part(part.id)
        if open_orders:
            logger.warning(
                "Part deletion rejected - referenced by open orders",
                part_id=str(part.id),
                open_orders=open_orders,
            )
            raise ResourceInUseError(
                "Cannot delete a part referenced by open orders",
                part_id=part.id,
                open_orders=open_orders,
            )

        images = list(part.images or [])
        await self.repository.delete_part(part.id)
        for path in images:
            await self.storage.delete(path)

    async def _require_part(self, part_id: Union[str, uuid.UUID]) -> CarPart:
        part_id = parse_uuid(part_id, "part_id")
        part = await self.repository.get_part(part_id)
        if part is None:
            raise NotFoundError("Car part not found", part_id=part_id)
        return part

    @staticmethod
    def _validated_fields(fields: dict[str, Any]) -> dict[str, Any]:
        validated = dict(fields)

        if "price" in validated:
            price = parse_decimal(validated["price"], "price")
            if price < 0:
                raise InvalidArgumentError("Price cannot be negative", price=price)
            validated["price"] = price.quantize(Decimal("0.01"))

        if "stock_quantity" in validated:
            stock = validated["stock_quantity"]
            if isinstance(stock, bool) or not isinstance(stock, int):
                raise InvalidArgumentError("Stock quantity must be an integer", stock_quantity=stock)
            if stock < 0:
                raise InvalidArgumentError("Stock quantity cannot be negative", stock_quantity=stock)

        if validated.get("seller_id") is not None:
            validated["seller_id"] = parse_uuid(validated["seller_id"], "seller_id")

        return validated
