"""
FastAPI dependencies: database session, service factories and multipart helpers.

Route handlers receive fully built services; tests replace the factories
through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated, Optional, TypeVar

from fastapi import Depends, UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from autohub.core.config import get_settings
from autohub.core.exceptions import InvalidArgumentError
from autohub.core.logging import get_logger
from autohub.database.connection import get_db
from autohub.services.attachments.storage import AttachmentStorage, UploadedFile
from autohub.services.inventory.service import InventoryService
from autohub.services.notifications.service import NotificationService
from autohub.services.orders.service import OrderService
from autohub.services.payments.service import PaymentService

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_attachment_storage() -> AttachmentStorage:
    settings = get_settings()
    return AttachmentStorage(settings.upload_dir, max_size_bytes=settings.max_upload_size_bytes)


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(settings=get_settings())


def get_inventory_service(
    db: DatabaseSession,
    storage: Annotated[AttachmentStorage, Depends(get_attachment_storage)],
) -> InventoryService:
    return InventoryService(session=db, storage=storage)


def get_order_service(
    db: DatabaseSession,
    storage: Annotated[AttachmentStorage, Depends(get_attachment_storage)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
) -> OrderService:
    return OrderService(session=db, storage=storage, notification_service=notifications)


def get_payment_service(
    db: DatabaseSession,
    storage: Annotated[AttachmentStorage, Depends(get_attachment_storage)],
) -> PaymentService:
    return PaymentService(session=db, storage=storage)


InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]


def parse_payload(model: type[M], payload: str) -> M:
    """
    Validate the JSON ``payload`` field of a multipart request.

    Raises:
        InvalidArgumentError: If the payload is not valid JSON for ``model``
    """
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
            for error in e.errors()
        ]
        logger.warning("Invalid request payload", model=model.__name__, errors=errors)
        raise InvalidArgumentError("Invalid request payload", errors=errors) from e


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return UploadedFile(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type,
    )


async def read_uploads(uploads: Optional[list[UploadFile]]) -> list[UploadedFile]:
    files = []
    for upload in uploads or []:
        uploaded = await read_upload(upload)
        if uploaded is not None:
            files.append(uploaded)
    return files
