"""
Car part API endpoints.

Create and update take a multipart form: the part fields as a JSON
``payload`` field plus any number of ``images`` files.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from autohub.api.deps import InventoryServiceDep, parse_payload, read_uploads
from autohub.core.logging import get_logger
from autohub.database.models.part import PartStatus
from autohub.schemas.common import PaginationMeta
from autohub.schemas.parts import (
    CarPartCreateRequest,
    CarPartDetailResponse,
    CarPartListResponse,
    CarPartResponse,
    CarPartUpdateRequest,
    RelatedPartResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/parts", tags=["parts"])


@router.post(
    "",
    response_model=CarPartResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a car part",
)
async def create_part(
    service: InventoryServiceDep,
    payload: str = Form(..., description="CarPartCreateRequest as JSON"),
    images: Optional[list[UploadFile]] = File(None),
) -> CarPartResponse:
    request = parse_payload(CarPartCreateRequest, payload)
    part = await service.create_part(
        **request.model_dump(),
        images=await read_uploads(images),
    )
    return CarPartResponse.model_validate(part)


@router.get(
    "",
    response_model=CarPartListResponse,
    summary="List car parts",
)
async def list_parts(
    service: InventoryServiceDep,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    part_status: Optional[PartStatus] = Query(None, alias="status"),
    seller_id: Optional[UUID] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    make: Optional[str] = Query(None, description="Compatible vehicle make"),
    model: Optional[str] = Query(None, description="Compatible vehicle model"),
    year: Optional[str] = Query(None, description="Compatible vehicle year"),
) -> CarPartListResponse:
    result = await service.list_parts(
        page=page,
        limit=limit,
        category=category,
        brand=brand,
        status=part_status,
        seller_id=seller_id,
        min_price=min_price,
        max_price=max_price,
        make=make,
        model=model,
        year=year,
    )
    return CarPartListResponse(
        parts=[CarPartResponse.model_validate(part) for part in result.items],
        meta=PaginationMeta(**result.meta()),
    )


@router.get(
    "/{part_id}",
    response_model=CarPartDetailResponse,
    summary="Get a car part with related parts",
)
async def get_part(part_id: str, service: InventoryServiceDep) -> CarPartDetailResponse:
    details = await service.get_part(part_id)
    return CarPartDetailResponse(
        part=CarPartResponse.model_validate(details.part),
        related_parts=[RelatedPartResponse.model_validate(p) for p in details.related_parts],
    )


@router.put(
    "/{part_id}",
    response_model=CarPartResponse,
    summary="Update a car part",
)
async def update_part(
    part_id: str,
    service: InventoryServiceDep,
    payload: str = Form("{}", description="CarPartUpdateRequest as JSON"),
    images: Optional[list[UploadFile]] = File(None),
) -> CarPartResponse:
    request = parse_payload(CarPartUpdateRequest, payload)
    part = await service.update_part(
        part_id,
        request.model_dump(exclude_unset=True),
        images=await read_uploads(images) or None,
    )
    return CarPartResponse.model_validate(part)


@router.delete(
    "/{part_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a car part",
)
async def delete_part(part_id: str, service: InventoryServiceDep) -> None:
    await service.delete_part(part_id)
    logger.info("Car part deleted via API", part_id=part_id)
