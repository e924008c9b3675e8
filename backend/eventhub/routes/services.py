"""
EventHub Backend — Service Catalog Routes
===========================================

What:  CRUD for marketplace services plus gallery management.
Who:   The marketplace frontend (listing, detail pages) and the admin panel.

Endpoints:
    GET    /api/services                          ?category= &featured=
    POST   /api/services                          201
    GET    /api/services/{id}
    PATCH  /api/services/{id}                     partial update
    DELETE /api/services/{id}                     204; 400 while bookings exist
    POST   /api/services/{id}/images              multipart field `files`, 1..n images
    DELETE /api/services/{id}/images/{ref}        ref = full URL or file name
    PUT    /api/services/{id}/images/order        body {"images": [...]}
    GET    /api/services/{id}/reviews

Upload handling:
    Each part is read into memory once (bounded by MAX_FILE_SIZE through the
    FileService checks) and handed to CatalogService.upload_images, which
    checks gallery capacity before any file reaches the disk.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status

from eventhub.dependencies import get_catalog_service, get_review_service
from eventhub.schemas.common import ErrorResponse
from eventhub.schemas.review import ReviewDetail
from eventhub.schemas.service import (
    ImageOrderRequest,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from eventhub.services.catalog_service import CatalogService
from eventhub.services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["Services"])

NOT_FOUND = {404: {"description": "Unknown service", "model": ErrorResponse}}


@router.get("", response_model=List[ServiceResponse], summary="List services")
async def list_services(
    category: Optional[str] = Query(default=None),
    featured: Optional[bool] = Query(default=None),
    catalog: CatalogService = Depends(get_catalog_service),
) -> List[ServiceResponse]:
    services = await catalog.list_services(category=category, featured=featured)
    return [ServiceResponse.model_validate(s) for s in services]


@router.post(
    "",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input", "model": ErrorResponse}},
    summary="Create a service",
)
async def create_service(
    payload: ServiceCreate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    service = await catalog.create_service(payload.model_dump())
    return ServiceResponse.model_validate(service)


@router.get("/{service_id}", response_model=ServiceResponse, responses=NOT_FOUND, summary="Get a service")
async def get_service(
    service_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    return ServiceResponse.model_validate(await catalog.get_service(service_id))


@router.patch(
    "/{service_id}",
    response_model=ServiceResponse,
    responses={**NOT_FOUND, 400: {"description": "Invalid input", "model": ErrorResponse}},
    summary="Update some fields of a service",
)
async def update_service(
    service_id: int,
    payload: ServiceUpdate,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    service = await catalog.update_service(service_id, payload.model_dump(exclude_unset=True))
    return ServiceResponse.model_validate(service)


@router.delete(
    "/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**NOT_FOUND, 400: {"description": "Service has bookings", "model": ErrorResponse}},
    summary="Delete a service without bookings",
)
async def delete_service(
    service_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
) -> Response:
    await catalog.delete_service(service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Gallery ───────────────────────────────────────────────────────────────


@router.post(
    "/{service_id}/images",
    response_model=ServiceResponse,
    responses={**NOT_FOUND, 400: {"description": "Bad file or gallery full", "model": ErrorResponse}},
    summary="Upload gallery images",
)
async def upload_images(
    service_id: int,
    files: List[UploadFile] = File(..., description="One or more PNG, JPEG or WebP images"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    uploads = []
    for upload in files:
        content = await upload.read()
        uploads.append((upload.filename or "", content, upload.size))
    service = await catalog.upload_images(service_id, uploads)
    return ServiceResponse.model_validate(service)


@router.put(
    "/{service_id}/images/order",
    response_model=ServiceResponse,
    responses={**NOT_FOUND, 400: {"description": "Not a reordering of the gallery", "model": ErrorResponse}},
    summary="Reorder the gallery",
)
async def reorder_images(
    service_id: int,
    payload: ImageOrderRequest,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    service = await catalog.reorder_images(service_id, payload.images)
    return ServiceResponse.model_validate(service)


@router.delete(
    "/{service_id}/images/{image_ref:path}",
    response_model=ServiceResponse,
    responses={404: {"description": "Unknown service or image", "model": ErrorResponse}},
    summary="Remove one gallery image",
)
async def remove_image(
    service_id: int,
    image_ref: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> ServiceResponse:
    service, _removed = await catalog.remove_image(service_id, image_ref)
    return ServiceResponse.model_validate(service)


@router.get(
    "/{service_id}/reviews",
    response_model=List[ReviewDetail],
    responses=NOT_FOUND,
    summary="Reviews of one service",
)
async def list_service_reviews(
    service_id: int,
    reviews: ReviewService = Depends(get_review_service),
) -> List[ReviewDetail]:
    rows = await reviews.list_reviews(service_id=service_id)
    return [ReviewDetail.model_validate(r) for r in rows]
