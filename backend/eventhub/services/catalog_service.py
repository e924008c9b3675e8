"""
EventHub Backend — Catalog Service
====================================

What:  CRUD for bookable services and management of their image galleries.
Who:   /api/services routes.

Gallery rules:
    - At most `max_images` entries (GALLERY_MAX_IMAGES, default 4).
    - New uploads are appended at the tail, in upload order.
    - The cover `image` is set from the gallery when it is empty, and moved
      to the next entry when the cover itself is removed.
    - Reordering must present exactly the current entries (same URLs, same
      multiplicity); it can never add, drop or duplicate an image.
    - Locally stored files are deleted from disk once they leave the gallery.

Deletion:
    A service that has ever been booked (any status) is kept: the bookings
    reference it for revenue and history.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.config import settings
from eventhub.exceptions import DatabaseError, EventHubError, NotFoundError, ValidationError
from eventhub.models import Booking, Review, Service
from eventhub.services.file_service import FileService

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "category", "description")
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "category",
        "description",
        "price",
        "rating",
        "review_count",
        "location",
        "duration",
        "capacity",
        "featured",
        "image",
        "images",
    }
)

# (original filename, content bytes, reported size)
Upload = Tuple[str, bytes, Optional[int]]


class CatalogService:
    def __init__(
        self,
        db: AsyncSession,
        files: Optional[FileService] = None,
        max_images: Optional[int] = None,
    ):
        self.db = db
        self.files = files
        self.max_images = max_images or settings.gallery_max_images

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_services(
        self,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> List[Service]:
        query = select(Service).order_by(Service.id)
        if category:
            query = query.where(Service.category == category)
        if featured is not None:
            query = query.where(Service.featured.is_(featured))
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to list services: %s", e)
            raise DatabaseError()
        return list(result.scalars().all())

    async def get_service(self, service_id: int) -> Service:
        try:
            service = await self.db.get(Service, service_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load service %d: %s", service_id, e)
            raise DatabaseError(context={"service_id": service_id})
        if service is None:
            raise NotFoundError(resource="Service", resource_id=str(service_id))
        return service

    async def count_bookings(self, service_id: int) -> int:
        try:
            result = await self.db.execute(
                select(func.count(Booking.id)).where(Booking.service_id == service_id)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to count bookings for service %d: %s", service_id, e)
            raise DatabaseError(context={"service_id": service_id})
        return int(result.scalar_one())

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create_service(self, fields: Mapping[str, Any]) -> Service:
        """
        Insert a service from a field mapping (snake_case keys).

        Raises:
            ValidationError: a required field is blank, gallery over capacity
        """
        for name in REQUIRED_FIELDS:
            if not str(fields.get(name) or "").strip():
                raise ValidationError(message=f"{name} is required", field=name)

        values = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        images = list(values.pop("images", []) or [])
        self._check_capacity(len(images))

        service = Service(**values, images=images)
        if not service.image and images:
            service.image = images[0]

        self.db.add(service)
        await self._flush("create service")
        logger.info("Service %d created: %s", service.id, service.name)
        return service

    async def update_service(self, service_id: int, fields: Mapping[str, Any]) -> Service:
        """Apply only the supplied fields; everything else keeps its value."""
        service = await self.get_service(service_id)
        changes: Dict[str, Any] = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}

        for name in REQUIRED_FIELDS:
            if name in changes and not str(changes[name] or "").strip():
                raise ValidationError(message=f"{name} cannot be empty", field=name)

        if "images" in changes:
            images = list(changes.pop("images") or [])
            self._check_capacity(len(images))
            service.images = images

        for name, value in changes.items():
            if value is None:
                continue
            setattr(service, name, value)

        await self._flush("update service")
        logger.info("Service %d updated (%s)", service_id, ", ".join(sorted(fields)) or "no fields")
        return service

    async def delete_service(self, service_id: int) -> None:
        """
        Raises:
            NotFoundError: unknown service
            ValidationError: the service has bookings
        """
        service = await self.get_service(service_id)
        booking_count = await self.count_bookings(service_id)
        if booking_count:
            raise ValidationError(
                message="Cannot delete a service that has bookings",
                field="serviceId",
                context={"service_id": service_id, "booking_count": booking_count},
            )

        stored_images = list(service.images or [])
        try:
            await self.db.execute(delete(Review).where(Review.service_id == service_id))
            await self.db.delete(service)
        except SQLAlchemyError as e:
            logger.error("Failed to delete service %d: %s", service_id, e, exc_info=True)
            raise DatabaseError(context={"service_id": service_id})
        await self._flush("delete service")
        logger.info("Service %d deleted", service_id)

        if self.files is not None:
            for url in stored_images:
                await self.files.cleanup_url(url)

    # ── Gallery ───────────────────────────────────────────────────────────

    async def add_images(self, service_id: int, urls: Sequence[str]) -> Service:
        """Append image URLs to the gallery tail."""
        service = await self.get_service(service_id)
        current = list(service.images or [])
        self._check_capacity(len(current) + len(urls), current=len(current))

        service.images = current + list(urls)
        if not service.image and service.images:
            service.image = service.images[0]
        await self._flush("add images")
        return service

    async def upload_images(self, service_id: int, uploads: Sequence[Upload]) -> Service:
        """
        Validate and store uploaded files, then append their URLs.

        Capacity is checked before anything is written. Files already stored
        are removed again if a later step fails.
        """
        if self.files is None:
            raise RuntimeError("CatalogService needs a FileService to accept uploads")
        if not uploads:
            raise ValidationError(message="No files were uploaded", field="files")

        service = await self.get_service(service_id)
        current = len(service.images or [])
        self._check_capacity(current + len(uploads), current=current)

        stored: List[str] = []
        try:
            for filename, content, size in uploads:
                url = await self.files.validate_and_store(
                    filename, content, size, subdir=f"services/{service_id}"
                )
                stored.append(url)
            return await self.add_images(service_id, stored)
        except EventHubError:
            for url in stored:
                await self.files.cleanup_url(url)
            raise

    async def remove_image(self, service_id: int, ref: str) -> Tuple[Service, str]:
        """
        Remove the first gallery entry matching `ref` (full URL or file name).

        Returns:
            (service, removed_url)

        Raises:
            NotFoundError: no entry matches
        """
        service = await self.get_service(service_id)
        images = list(service.images or [])

        index = next(
            (i for i, url in enumerate(images) if url == ref or url.rsplit("/", 1)[-1] == ref),
            None,
        )
        if index is None:
            raise NotFoundError(resource="Image", resource_id=ref, context={"service_id": service_id})

        removed = images.pop(index)
        service.images = images
        if service.image == removed:
            service.image = images[0] if images else ""
        await self._flush("remove image")
        logger.info("Removed image %s from service %d", removed, service_id)

        if self.files is not None and removed not in images:
            await self.files.cleanup_url(removed)
        return service, removed

    async def reorder_images(self, service_id: int, ordered: Sequence[str]) -> Service:
        """
        Replace the gallery order.

        Raises:
            ValidationError: `ordered` is not a permutation of the current gallery
        """
        service = await self.get_service(service_id)
        current = list(service.images or [])
        ordered = list(ordered or [])

        if Counter(ordered) != Counter(current):
            raise ValidationError(
                message="New order must contain exactly the current gallery images",
                field="images",
                context={"current": current, "received": ordered},
            )

        service.images = ordered
        await self._flush("reorder images")
        return service

    # ── Internals ─────────────────────────────────────────────────────────

    def _check_capacity(self, total: int, current: Optional[int] = None) -> None:
        if total > self.max_images:
            context: Dict[str, Any] = {"max_images": self.max_images, "requested_total": total}
            if current is not None:
                context["current"] = current
            raise ValidationError(
                message=f"A service can have at most {self.max_images} images",
                field="images",
                context=context,
            )

    async def _flush(self, action: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to %s: %s", action, e, exc_info=True)
            raise DatabaseError()
