"""
EventHub Backend — FastAPI Dependency Providers
=================================================

What:  Builds the per-request service objects and resolves the caller's
       identity from the Authorization header.
Why:   Services receive their collaborators (session, notifier, file store)
       through their constructors. Routes ask for a ready service here, and
       tests replace a single provider through `app.dependency_overrides`.

Lifetimes:
    get_db_session       one AsyncSession per request (commit / rollback)
    get_notifier         one Notifier per process, chosen from settings
    get_file_service     one FileService per process (storage root)
    *_service providers  rebuilt per request around that request's session
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.database import get_db_session
from eventhub.schemas.user import TokenClaims
from eventhub.services.availability_service import AvailabilityService
from eventhub.services.booking_service import BookingService
from eventhub.services.catalog_service import CatalogService
from eventhub.services.credential_service import CredentialService
from eventhub.services.file_service import FileService
from eventhub.services.notifier import Notifier, build_notifier
from eventhub.services.report_service import ReportService
from eventhub.services.review_service import ReviewService

# auto_error=False: a missing header must become our 401 envelope, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_notifier() -> Notifier:
    return build_notifier()


@lru_cache
def get_file_service() -> FileService:
    return FileService()


def get_availability_service(db: AsyncSession = Depends(get_db_session)) -> AvailabilityService:
    return AvailabilityService(db)


def get_booking_service(
    db: AsyncSession = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
) -> BookingService:
    return BookingService(db, AvailabilityService(db), notifier)


def get_credential_service(
    db: AsyncSession = Depends(get_db_session),
    notifier: Notifier = Depends(get_notifier),
) -> CredentialService:
    return CredentialService(db, notifier)


def get_catalog_service(
    db: AsyncSession = Depends(get_db_session),
    files: FileService = Depends(get_file_service),
) -> CatalogService:
    return CatalogService(db, files)


def get_review_service(db: AsyncSession = Depends(get_db_session)) -> ReviewService:
    return ReviewService(db)


def get_report_service(db: AsyncSession = Depends(get_db_session)) -> ReportService:
    return ReportService(db)


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    credential_service: CredentialService = Depends(get_credential_service),
) -> TokenClaims:
    """
    Identity of the caller, from `Authorization: Bearer <token>`.

    Raises:
        UnauthorizedError: no bearer token
        ForbiddenError: token invalid or expired
    """
    token = credentials.credentials if credentials else None
    return credential_service.authenticate(token)
