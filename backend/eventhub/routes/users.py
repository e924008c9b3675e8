"""
EventHub Backend — Account Routes
===================================

    POST /api/users           register (201, confirmation email sent)
    GET  /api/users           list accounts (public projection)
    GET  /api/confirm-email   confirm an address from the emailed link
    POST /api/login           exchange credentials for a bearer token
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from eventhub.dependencies import get_credential_service
from eventhub.schemas.common import ErrorResponse, MessageResponse
from eventhub.schemas.user import (
    LoginRequest,
    LoginResponse,
    RegisterResponse,
    UserCreate,
    UserResponse,
)
from eventhub.services.credential_service import CredentialService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


@router.post(
    "/users",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Register a new account",
)
async def register_user(
    payload: UserCreate,
    credentials: CredentialService = Depends(get_credential_service),
) -> RegisterResponse:
    user = await credentials.register(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    return RegisterResponse(user=UserResponse.model_validate(user))


@router.get("/users", response_model=List[UserResponse], summary="List registered users")
async def list_users(
    credentials: CredentialService = Depends(get_credential_service),
) -> List[UserResponse]:
    users = await credentials.list_users()
    return [UserResponse.model_validate(u) for u in users]


@router.get(
    "/confirm-email",
    response_model=MessageResponse,
    responses={400: {"description": "Missing or unknown token", "model": ErrorResponse}},
    summary="Confirm an email address",
)
async def confirm_email(
    token: str = Query(default="", description="Token from the confirmation email"),
    credentials: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    await credentials.confirm_email(token)
    return MessageResponse(message="Email confirmed successfully. You can now log in.")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Wrong email or password", "model": ErrorResponse},
        403: {"description": "Email not confirmed yet", "model": ErrorResponse},
    },
    summary="Log in and receive a bearer token",
)
async def login(
    payload: LoginRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> LoginResponse:
    user, token = await credentials.login(payload.email, payload.password)
    return LoginResponse(id=user.id, name=user.name, email=user.email, role=user.role, token=token)
