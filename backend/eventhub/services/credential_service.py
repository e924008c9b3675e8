"""
EventHub Backend — Credential Service
=======================================

What:  Registration, email confirmation, login and bearer-token verification.
Why:   Everything that touches passwords or tokens lives here, so the hashing
       scheme and the token claims are defined exactly once.
How:   Passwords are hashed with passlib (pbkdf2_sha256, salted, never
       stored in plain text). Tokens are HS256 JWTs signed with JWT_SECRET
       via python-jose, valid for ACCESS_TOKEN_EXPIRE_DAYS.
Who:   /api/users, /api/confirm-email, /api/login, and the
       get_current_claims dependency guarding protected routes.

Account lifecycle:
    register ──▶ unconfirmed (token emailed) ──confirm──▶ confirmed ──▶ login OK

Error mapping:
    no token                         → UnauthorizedError (401)
    bad signature / expired token    → ForbiddenError    (403)
    unknown email / wrong password   → UnauthorizedError (401)
    correct password, unconfirmed    → ForbiddenError    (403)
    email already registered         → ConflictError     (409)
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.config import Settings, settings as default_settings
from eventhub.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from eventhub.models import User
from eventhub.models.user import ROLE_USER, ROLES
from eventhub.schemas.user import TokenClaims
from eventhub.services.notifier import Notifier

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


class CredentialService:
    """
    Account and token operations.

    `authenticate` needs only the configuration; the other methods use the
    request's database session and the injected notifier.
    """

    def __init__(self, db: AsyncSession, notifier: Notifier, config: Optional[Settings] = None):
        self.db = db
        self.notifier = notifier
        self.config = config or default_settings

    # ── Registration ──────────────────────────────────────────────────────

    async def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> User:
        """
        Create an unconfirmed account and email its confirmation link.

        The email is stored lowercased. A failed confirmation email is logged
        and does not undo the registration.

        Raises:
            ValidationError: blank name or password, unknown role
            ConflictError: email already registered
        """
        name = (name or "").strip()
        email = (email or "").strip().lower()
        if not name:
            raise ValidationError(message="Name is required", field="name")
        if not email:
            raise ValidationError(message="Email is required", field="email")
        if not password:
            raise ValidationError(message="Password is required", field="password")
        role = role or ROLE_USER
        if role not in ROLES:
            raise ValidationError(
                message=f"Role must be one of: {', '.join(ROLES)}",
                field="role",
                context={"value": role},
            )

        existing = await self._find_by_email(email)
        if existing is not None:
            raise ConflictError(message="Email already registered", context={"email": email})

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            email_confirmed=False,
            email_confirm_token=secrets.token_urlsafe(32),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Concurrent registration with the same address
            await self.db.rollback()
            raise ConflictError(message="Email already registered", context={"email": email})
        except SQLAlchemyError as e:
            logger.error("Failed to register %s: %s", email, e, exc_info=True)
            raise DatabaseError()

        logger.info("User %d registered (%s)", user.id, email)
        await self._send_confirmation(user)
        return user

    def confirmation_url(self, token: str) -> str:
        return f"{self.config.public_base_url.rstrip('/')}/api/confirm-email?token={token}"

    async def _send_confirmation(self, user: User) -> None:
        try:
            await self.notifier.send_email_confirmation(
                email=user.email,
                name=user.name,
                confirm_url=self.confirmation_url(user.email_confirm_token),
            )
        except Exception as e:
            logger.warning("User %d registered but confirmation email failed: %s", user.id, e)

    async def confirm_email(self, token: Optional[str]) -> User:
        """
        Mark the account holding `token` as confirmed and burn the token.

        Raises:
            ValidationError: token missing, unknown, or already used
        """
        if not token:
            raise ValidationError(message="Confirmation token is required", field="token")

        try:
            result = await self.db.execute(select(User).where(User.email_confirm_token == token))
        except SQLAlchemyError as e:
            logger.error("Confirmation lookup failed: %s", e)
            raise DatabaseError()

        user = result.scalar_one_or_none()
        if user is None:
            raise ValidationError(message="Invalid or expired confirmation token", field="token")

        user.email_confirmed = True
        user.email_confirm_token = None
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to confirm user %d: %s", user.id, e)
            raise DatabaseError(context={"user_id": user.id})
        logger.info("User %d confirmed their email", user.id)
        return user

    # ── Login & tokens ────────────────────────────────────────────────────

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Check credentials and issue a bearer token.

        Returns:
            (user, token)
        """
        user = await self._find_by_email((email or "").strip().lower())
        if user is None or not verify_password(password or "", user.password_hash):
            raise UnauthorizedError(message="Invalid email or password")
        if not user.email_confirmed:
            raise ForbiddenError(message="Please confirm your email before logging in")

        token = self.create_access_token(user)
        logger.info("User %d logged in", user.id)
        return user, token

    def create_access_token(self, user: User) -> str:
        expires = datetime.now(timezone.utc) + timedelta(days=self.config.access_token_expire_days)
        claims = {
            "sub": str(user.id),
            "userId": user.id,
            "email": user.email,
            "role": user.role,
            "exp": expires,
        }
        return jwt.encode(claims, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)

    def authenticate(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a bearer token's signature and expiry.

        Raises:
            UnauthorizedError: no token supplied
            ForbiddenError: bad signature, malformed, or expired
        """
        if not token:
            raise UnauthorizedError(message="Authentication required")

        try:
            payload = jwt.decode(token, self.config.jwt_secret, algorithms=[self.config.jwt_algorithm])
        except ExpiredSignatureError:
            raise ForbiddenError(message="Token has expired")
        except JWTError as e:
            logger.info("Rejected bearer token: %s", e)
            raise ForbiddenError(message="Invalid token")

        try:
            return TokenClaims(
                user_id=payload["userId"],
                email=payload["email"],
                role=payload["role"],
            )
        except (KeyError, PydanticValidationError):
            raise ForbiddenError(message="Invalid token")

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_users(self) -> List[User]:
        try:
            result = await self.db.execute(select(User).order_by(User.id))
        except SQLAlchemyError as e:
            logger.error("Failed to list users: %s", e)
            raise DatabaseError()
        return list(result.scalars().all())

    async def get_user(self, user_id: int) -> User:
        try:
            user = await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load user %d: %s", user_id, e)
            raise DatabaseError(context={"user_id": user_id})
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return user

    async def _find_by_email(self, email: str) -> Optional[User]:
        try:
            result = await self.db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("User lookup failed: %s", e)
            raise DatabaseError()
        return result.scalar_one_or_none()
