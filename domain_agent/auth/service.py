# domain_agent/auth/service.py
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..error_handlers import (
    AppException,
    BusinessRuleException,
    ErrorCode,
    NotFoundException,
    UnauthorizedException,
)
from ..logging_config import get_logger, log_business_event
from ..notifications.email import EmailDeliveryError
from ..notifications.service import Notifier
from ..users.models import User, default_preferences
from . import security

logger = get_logger(__name__)


class AuthService:
    """Registration, login and password-reset lifecycle"""

    def __init__(self, db: AsyncSession, notifier: Notifier):
        self.db = db
        self.notifier = notifier

    async def get_by_email(self, email: str) -> Optional[User]:
        return await self.db.scalar(select(User).where(User.email == email.lower()))

    async def register(self, name: str, email: str, password: str) -> tuple[User, str]:
        email = email.lower()
        if await self.get_by_email(email):
            raise BusinessRuleException(
                "User already exists with this email",
                error_code=ErrorCode.USER_EXISTS,
            )

        user = User(
            name=name,
            email=email,
            password_hash=security.hash_password(password),
            profile={},
            preferences=default_preferences(),
            is_active=True,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise BusinessRuleException(
                "User already exists with this email",
                error_code=ErrorCode.USER_EXISTS,
            )

        log_business_event("user_registered", user_id=str(user.id), email=email)

        self.notifier.dispatch(
            self.notifier.send_welcome(user.email, user.name),
            label=f"welcome:{user.id}",
        )
        return user, security.create_access_token(str(user.id))

    async def login(self, email: str, password: str) -> tuple[User, str]:
        user = await self.get_by_email(email)
        if user is None or not security.verify_password(password, user.password_hash):
            raise UnauthorizedException("Invalid credentials")
        if not user.is_active:
            raise UnauthorizedException("Account is deactivated")

        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()

        log_business_event("user_login", user_id=str(user.id))
        return user, security.create_access_token(str(user.id))

    async def forgot_password(self, email: str):
        user = await self.get_by_email(email)
        if user is None:
            raise NotFoundException("There is no user with that email", resource="user")

        raw_token, token_hash, expires_at = security.generate_reset_token()
        user.reset_password_token = token_hash
        user.reset_password_expires = expires_at
        await self.db.commit()

        try:
            await self.notifier.send_password_reset(user.email, user.name, raw_token)
        except EmailDeliveryError:
            # A token the user never received must not stay usable
            user.reset_password_token = None
            user.reset_password_expires = None
            await self.db.commit()
            raise AppException(
                message="Email could not be sent. Please try again later.",
                error_code=ErrorCode.EMAIL_DELIVERY_FAILED,
                status_code=500,
            )

        log_business_event("password_reset_requested", user_id=str(user.id))

    async def reset_password(self, raw_token: str, new_password: str) -> str:
        now = datetime.now(timezone.utc)
        user = await self.db.scalar(
            select(User).where(
                User.reset_password_token == security.hash_reset_token(raw_token),
                User.reset_password_expires > now,
            )
        )
        if user is None:
            raise BusinessRuleException(
                "Invalid or expired reset token",
                error_code=ErrorCode.INVALID_RESET_TOKEN,
            )

        user.password_hash = security.hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None
        await self.db.commit()

        log_business_event("password_reset_completed", user_id=str(user.id))
        return security.create_access_token(str(user.id))
