# domain_agent/auth/router.py
"""
Auth API
Endpoints:
- POST /auth/register
- POST /auth/login
- POST /auth/logout
- GET  /auth/me
- PUT  /auth/profile
- POST /auth/forgot-password
- POST /auth/reset-password
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_async_db
from ..dependencies import get_notifier
from ..notifications.service import Notifier
from ..rate_limit import auth_limit
from ..responses import success_response
from ..users.schemas import ProfileUpdate, UserOut
from ..users.service import UserService
from . import schemas
from .dependencies import CurrentUser
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
) -> AuthService:
    return AuthService(db, notifier)


@router.post("/register", status_code=status.HTTP_201_CREATED)
@auth_limit
async def register(
    request: Request,
    body: schemas.RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    user, token = await service.register(body.name, body.email, body.password)
    return success_response(
        schemas.AuthResult(user=UserOut.model_validate(user), token=token),
        message="User registered successfully",
    )


@router.post("/login")
@auth_limit
async def login(
    request: Request,
    body: schemas.LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    user, token = await service.login(body.email, body.password)
    return success_response(
        schemas.AuthResult(user=UserOut.model_validate(user), token=token),
        message="Login successful",
    )


@router.post("/logout")
async def logout():
    """Tokens are stateless; the client discards its copy"""
    return success_response(message="Logged out successfully")


@router.get("/me")
async def get_me(user: CurrentUser):
    return success_response({"user": UserOut.model_validate(user)})


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_async_db),
):
    updated = await UserService(db).update_profile(user, body)
    return success_response(
        {"user": UserOut.model_validate(updated)},
        message="Profile updated successfully",
    )


@router.post("/forgot-password")
async def forgot_password(
    body: schemas.ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.forgot_password(body.email)
    return success_response(message="Password reset email sent")


@router.post("/reset-password")
async def reset_password(
    body: schemas.ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    token = await service.reset_password(body.token, body.password)
    return success_response(schemas.TokenOut(token=token), message="Password reset successful")
