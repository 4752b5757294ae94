# domain_agent/users/router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUser
from ..database import get_async_db
from ..responses import success_response
from .schemas import AccountDelete, PreferencesUpdate, ProfileUpdate, UserOut
from .service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(db: AsyncSession = Depends(get_async_db)) -> UserService:
    return UserService(db)


@router.get("/profile")
async def get_profile(user: CurrentUser, service: UserService = Depends(get_user_service)):
    """Profile plus how many domains and transactions the user has"""
    return success_response(await service.get_profile(user))


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: CurrentUser,
    service: UserService = Depends(get_user_service),
):
    updated = await service.update_profile(user, body)
    return success_response(
        {"user": UserOut.model_validate(updated)},
        message="Profile updated successfully",
    )


@router.delete("/account")
async def delete_account(
    body: AccountDelete,
    user: CurrentUser,
    service: UserService = Depends(get_user_service),
):
    await service.delete_account(user, body.confirm_delete)
    return success_response(message="Account deleted successfully")


@router.get("/stats")
async def get_stats(user: CurrentUser, service: UserService = Depends(get_user_service)):
    return success_response(await service.get_stats(user))


@router.put("/preferences")
async def update_preferences(
    body: PreferencesUpdate,
    user: CurrentUser,
    service: UserService = Depends(get_user_service),
):
    updated = await service.update_preferences(user, body)
    return success_response(
        {"preferences": updated.preferences},
        message="Preferences updated successfully",
    )
