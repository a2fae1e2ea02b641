"""
User API Routes
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from api.auth.service import get_current_user
from api.models.user import UserPreferences, UserPreferencesUpdate
from inbox_actions.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["User"])


def _preferences(user: Dict[str, Any]) -> UserPreferences:
    return UserPreferences(
        sync_enabled=user["sync_enabled"],
        email_notifications=user["email_notifications"],
        email_provider=user.get("email_provider"),
        last_sync=user.get("last_sync"),
    )


@router.get("/preferences", response_model=UserPreferences)
async def get_preferences(user: Dict[str, Any] = Depends(get_current_user)):
    return _preferences(user)


@router.put("/preferences", response_model=UserPreferences)
async def update_preferences(
    request: UserPreferencesUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
):
    updated = await UserRepository.update_preferences(
        user["id"],
        sync_enabled=request.sync_enabled,
        email_notifications=request.email_notifications,
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    logger.info(f"Preferences updated for user {user['id']}")
    return _preferences(updated)
