"""Profile settings used to personalize the caller's prompts."""

import logging

from fastapi import APIRouter, HTTPException, status

from concierge.controllers.dependencies import CurrentUserDep, ServicesDep
from concierge.views import ErrorResponse, UserSettings, UserSettingsResponse

router = APIRouter(prefix="/user", tags=["user"], responses={404: {"model": ErrorResponse}})

logger = logging.getLogger(__name__)


@router.post("/settings", response_model=UserSettingsResponse)
async def save_settings(
    payload: UserSettings,
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> UserSettingsResponse:
    """Partial update: omitted fields keep their stored value."""

    changes = payload.profile_changes()
    profile = await services.repository.update_user_profile(current_user.id, changes)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    logger.info("Saved settings %s for user=%s", sorted(changes), current_user.id)
    return UserSettingsResponse(data=UserSettings.from_profile(profile))


@router.get("/settings", response_model=UserSettings)
async def read_settings(current_user: CurrentUserDep, services: ServicesDep) -> UserSettings:
    profile = await services.repository.fetch_user_profile(current_user.id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserSettings.from_profile(profile)
