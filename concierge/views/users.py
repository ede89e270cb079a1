"""Pydantic schemas for the user settings endpoint."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from concierge.domain.models import UserProfile


class UserSettings(BaseModel):
    city: Optional[str] = Field(default=None, max_length=120)
    postalCode: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=120)

    def profile_changes(self) -> dict[str, Optional[str]]:
        """Only the fields the client sent, keyed by profile column."""
        sent = self.model_dump(exclude_unset=True)
        if "postalCode" in sent:
            sent["postal_code"] = sent.pop("postalCode")
        return sent

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserSettings":
        return cls(city=profile.city, postalCode=profile.postal_code, country=profile.country)


class UserSettingsResponse(BaseModel):
    message: str = "Settings saved"
    data: UserSettings


__all__ = ["UserSettings", "UserSettingsResponse"]
