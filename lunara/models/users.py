"""Pydantic models for user profile, app settings and account management."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import EmailStr, Field

from lunara.models.base import LunaraBase


# ---------- Profile ----------

class UserProfileUpdate(LunaraBase):
    """Additional profile data beyond what the identity provider holds.

    Only these fields are accepted; anything else in the body is dropped.
    """

    display_name: str | None = Field(default=None, max_length=100)
    birth_date: date | None = None
    weight: Decimal | None = Field(default=None, gt=0, le=500)  # kg
    height: Decimal | None = Field(default=None, gt=0, le=300)  # cm
    time_zone: str | None = None
    language: str | None = None
    notifications_enabled: bool | None = None
    privacy_settings: dict[str, Any] | None = None
    health_goals: list[str] | None = None
    cycle_length_average: int | None = Field(default=None, ge=21, le=35)
    period_length_average: int | None = Field(default=None, ge=2, le=8)


class UserProfileRead(LunaraBase):
    uid: str
    email: str | None = None
    email_verified: bool = False
    profile: dict[str, Any] | None = None


# ---------- Settings ----------

class NotificationSettings(LunaraBase):
    period_reminders: bool = True
    ovulation_reminders: bool = True
    medication_reminders: bool = True
    health_insights: bool = True


class PrivacySettings(LunaraBase):
    data_sharing: bool = False
    analytics: bool = True
    crash_reports: bool = True


class PreferenceSettings(LunaraBase):
    theme: str = "light"
    language: str = "en"
    units: str = "metric"
    first_day_of_week: str = "monday"


class UserSettings(LunaraBase):
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)
    preferences: PreferenceSettings = Field(default_factory=PreferenceSettings)


class NotificationSettingsUpdate(LunaraBase):
    period_reminders: bool | None = None
    ovulation_reminders: bool | None = None
    medication_reminders: bool | None = None
    health_insights: bool | None = None


class PrivacySettingsUpdate(LunaraBase):
    data_sharing: bool | None = None
    analytics: bool | None = None
    crash_reports: bool | None = None


class PreferenceSettingsUpdate(LunaraBase):
    theme: str | None = None
    language: str | None = None
    units: str | None = None
    first_day_of_week: str | None = None


class UserSettingsUpdate(LunaraBase):
    """Partial settings: only the keys the client sends are changed."""

    notifications: NotificationSettingsUpdate | None = None
    privacy: PrivacySettingsUpdate | None = None
    preferences: PreferenceSettingsUpdate | None = None

    def changes(self) -> dict[str, dict[str, Any]]:
        """``{group: {key: value}}`` for the keys actually sent."""
        return {
            group: values
            for group, values in self.model_dump(
                mode="json", exclude_unset=True, exclude_none=True
            ).items()
            if values
        }


# ---------- Account ----------

class AccountDeletionRequest(LunaraBase):
    confirm_email: EmailStr
