"""User profile, settings, dashboard and account management endpoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from lunara.auth.identity import Principal
from lunara.dependencies import CurrentUser, Repos
from lunara.errors import ValidationError
from lunara.models.base import success_response
from lunara.models.users import (
    AccountDeletionRequest,
    UserProfileRead,
    UserProfileUpdate,
    UserSettings,
    UserSettingsUpdate,
)
from lunara.services.summary import export_data, latest_data, record_counts

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger("lunara.users")


def _user_info(user: Principal) -> dict[str, Any]:
    return {
        "uid": user.principal_id,
        "email": user.email,
        "email_verified": user.email_verified,
    }


def _account_created(user: Principal) -> str | None:
    auth_time = user.claims.get("auth_time")
    if not isinstance(auth_time, (int, float)):
        return None
    return datetime.fromtimestamp(auth_time, tz=timezone.utc).isoformat()


# ---------- Profile ----------

@router.get("/profile")
async def get_profile(user: CurrentUser, repos: Repos) -> Any:
    """Identity details from the verified token plus any stored profile data."""
    profile = await repos.profiles.get(user)
    result = UserProfileRead(**_user_info(user), profile=profile)
    return success_response(
        result.model_dump(mode="json"), "User profile retrieved successfully"
    )


@router.put("/profile")
async def update_profile(user: CurrentUser, repos: Repos, body: UserProfileUpdate) -> Any:
    updates = body.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")
    profile = await repos.profiles.merge(user, updates)
    return success_response(profile, "User profile updated successfully")


# ---------- Settings ----------

@router.get("/settings")
async def get_user_settings(user: CurrentUser, repos: Repos) -> Any:
    stored = await repos.settings.get(user) or {}
    # stored sections override the defaults field by field
    settings = UserSettings.model_validate(stored)
    return success_response(
        settings.model_dump(mode="json"), "User settings retrieved successfully"
    )


@router.put("/settings")
async def update_user_settings(
    user: CurrentUser, repos: Repos, body: UserSettingsUpdate
) -> Any:
    changes = body.changes()
    if not changes:
        raise ValidationError("No fields to update")
    current = await repos.settings.get(user) or {}
    # each group is merged key by key over what is stored
    updates = {
        group: {**(current.get(group) or {}), **values}
        for group, values in changes.items()
    }
    stored = await repos.settings.merge(user, updates)
    settings = UserSettings.model_validate(stored)
    return success_response(
        settings.model_dump(mode="json"), "User settings updated successfully"
    )


# ---------- Dashboard & export ----------

@router.get("/dashboard")
async def get_dashboard(user: CurrentUser, repos: Repos) -> Any:
    latest, counts = await asyncio.gather(
        latest_data(repos, user), record_counts(repos, user)
    )
    return success_response(
        {
            **latest.as_dict(),
            "user": _user_info(user),
            "statistics": {**counts, "account_created": _account_created(user)},
        },
        "Dashboard data retrieved successfully",
    )


@router.get("/data-summary")
async def get_data_summary(user: CurrentUser, repos: Repos) -> Any:
    """Everything stored for the caller, for export / backup."""
    export = await export_data(repos, user)
    return success_response(
        {"user": _user_info(user), **export},
        "User data summary retrieved successfully",
    )


# ---------- Account ----------

@router.delete("/account")
async def delete_account(
    user: CurrentUser, repos: Repos, body: AccountDeletionRequest
) -> Any:
    """Delete every record the caller owns.

    The identity provider account itself is left for the client to remove.
    """
    if not user.email or body.confirm_email.lower() != user.email.lower():
        raise ValidationError("Email confirmation required for account deletion")

    deleted = await repos.purge_owner(user)
    logger.info("Deleted %d records for %s", deleted, user.principal_id)
    return success_response(
        None,
        "All user data deleted successfully. "
        "Please delete your Firebase Auth account from the app.",
    )
