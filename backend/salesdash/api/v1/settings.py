"""
App Settings API: permission table and inactive pages
"""
from fastapi import APIRouter, Depends

from salesdash.config.permissions import ALL_PAGES, ROLES
from salesdash.database import get_db
from salesdash.dependencies import AuthUser, get_app_settings_snapshot, get_current_admin_user, get_current_user
from salesdash.schemas.settings import AppSettings, AppSettingsUpdate
from salesdash.services.settings_service import save_app_settings

router = APIRouter(tags=["settings"])


@router.get("", response_model=AppSettings)
async def read_settings(
    current_user: AuthUser = Depends(get_current_user),
    app_settings: AppSettings = Depends(get_app_settings_snapshot),
):
    """Current permission table and inactive pages."""
    return app_settings


@router.put("", response_model=AppSettings)
async def update_settings(
    data: AppSettingsUpdate,
    current_user: AuthUser = Depends(get_current_admin_user),
    db=Depends(get_db),
):
    """Merge-upsert the settings document. Admin only."""
    return save_app_settings(db, data)


@router.get("/catalog")
async def permission_catalog(current_user: AuthUser = Depends(get_current_user)):
    """Known pages and roles, for the permission editor."""
    return {
        "pages": ALL_PAGES,
        "roles": [{"key": key, "name": info["label"]} for key, info in ROLES.items()],
    }
