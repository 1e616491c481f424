"""Schemas for the app settings document and access decisions."""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from salesdash.config.permissions import DEFAULT_PAGE_PERMISSIONS, ROLES


class AppSettings(BaseModel):
    """Singleton settings document: permission table override and inactive pages."""
    model_config = ConfigDict(populate_by_name=True)

    permissions: Dict[str, List[str]] = Field(
        default_factory=lambda: {path: list(roles) for path, roles in DEFAULT_PAGE_PERMISSIONS.items()}
    )
    inactive_pages: List[str] = Field(default_factory=list, alias="inactivePages")

    @classmethod
    def from_document(cls, data: Optional[dict]) -> "AppSettings":
        if not data:
            return cls()
        return cls.model_validate(data)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class AppSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    permissions: Optional[Dict[str, List[str]]] = None
    inactive_pages: Optional[List[str]] = Field(None, alias="inactivePages")

    @field_validator("permissions")
    @classmethod
    def _known_roles(cls, value):
        if value is None:
            return value
        for path, roles in value.items():
            unknown = [r for r in roles if r not in ROLES]
            if unknown:
                raise ValueError(f"Unknown roles for {path}: {', '.join(unknown)}")
            if not path.startswith("/"):
                raise ValueError(f"Page path must start with '/': {path}")
        return value


class AccessDecisionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    state: str
    path: str
    role: Optional[str] = None
    allowed: bool
    redirect_to: Optional[str] = Field(None, alias="redirectTo")
