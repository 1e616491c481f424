"""
Common Dependencies for FastAPI Routes
"""
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from salesdash.config.permissions import FULL_ACCESS_ROLES
from salesdash.config.permissions import resolve_role as resolve_stored_role
from salesdash.database import get_db
from salesdash.schemas.settings import AppSettings
from salesdash.services.access_service import decide_access
from salesdash.services.gemini_client import gemini_client
from salesdash.services.identity_service import identity_service
from salesdash.services.settings_service import get_app_settings, settings_feed
from salesdash.services.user_service import get_profile_document

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: str
    role: str
    require_password_change: bool = False

    def is_admin(self) -> bool:
        return self.role in FULL_ACCESS_ROLES


def get_identity():
    return identity_service


def get_gemini():
    return gemini_client


def resolve_role(claims: dict, profile: Optional[dict]) -> str:
    """
    Role from the users document, else the custom claim, else the default.

    The claim only refreshes with the ID token, so a demoted user can still
    carry the old role in it.
    """
    return resolve_stored_role((profile or {}).get("role"), claims.get("role"))


def _user_from_token(token: str, db, identity) -> Optional[AuthUser]:
    claims = identity.verify_id_token(token)
    if not claims:
        return None
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        return None
    profile = get_profile_document(db, uid)
    return AuthUser(
        uid=uid,
        email=(claims.get("email") or (profile or {}).get("email") or "").lower(),
        role=resolve_role(claims, profile),
        require_password_change=bool((profile or {}).get("requirePasswordChange")),
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
    identity=Depends(get_identity),
) -> AuthUser:
    """
    Dependency to get the current authenticated user
    """
    user = _user_from_token(credentials.credentials, db, identity)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db=Depends(get_db),
    identity=Depends(get_identity),
) -> Optional[AuthUser]:
    """Caller for callable-style endpoints, which report ``unauthenticated`` themselves."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db, identity)


async def get_current_admin_user(
    current_user: AuthUser = Depends(get_current_user),
) -> AuthUser:
    """Require admin role"""
    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return current_user


async def get_app_settings_snapshot(db=Depends(get_db)) -> AppSettings:
    """Latest settings: the live feed when running, else a direct read."""
    feed = settings_feed.get()
    if feed is not None and feed.has_value:
        return feed.value
    return get_app_settings(db)


def require_page(path: str) -> Callable:
    """
    Dependency factory to require access to a dashboard page.
    Admin always passes.

    Usage:
        @router.get("/", dependencies=[Depends(require_page("/dashboard/vendas"))])
    """
    async def page_checker(
        current_user: AuthUser = Depends(get_current_user),
        app_settings: AppSettings = Depends(get_app_settings_snapshot),
    ) -> AuthUser:
        if not decide_access(current_user.role, path, app_settings):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied to {path}",
            )
        return current_user

    return page_checker
