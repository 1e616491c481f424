"""
User Management API Routes

Invite, role change and sync follow the callable-function error contract
(``FunctionsError``); every check runs before any side effect.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from salesdash.config.permissions import ROLES
from salesdash.database import get_db
from salesdash.dependencies import AuthUser, get_current_admin_user, get_current_user, get_identity, get_optional_caller
from salesdash.errors import FunctionsError
from salesdash.schemas.user import (
    InviteUserRequest,
    InviteUserResponse,
    OkResponse,
    UpdateRoleRequest,
    UserListResponse,
    UserResponse,
)
from salesdash.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


def _require_admin_caller(caller: Optional[AuthUser], denied_message: str) -> AuthUser:
    """Admin by the resolved role (profile field first, then claim)."""
    if caller is None:
        raise FunctionsError("unauthenticated", "Usuário não autenticado")
    if caller.is_admin():
        return caller
    raise FunctionsError("permission-denied", denied_message)


@router.post("/invite", response_model=InviteUserResponse)
async def invite_user(
    data: InviteUserRequest,
    caller: Optional[AuthUser] = Depends(get_optional_caller),
    db=Depends(get_db),
    identity=Depends(get_identity),
):
    """Create (or fetch) the account, assign the role and return a password-reset link."""
    _require_admin_caller(caller, "Apenas administradores podem convidar usuários")

    email = (data.email or "").strip().lower()
    role = (data.role or "").strip()
    if not email or not role:
        raise FunctionsError("invalid-argument", "email e role são obrigatórios")
    if role not in ROLES:
        raise FunctionsError("invalid-argument", f"role inválida: {role}")

    try:
        uid, is_new_user = identity.get_or_create_user(email)
        identity.set_role_claim(uid, role)
        user_service.upsert_profile(
            db, uid, {"email": email, "role": role, "requirePasswordChange": True}, created=is_new_user,
        )
        reset_link = identity.password_reset_link(email)
    except Exception as exc:
        logger.exception("Invite for %s failed", email)
        raise FunctionsError("internal", str(exc) or "Falha ao convidar") from exc

    logger.info("User %s invited %s as %s (new=%s)", caller.uid, email, role, is_new_user)
    return InviteUserResponse(
        uid=uid,
        role=role,
        isNewUser=is_new_user,
        resetLink=reset_link,
        message="Usuário criado. Envie o link para definir a senha." if is_new_user
        else "Usuário já existe, role atualizada",
    )


@router.post("/role", response_model=OkResponse)
async def update_user_role(
    data: UpdateRoleRequest,
    caller: Optional[AuthUser] = Depends(get_optional_caller),
    db=Depends(get_db),
    identity=Depends(get_identity),
):
    """Change a user's role. Promotions to or from admin need an admin caller."""
    if not data.userId or not data.newRole:
        raise FunctionsError("invalid-argument", "userId e newRole são obrigatórios")
    if data.newRole not in ROLES:
        raise FunctionsError("invalid-argument", f"role inválida: {data.newRole}")
    if caller is None:
        raise FunctionsError("unauthenticated", "Usuário não autenticado")

    target = user_service.get_profile_document(db, data.userId)
    if target is None:
        raise FunctionsError("not-found", "Usuário não encontrado")

    if data.newRole == "admin" or target.get("role") == "admin":
        message = "Apenas administradores podem alterar funções de/para Admin"
    else:
        message = "Apenas administradores podem alterar funções"
    _require_admin_caller(caller, message)

    try:
        identity.set_role_claim(data.userId, data.newRole)
        user_service.upsert_profile(db, data.userId, {"role": data.newRole})
    except Exception as exc:
        logger.exception("Role update for %s failed", data.userId)
        raise FunctionsError("internal", str(exc) or "Falha ao atualizar role") from exc

    logger.info("User %s set role of %s to %s", caller.uid, data.userId, data.newRole)
    return OkResponse(message="Role atualizada com sucesso")


@router.post("/sync", response_model=OkResponse)
async def sync_auth_users(
    caller: Optional[AuthUser] = Depends(get_optional_caller),
    db=Depends(get_db),
    identity=Depends(get_identity),
):
    """Create default profiles for accounts that have none."""
    _require_admin_caller(caller, "Apenas administradores podem sincronizar usuários")

    try:
        synced = sum(1 for uid, email in identity.iter_users() if user_service.ensure_profile(db, uid, email))
    except Exception as exc:
        logger.exception("User sync failed")
        raise FunctionsError("internal", str(exc) or "Falha ao sincronizar") from exc

    return OkResponse(message=f"{synced} usuário(s) sincronizado(s) do Auth para o Firestore.")


@router.get("", response_model=UserListResponse)
async def list_users(
    current_user: AuthUser = Depends(get_current_admin_user),
    db=Depends(get_db),
):
    """List all user profiles."""
    users = user_service.list_profiles(db)
    return UserListResponse(users=[UserResponse(**u) for u in users], total=len(users))


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: AuthUser = Depends(get_current_user)):
    """Get the current user's profile."""
    return UserResponse(
        id=current_user.uid,
        email=current_user.email,
        role=current_user.role,
        requirePasswordChange=current_user.require_password_change,
    )


@router.post("/me/password-changed", response_model=OkResponse)
async def password_changed(
    current_user: AuthUser = Depends(get_current_user),
    db=Depends(get_db),
):
    """Clear the forced password change once the user has set a new one."""
    user_service.upsert_profile(db, current_user.uid, {"requirePasswordChange": False})
    return OkResponse(message="Senha atualizada")
