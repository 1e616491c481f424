"""
User Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List


class InviteUserRequest(BaseModel):
    """Invite request; validated by the endpoint so errors keep the callable shape"""
    email: Optional[str] = None
    role: Optional[str] = None


class InviteUserResponse(BaseModel):
    ok: bool = True
    uid: str
    role: str
    isNewUser: bool
    resetLink: Optional[str] = None
    message: str


class UpdateRoleRequest(BaseModel):
    userId: Optional[str] = None
    newRole: Optional[str] = None


class OkResponse(BaseModel):
    ok: bool = True
    message: str


class UserResponse(BaseModel):
    """User profile response schema"""
    id: str
    email: str
    role: str
    requirePasswordChange: bool = False


class UserListResponse(BaseModel):
    """List of users response"""
    users: List[UserResponse]
    total: int = Field(..., ge=0)
