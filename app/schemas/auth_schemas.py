"""Account session schemas"""
from pydantic import BaseModel
from typing import Optional
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    SUPER_USER = "super_user"
    ADMIN = "admin"
    USER = "user"


_ROLE_HIERARCHY = {
    UserRole.SUPER_USER: 3,
    UserRole.ADMIN: 2,
    UserRole.USER: 1,
}


class TokenData(BaseModel):
    """Claims read from an account session token"""
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None


class SessionUser(BaseModel):
    """Account holding a valid session, as established upstream"""
    id: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER

    def has_permission(self, required_role: UserRole) -> bool:
        """
        Check if user has required permission level
        Hierarchy: SUPER_USER > ADMIN > USER
        """
        return _ROLE_HIERARCHY.get(self.role, 0) >= _ROLE_HIERARCHY.get(required_role, 0)
