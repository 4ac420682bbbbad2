"""Authentication dependencies"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing import Optional

from app.services.auth_service import decode_access_token
from app.schemas.auth_schemas import SessionUser, UserRole
from app.errors.exceptions import UnauthorizedException, ForbiddenException

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionUser:
    """Get the account behind the bearer token or reject the request"""
    token = credentials.credentials if credentials else None
    token_data = decode_access_token(token)

    if token_data is None or token_data.user_id is None:
        raise UnauthorizedException(detail="Could not validate credentials")

    return SessionUser(id=token_data.user_id, email=token_data.email, role=token_data.role)


def require_role(required_role: UserRole):
    """Dependency to require a specific role or higher"""
    async def role_checker(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if not current_user.has_permission(required_role):
            raise ForbiddenException(
                detail=f"Insufficient permissions. Required role: {required_role.value}"
            )
        return current_user
    return role_checker


require_admin = require_role(UserRole.ADMIN)
