"""Verification of account session tokens issued upstream"""
import logging
from typing import Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.auth_schemas import TokenData, UserRole

logger = logging.getLogger(__name__)


def decode_access_token(token: Optional[str]) -> Optional[TokenData]:
    """
    Decode and validate a JWT access token

    Returns None for anything that is not a valid, unexpired token with a
    subject claim.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"JWT decode error: {str(e)}")
        return None

    user_id = payload.get("sub")
    if user_id is None or str(user_id).strip() == "":
        return None

    role = payload.get("role")
    try:
        role = UserRole(role) if role else UserRole.USER
    except ValueError:
        logger.warning(f"Unknown role claim in token: {role}")
        role = UserRole.USER

    return TokenData(user_id=str(user_id), email=payload.get("email"), role=role)
