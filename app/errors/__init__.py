"""Error handling module"""
from app.errors.exceptions import (
    UnauthorizedException,
    ForbiddenException,
    ServiceUnavailableException
)

__all__ = [
    "UnauthorizedException",
    "ForbiddenException",
    "ServiceUnavailableException"
]
