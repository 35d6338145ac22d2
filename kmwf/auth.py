"""
Session-token authentication and role guards.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from kmwf.config import settings
from kmwf.rules.roles import RoleSet, resolve_roles

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    name: str
    email: Optional[str]
    roles: RoleSet


def decode_session_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        claims = decode_session_token(credentials.credentials)
    except jwt.PyJWTError as e:
        logger.warning("Rejected session token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid session token")

    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid session token")
    return CurrentUser(
        user_id=str(user_id),
        name=claims.get("name") or "User",
        email=claims.get("email"),
        roles=resolve_roles(claims),
    )


def require_roles(*allowed: str):
    """Dependency factory: 403 unless the user holds one of ``allowed``."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.roles.has_any(*allowed):
            logger.warning(
                "Permission denied for user %s. Roles: %s, allowed: %s",
                user.user_id, sorted(user.roles.roles), ", ".join(allowed),
            )
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions. Requires one of: {', '.join(allowed)}",
            )
        return user

    return dependency
