"""
Bearer-token identity.

Tokens are issued by the identity service; this module only verifies them and
turns the claims into a ``UserPrincipal``. ``sub`` carries the user id and
``roles`` the role names (see ``RoleName``).
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Iterable, Optional, cast

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt import PyJWTError

from .core.config import settings
from .principal import UserPrincipal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT access token."""
    payload_raw = jwt.decode(
        token,
        settings.secret_key.get_secret_value(),
        algorithms=[settings.algorithm],
        options={"verify_aud": False},
    )
    return cast(Dict[str, Any], payload_raw)


def create_access_token(
    user_id: str, roles: Iterable[str] = (), expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Used by tooling and tests; production tokens come from the identity service.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: Dict[str, Any] = {"sub": user_id, "roles": sorted(set(roles)), "exp": expire}
    return cast(
        str,
        jwt.encode(to_encode, settings.secret_key.get_secret_value(), algorithm=settings.algorithm),
    )


def principal_from_claims(payload: Dict[str, Any]) -> Optional[UserPrincipal]:
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    raw_roles = payload.get("roles") or []
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    roles = frozenset(str(role).lower() for role in raw_roles)
    return UserPrincipal(user_id=subject, roles=roles)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UserPrincipal:
    """
    Dependency resolving the acting principal from the Authorization header.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    invalid_credentials = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
    except PyJWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise invalid_credentials

    principal = principal_from_claims(payload)
    if principal is None:
        logger.warning("Token payload missing 'sub' field")
        raise invalid_credentials
    return principal
