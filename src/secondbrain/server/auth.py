"""Bearer token verification.

Tokens are issued by a separate auth service and signed with a shared
secret. The payload carries ``userId`` (the owner id) and ``username``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import AuthConfig

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedOwner:
    """The caller resolved from a verified token."""
    owner_id: str
    username: Optional[str] = None


def verify_token(token: str, auth_config: AuthConfig) -> Optional[AuthenticatedOwner]:
    """Verify and decode a token.

    Returns:
        The authenticated owner if valid, None otherwise.
    """
    if not auth_config.secret_key:
        logger.error("Token verification attempted without a configured secret key")
        return None

    try:
        payload = jwt.decode(token, auth_config.secret_key, algorithms=[auth_config.algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        return None

    owner_id = payload.get("userId")
    if not owner_id or not isinstance(owner_id, str):
        logger.debug("Token payload has no userId")
        return None
    return AuthenticatedOwner(owner_id=owner_id, username=payload.get("username"))


async def get_current_owner(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedOwner:
    """FastAPI dependency resolving the caller from the Authorization header.

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    owner = verify_token(credentials.credentials, request.app.state.config.auth)
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner
