"""
Client Records Backend — Bearer Token Gate
============================================

What:  FastAPI dependency that rejects requests without a valid bearer token.
How:   Verifies an HS256 JWT (python-jose) signed with settings.jwt_secret.
       Tokens are issued by the staff login service; this backend only
       verifies them.
When:  Runs before any client-record route handler.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from clientrecords.config import settings
from clientrecords.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our AuthenticationError (401)
# instead of FastAPI's bare 403
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of a bearer token and return its claims.

    Raises:
        AuthenticationError: token is malformed, forged or expired.
    """
    if not settings.jwt_secret:
        raise AuthenticationError(context={"reason": "jwt_secret not configured"})
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(context={"reason": str(e)})


async def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """
    Route dependency: returns the token claims, or raises AuthenticationError.

    With AUTH_ENABLED=false (local development) the gate is open and an
    empty claim set is returned.
    """
    if not settings.auth_enabled:
        return {}

    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing bearer token")

    claims = decode_token(credentials.credentials)
    logger.debug("Authenticated request for subject %s", claims.get("sub", "<none>"))
    return claims
