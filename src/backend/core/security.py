"""
Bearer token handling.

Voters and administrators sign in with the external identity provider,
which mints HS256 access tokens with the shared SECRET_KEY. This service
only verifies them; issue_access_token exists for local tooling and tests.

Claims read here:
    sub       voter identity, the key for one-vote-per-voter
    is_admin  grants the candidate management endpoints
    email     optional, informational only
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from core.config import settings

TOKEN_ISSUER = "ballotbox-identity"
TOKEN_AUDIENCE = "ballotbox-api"
ACCESS_TOKEN_TYPE = "access"


def issue_access_token(
    subject: str,
    *,
    is_admin: bool = False,
    email: Optional[str] = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint an access token for `subject`."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims: dict[str, Any] = {
        "sub": subject,
        "is_admin": is_admin,
        "type": ACCESS_TOKEN_TYPE,
        "iss": TOKEN_ISSUER,
        "aud": TOKEN_AUDIENCE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": secrets.token_urlsafe(16),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict[str, Any] | None:
    """
    Return the claims of a valid access token, or None.

    A token is valid when its signature, expiry, issuer and audience check
    out and its type is "access".
    """
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            audience=TOKEN_AUDIENCE,
        )
    except JWTError:
        return None
    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims
