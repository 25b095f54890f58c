"""Bearer-token authentication for write operations.

Two verification modes, selected by ``AUTH_MODE``:
- ``mock``: any non-empty bearer token is accepted
- ``jwt``: the token must be an HS-signed JWT issued with ``JWT_SECRET_KEY``

Routes depend on ``require_authorization`` and never look at the mode.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from pydantic import BaseModel

from company_service.core.logging import get_logger
from company_service.core.config import settings

logger = get_logger(__name__)

MOCK_SUBJECT = "mock-user-id"

# Missing or malformed headers are turned into 401 by require_authorization
security = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """Caller identity established by the auth gate."""
    subject: str
    auth_mode: str


class TokenData(BaseModel):
    """JWT token payload."""
    sub: str
    exp: datetime
    iat: Optional[datetime] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT for a subject.

    Args:
        subject: Value for the ``sub`` claim
        expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token

    Example:
        >>> token = create_access_token("ops-user")
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenData:
    """Decode and validate JWT token.

    Args:
        token: JWT token string

    Returns:
        TokenData with the subject and expiry

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token attempted")
        raise _unauthorized("token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token attempted: {e}")
        raise _unauthorized("invalid token")

    return TokenData(
        sub=payload["sub"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc) if "iat" in payload else None,
    )


def verify_token(token: str) -> Principal:
    """Turn a bearer token into a principal according to AUTH_MODE.

    Raises:
        HTTPException: 401 if the token is rejected
    """
    if not token:
        raise _unauthorized("empty token")

    if settings.auth_mode == "jwt":
        token_data = decode_token(token)
        return Principal(subject=token_data.sub, auth_mode="jwt")

    return Principal(subject=MOCK_SUBJECT, auth_mode="mock")


async def require_authorization(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Principal:
    """FastAPI dependency gating write operations.

    Raises 401 when the Authorization header is missing, is not a Bearer
    credential, or carries a token the configured verifier rejects.

    Example:
        >>> @router.delete("/{company_id}")
        >>> async def delete(principal: Principal = Depends(require_authorization)):
        ...     ...
    """
    if credentials is None:
        raise _unauthorized("missing or invalid authorization header")

    principal = verify_token(credentials.credentials)
    logger.debug(f"Request authorized for {principal.subject}", extra={"principal": principal.subject})
    return principal
