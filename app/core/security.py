import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import HTTPException, Request, status
from passlib.context import CryptContext

from .config import settings

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_api_key(api_key: Optional[str] = None) -> bool:
    """
    Verify the API key sent by the client matches the configured one.

    Args:
        - api_key (Optional[str]): The API key to verify.

    Returns:
        - bool: Whether the API key is valid.
    """
    if not api_key:
        return False
    return secrets.compare_digest(api_key.encode(), settings.API_KEY.encode())


def hash_password(password: str) -> str:
    """Salt and hash a password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(password, hashed_password)
    except ValueError:
        # Stored value is not a recognised hash
        return False


def create_jwt_token(
    data: dict,
    expires_delta: timedelta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({
        "exp": now + expires_delta,
        "iat": now,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(principal_id, role: str) -> str:
    """Issue the short-lived token handed out at login."""
    return create_jwt_token({"id": principal_id, "sub": str(principal_id), "role": role})


def decode_jwt_token(token: str) -> dict:
    """Decode and validate a token. Raises jwt.PyJWTError when invalid or expired."""
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
    )


def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header:
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return None
    return request.cookies.get("auth_token")


async def authenticate_token(request: Request) -> dict:
    """Dependency guarding token-authenticated routes. Returns the token payload."""
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        return decode_jwt_token(token)
    except jwt.ExpiredSignatureError:
        logger.info("token_expired", path=request.url.path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")
    except jwt.InvalidTokenError as e:
        logger.info("token_invalid", path=request.url.path, error=str(e))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired token")


def require_api_key(api_key: Optional[str]) -> None:
    """Reject the request with 400 unless it carries the shared API key."""
    if not verify_api_key(api_key):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid API key.")
