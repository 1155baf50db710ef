"""Security utilities for issuing and reading JWT tokens and resolving the acting identity."""

import logging
from typing import Optional
from datetime import datetime, timedelta, timezone
import jwt
from pydantic import BaseModel
from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from recognition.constants.constants import UserRole
from recognition.core.config import settings
from recognition.core.dependencies import get_user_directory
from recognition.schemas.records import UserRecord
from recognition.services.UserDirectory import UserDirectory

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"


class Identity(BaseModel):
    """The authenticated caller: all the engine needs to know about them."""

    id: str
    role: UserRole

    class Config:
        frozen = True


def create_jwt_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a JWT (JSON Web Token) with the provided data and expiration time.

    Args:
        data (dict): The payload data to be encoded in the JWT.
        expires_delta (timedelta, optional): The time until the token expires.
            Defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        str: The encoded JWT string.

    Example:
        >>> token = create_jwt_token({"sub": "user-123", "role": "EMPLOYEE"})
        >>> decode_jwt_token(token)["sub"]
        'user-123'
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "exp": now + expires_delta,
        "iat": now
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user: UserRecord) -> str:
    return create_jwt_token({
        "sub": user.id,
        "email": user.email,
        "role": user.role.value,
        "name": user.name,
    })


def decode_jwt_token(token: str) -> dict:
    """Decodes and validates a JWT token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or improperly formatted.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT decode error: {e}")
        raise


def get_token(connection: HTTPConnection) -> Optional[str]:
    """Read the token from an Authorization header, a `token` query parameter or the auth cookie."""
    authorization = connection.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return connection.query_params.get("token") or connection.cookies.get(AUTH_COOKIE)


async def resolve_identity(token: Optional[str], directory: UserDirectory) -> Identity:
    """
    Turn a token into an Identity, checking the user still exists.

    The role comes from the directory, not the token, so a role change
    applies immediately.

    Raises:
        HTTPException: 401 if the token is missing, invalid or names an unknown user.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        payload = decode_jwt_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user = await directory.get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return Identity(id=user.id, role=user.role)


async def get_current_identity(
    connection: HTTPConnection,
    directory: UserDirectory = Depends(get_user_directory),
) -> Identity:
    """
    Dependency to get the current authenticated identity
    Raises 401 if not authenticated
    """
    return await resolve_identity(get_token(connection), directory)
