from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
import logging

from recognition.core.config import settings
from recognition.core.dependencies import get_user_directory
from recognition.core.security import AUTH_COOKIE, create_user_token
from recognition.schemas.usersSchema import LoginRequest, LoginResponse, UserResponse
from recognition.services.UserDirectory import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

# -----------------------------
# Cookie Helpers
# -----------------------------
def set_auth_cookie(response: Response, token: str, expires: timedelta):
    """Set auth cookie."""
    secure = settings.ENVIRONMENT != "development"
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=secure,
        samesite="lax",
        domain=settings.COOKIE_DOMAIN,
        path="/",
        max_age=int(expires.total_seconds())
    )

def clear_auth_cookie(response: Response):
    """Clear auth cookie."""
    set_auth_cookie(response, "", timedelta(0))

# -----------------------------
# Login
# -----------------------------
@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    response: Response,
    directory: UserDirectory = Depends(get_user_directory)
):
    """
    Log in by email and receive a token, also set as the auth cookie.
    """
    user = await directory.get_by_email(data.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    token = create_user_token(user)
    set_auth_cookie(response, token, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    logger.info(f"User {user.id} logged in")
    return LoginResponse(token=token, user=UserResponse(**user.model_dump()))

# -----------------------------
# Logout
# -----------------------------
@router.post("/logout")
async def logout():
    response = JSONResponse({"message": "Logged out successfully"})
    clear_auth_cookie(response)
    return response
