# backend/app/api/v1/endpoints/auth.py
from typing import Optional

from fastapi import APIRouter, Depends, status

from backend.app.api import deps
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.models.user import User
from backend.app.schemas.user import (
    LoginResponse,
    MessageResponse,
    RegisterResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from backend.app.services.auth import SessionManager

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
        user_in: UserCreate,
        sessions: SessionManager = Depends(deps.get_session_manager),
):
    user = await sessions.register(user_in.username, user_in.email, user_in.password)
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
async def login(
        credentials: UserLogin,
        sessions: SessionManager = Depends(deps.get_session_manager),
):
    result = await sessions.login(credentials.username, credentials.password)
    return {
        "user": result.user,
        "session_token": result.session_token,
        "expires_at": result.expires_at,
    }


@router.post("/logout", response_model=MessageResponse)
async def logout(
        token: Optional[str] = Depends(deps.get_bearer_token),
        sessions: SessionManager = Depends(deps.get_session_manager),
):
    if token is None:
        raise ValidationError("No session token provided")

    try:
        await sessions.logout(token)
    except NotFoundError:
        # Already gone: logging out twice is not an error for the client
        pass
    return {"message": "Logged out successfully"}


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(deps.get_current_user)):
    return current_user
