"""
Authentication endpoints - email + password accounts with bearer tokens.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status

from hydrowatch.core.errors import AppError
from hydrowatch.models.base import MessageResponse
from hydrowatch.models.user import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    ProfileUpdateRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    UserProfile,
)
from hydrowatch.services.auth_service import get_auth_service
from hydrowatch.services.user_service import UserService
from hydrowatch.utils.concurrency import run_sync
from hydrowatch.utils.security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest):
    """
    Register a citizen account.

    Returns a bearer token valid for JWT_EXPIRE_HOURS. Signup never
    creates administrators.
    """
    try:
        _, token = await run_sync(get_auth_service().signup, request.name, request.email, request.password)
        return SignupResponse(message="User created successfully", token=token)
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Signup failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """
    Exchange email + password for a bearer token.

    Unknown email and wrong password both answer 400 "Invalid credentials".
    """
    try:
        user, token = await run_sync(get_auth_service().login, request.email, request.password)
        return LoginResponse(
            message="Login successful",
            token=token,
            user=UserProfile(**UserService.to_profile(user)),
        )
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest):
    try:
        await run_sync(get_auth_service().request_password_reset, request.email)
        return MessageResponse(message="Password reset email sent")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Password reset request failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(token: str, request: ResetPasswordRequest):
    try:
        await run_sync(get_auth_service().reset_password, token, request.password)
        return MessageResponse(message="Password reset successful")
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Password reset failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.get("/me", response_model=UserProfile)
async def read_profile(user: Dict = Depends(get_current_user)):
    return UserProfile(**UserService.to_profile(user))


@router.patch("/me", response_model=UserProfile)
async def update_profile(request: ProfileUpdateRequest, user: Dict = Depends(get_current_user)):
    try:
        updated = await run_sync(get_auth_service().update_profile, user["id"], request.name)
        return UserProfile(**UserService.to_profile(updated))
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Profile update failed for {user['id']}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")
