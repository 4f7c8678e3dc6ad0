"""
FastAPI Authentication Dependencies

Provides FastAPI dependency functions for bearer-token authentication.
"""
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from estate_hive.auth.jwt_handler import (
    extract_user_from_token,
    fetch_user_from_store,
    JWTValidationError,
)
from estate_hive.config import settings
from estate_hive.models.user import User
from estate_hive.services.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields 401 instead of 403
security = HTTPBearer(
    scheme_name="BearerAuth",
    description="Supabase access token of the signed-in agent",
    auto_error=False
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    supabase=Depends(get_supabase_client)
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    The token is verified locally when SUPABASE_JWT_SECRET is set, otherwise
    it is validated against the Supabase user store.

    Usage:
        @router.post("/telegram/send")
        async def send(user: User = Depends(get_current_user)):
            ...

    Raises:
        HTTPException: 401 if token is missing, invalid or expired
    """
    if not credentials:
        logger.warning("Authorization header missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials

    try:
        if settings.is_jwt_configured:
            user = extract_user_from_token(token)
        else:
            user = fetch_user_from_store(token, supabase)
    except JWTValidationError as e:
        logger.warning(f"Token validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.is_token_expired:
        logger.warning(f"Expired token used by user: {user.user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
