"""
JWT Token Handler

Validates bearer tokens issued by Supabase Auth.
Uses python-jose when the JWT secret is configured, otherwise asks the
Supabase user store to resolve the token.
"""
import logging
from typing import Dict, Any

from jose import jwt, JWTError

from estate_hive.config import settings
from estate_hive.models.user import User

logger = logging.getLogger(__name__)


class JWTValidationError(Exception):
    """Custom exception for JWT validation errors"""
    pass


def decode_jwt_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a Supabase JWT token.

    Args:
        token: JWT token string from Authorization header

    Returns:
        Decoded JWT payload as dictionary

    Raises:
        JWTValidationError: If token is invalid, expired, or malformed
    """
    if not settings.is_jwt_configured:
        logger.error("Supabase JWT configuration is missing")
        raise JWTValidationError("Authentication service is not configured")

    if not token:
        raise JWTValidationError("Token is required")

    try:
        # Supabase uses HS256 algorithm by default
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience="authenticated",
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
            }
        )

        logger.debug(f"JWT token decoded successfully for user: {payload.get('sub')}")
        return payload

    except jwt.ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise JWTValidationError("Token has expired")

    except jwt.JWTClaimsError as e:
        logger.warning(f"JWT claims error: {e}")
        raise JWTValidationError("Invalid token claims")

    except JWTError as e:
        logger.warning(f"JWT validation error: {e}")
        raise JWTValidationError("Invalid token")


def extract_user_from_token(token: str) -> User:
    """
    Build a User from the claims of a locally verified token.

    Raises:
        JWTValidationError: If token is invalid or has no subject
    """
    payload = decode_jwt_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise JWTValidationError("User ID (sub) not found in token")

    return User(
        user_id=user_id,
        email=payload.get("email"),
        aud=payload.get("aud"),
        role=payload.get("role"),
        exp=payload.get("exp"),
        user_metadata=payload.get("user_metadata") or {},
    )


def fetch_user_from_store(token: str, supabase) -> User:
    """
    Resolve the token against the Supabase user store (auth.get_user).

    Raises:
        JWTValidationError: If the store rejects the token or knows no such user
    """
    if not token:
        raise JWTValidationError("Token is required")

    try:
        response = supabase.auth.get_user(token)
    except Exception as e:
        logger.warning(f"User store rejected token: {e}")
        raise JWTValidationError("Invalid token")

    auth_user = getattr(response, "user", None)
    if auth_user is None:
        raise JWTValidationError("Invalid token")

    return User(
        user_id=str(auth_user.id),
        email=getattr(auth_user, "email", None),
        aud=getattr(auth_user, "aud", None),
        role=getattr(auth_user, "role", None),
        user_metadata=getattr(auth_user, "user_metadata", None) or {},
    )
