"""
Authentication Module

Bearer-token authentication backed by Supabase Auth.
"""
from estate_hive.auth.jwt_handler import decode_jwt_token, JWTValidationError
from estate_hive.auth.dependencies import get_current_user

__all__ = [
    "decode_jwt_token",
    "JWTValidationError",
    "get_current_user",
]
