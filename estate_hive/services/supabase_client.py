"""
Supabase Client
Single service-role client shared by routers and services
"""
import logging
from typing import Optional

from fastapi import HTTPException, status
from supabase import create_client, Client

from estate_hive.config import settings

logger = logging.getLogger(__name__)

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get Supabase client from settings (FastAPI dependency)"""
    global _client

    if not settings.is_supabase_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Supabase is not configured"
        )

    if _client is None:
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        logger.info("Supabase client initialized")

    return _client
