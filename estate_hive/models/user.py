"""
User Model for Bearer Authentication

Represents the agent behind an authenticated request, built either from
decoded Supabase JWT claims or from the Supabase user store
"""
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime, timezone


class User(BaseModel):
    """
    Authenticated CRM user (agent).

    Agent-sent messages are stored with sender_id = user_id.
    """

    # Core user fields
    user_id: str = Field(..., description="Unique user identifier (sub claim / auth user id)")
    email: Optional[str] = Field(None, description="User's email address")

    # Authentication metadata
    aud: Optional[str] = Field(None, description="Audience claim - typically 'authenticated'")
    role: Optional[str] = Field(None, description="User role")

    # Token metadata
    exp: Optional[int] = Field(None, description="Token expiration timestamp")

    user_metadata: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Additional user metadata")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                "email": "agent@estatehive.com",
                "aud": "authenticated",
                "role": "authenticated",
                "exp": 1735689600,
                "user_metadata": {}
            }
        }

    @property
    def is_token_expired(self) -> bool:
        """Tokens validated by the user store carry no exp and never count as expired here"""
        if not self.exp:
            return False
        return datetime.now(timezone.utc).timestamp() > self.exp
