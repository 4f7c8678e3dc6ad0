"""
Application Configuration
Centralized configuration management using environment variables
"""
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigurationError(Exception):
    """Raised when required environment variables are missing"""
    pass


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    """Application settings loaded from environment variables"""

    # Supabase Configuration
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    SUPABASE_JWT_SECRET: str = os.getenv("SUPABASE_JWT_SECRET", "")

    # Telegram Bot API Configuration
    TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    TELEGRAM_API_BASE_URL: str = os.getenv("TELEGRAM_API_BASE_URL", "https://api.telegram.org")

    # WATI (WhatsApp provider) Configuration
    WATI_BASE_URL: str = os.getenv("WATI_BASE_URL") or os.getenv("VITE_WATI_BASE_URL", "")
    WATI_API_KEY: str = os.getenv("WATI_API_KEY") or os.getenv("VITE_WATI_API_KEY", "")
    WATI_WEBHOOK_SECRET: str = os.getenv("WATI_WEBHOOK_SECRET") or os.getenv("VITE_WATI_WEBHOOK_SECRET", "")

    # Owner assigned to conversations created by webhooks.
    # Falls back to the first user in the Supabase user store.
    DEFAULT_OWNER_USER_ID: Optional[str] = os.getenv("DEFAULT_OWNER_USER_ID")

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS Configuration
    CORS_ORIGINS: List[str] = _split_origins(os.getenv("CORS_ORIGINS", "*"))

    REQUIRED_VARIABLES = ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "TELEGRAM_BOT_TOKEN")

    @property
    def is_supabase_configured(self) -> bool:
        """Check if Supabase configuration is present"""
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY)

    @property
    def is_jwt_configured(self) -> bool:
        """Check if tokens can be verified locally"""
        return bool(self.SUPABASE_JWT_SECRET)

    def missing_variables(self) -> List[str]:
        return [name for name in self.REQUIRED_VARIABLES if not getattr(self, name)]

    def validate(self) -> None:
        """
        Fail fast when required configuration is absent.

        Raises:
            ConfigurationError: listing every missing variable
        """
        missing = self.missing_variables()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


# Global settings instance
settings = Settings()
