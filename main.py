"""
Estate Hive Messaging API - Main Entry Point
Telegram and WhatsApp (WATI) ingestion, outbound messaging and the CRM inbox
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.middleware.base import BaseHTTPMiddleware
import logging

# Import configuration
from estate_hive import __version__
from estate_hive.config import settings

# Import API routers
from estate_hive.api import conversations, telegram, webhook, whatsapp

from estate_hive.middleware.webhook_auth import (
    SignatureVerificationError,
    WebhookSecretNotConfiguredError,
)

# Initialize logger
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# Custom middleware to handle proxy headers from Traefik
class ProxyHeadersMiddleware(BaseHTTPMiddleware):
    """
    Trust the X-Forwarded-Proto header set by the reverse proxy so redirects
    keep the HTTPS scheme.
    """
    async def dispatch(self, request: Request, call_next):
        forwarded_proto = request.headers.get("X-Forwarded-Proto")

        if forwarded_proto:
            request.scope["scheme"] = forwarded_proto
            logger.debug(f"🔒 Proxy detected: scheme={forwarded_proto}")

        return await call_next(request)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start without the required configuration"""
    logger.info("Starting Estate Hive Messaging API...")
    settings.validate()

    if not settings.WATI_WEBHOOK_SECRET:
        logger.warning("⚠️ WATI_WEBHOOK_SECRET is not set; /webhook/wati/signed will reject every request")

    logger.info("Application startup complete")
    yield

    logger.info("Application shutdown")


# Create FastAPI application
app = FastAPI(
    title="Estate Hive Messaging API",
    description="""
## Estate Hive CRM messaging

Receives client messages from Telegram and WhatsApp (WATI), files them into
conversations, and lets agents reply from the CRM inbox.
""",
    version=__version__,
    lifespan=lifespan,
    swagger_ui_parameters={
        "defaultModelsExpandDepth": -1,
        "docExpansion": "list",
        "filter": True,
        "persistAuthorization": True,
    },
    redoc_url="/redoc",
    docs_url="/docs",
    openapi_url="/openapi.json"
)

# Add ProxyHeadersMiddleware FIRST (before CORS)
app.add_middleware(ProxyHeadersMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Webhook signature errors
@app.exception_handler(SignatureVerificationError)
async def signature_error_handler(request: Request, exc: SignatureVerificationError):
    return JSONResponse({"error": "Invalid signature"}, status_code=401)


@app.exception_handler(WebhookSecretNotConfiguredError)
async def webhook_secret_error_handler(request: Request, exc: WebhookSecretNotConfiguredError):
    return JSONResponse({"error": str(exc)}, status_code=500)


# Include routers
app.include_router(webhook.router)  # Inbound provider webhooks (/webhook/*)
app.include_router(telegram.router)  # Telegram send, file proxy, bot webhook setup (/telegram/*)
app.include_router(whatsapp.router)  # WATI send and history (/whatsapp/*)
app.include_router(conversations.router)  # CRM inbox (/conversations/*, /messages/search)


def custom_openapi():
    """Generate OpenAPI schema with the Bearer security scheme"""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Supabase access token of a CRM agent"
        },
        "WatiSignature": {
            "type": "apiKey",
            "in": "header",
            "name": "x-wati-signature",
            "description": "Hex HMAC-SHA256 of the raw body, keyed with WATI_WEBHOOK_SECRET"
        }
    }

    openapi_schema["tags"] = [
        {"name": "health", "description": "Health check"},
        {"name": "webhook", "description": "📨 Inbound Telegram and WATI webhooks. Telegram and unsigned WATI are unauthenticated."},
        {"name": "telegram", "description": "✈️ Telegram Bot API: send messages, proxy voice files, manage the bot webhook"},
        {"name": "whatsapp", "description": "📱 WATI: send messages and read message history"},
        {"name": "conversations", "description": "💬 Conversations and messages of the CRM inbox"},
    ]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


# Root endpoint
@app.get(
    "/",
    tags=["health"],
    summary="API Health Check",
    description="Check if the API is running. Returns version information."
)
def root():
    return {
        "status": "healthy",
        "message": "Estate Hive Messaging API",
        "version": __version__,
        "docs": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
