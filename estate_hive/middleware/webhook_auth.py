"""
Webhook Authentication Middleware
Verifies WATI webhook requests by HMAC-SHA256 signature over the raw body
"""
from fastapi import Request
import binascii
import hashlib
import hmac
import logging

from estate_hive.config import settings

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-wati-signature"


class SignatureVerificationError(Exception):
    """Raised when a webhook signature is missing, malformed or wrong (401)"""
    pass


class WebhookSecretNotConfiguredError(Exception):
    """Raised when no webhook secret is configured (500)"""
    pass


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 digest of the raw body"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """
    Check a hex signature against the HMAC-SHA256 of the exact raw body.

    Malformed hex (odd length, non-hex characters) never verifies.
    """
    if not signature or not secret:
        return False

    try:
        provided = bytes.fromhex(signature.strip())
    except (ValueError, binascii.Error):
        return False

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return hmac.compare_digest(provided, expected)


async def require_wati_signature(request: Request) -> bytes:
    """
    Dependency that verifies the x-wati-signature header before any processing.

    Usage in FastAPI endpoints:
        @router.post("/webhook/wati/signed")
        async def endpoint(raw_body: bytes = Depends(require_wati_signature)):
            ...

    Returns:
        The raw request body, already verified

    Raises:
        WebhookSecretNotConfiguredError: if WATI_WEBHOOK_SECRET is not set
        SignatureVerificationError: if the signature does not match
    """
    secret = settings.WATI_WEBHOOK_SECRET
    if not secret:
        logger.error("WATI_WEBHOOK_SECRET environment variable is not configured")
        raise WebhookSecretNotConfiguredError("Webhook authentication is not properly configured")

    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")

    if not verify_signature(body, signature, secret):
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid WATI webhook signature from {client_host}")
        raise SignatureVerificationError("Invalid signature")

    logger.debug("✅ WATI webhook signature verified")
    return body
