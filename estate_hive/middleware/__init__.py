"""
Middleware Package
Webhook request verification
"""
from estate_hive.middleware.webhook_auth import (
    compute_signature,
    verify_signature,
    require_wati_signature,
    SignatureVerificationError,
    WebhookSecretNotConfiguredError,
)

__all__ = [
    'compute_signature',
    'verify_signature',
    'require_wati_signature',
    'SignatureVerificationError',
    'WebhookSecretNotConfiguredError',
]
