"""Utility functions"""
from .text_processing import (
    digits_only,
    to_iso_timestamp,
    guess_audio_content_type,
)
from .normalizers import (
    normalize_telegram_update,
    normalize_wati_event,
    normalize_wati_signed_message,
)

__all__ = [
    "digits_only",
    "to_iso_timestamp",
    "guess_audio_content_type",
    "normalize_telegram_update",
    "normalize_wati_event",
    "normalize_wati_signed_message",
]
