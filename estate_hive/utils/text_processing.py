"""
Text processing utilities
Small helpers for identifiers, timestamps and file names coming from providers
"""
import re
from datetime import datetime, timezone
from typing import Any, Optional, Union

# Values above this are treated as epoch milliseconds
_EPOCH_MILLIS_THRESHOLD = 10_000_000_000


def digits_only(value: Any) -> str:
    """
    Strip everything but digits from a phone number or id.

    Examples:
        "+91 72597-78145" -> "917259778145"
        917259778145 -> "917259778145"
    """
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_to_iso(seconds: Union[int, float]) -> str:
    """Telegram `date` (epoch seconds) to ISO 8601 UTC"""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def to_iso_timestamp(value: Any) -> Optional[str]:
    """
    Coerce a provider timestamp into ISO 8601.

    Accepts epoch seconds, epoch milliseconds (numbers or digit strings) and
    ISO strings. Returns None when the value cannot be interpreted.
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and re.fullmatch(r"\d+(\.\d+)?", value.strip()):
        number = float(value.strip())
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.isoformat()
    else:
        return None

    if number > _EPOCH_MILLIS_THRESHOLD:
        number = number / 1000
    try:
        return epoch_to_iso(number)
    except (OverflowError, OSError, ValueError):
        return None


def guess_audio_content_type(file_path: str) -> str:
    """Content type for a proxied voice file, by extension (default audio/ogg)"""
    if file_path.endswith(".mp3"):
        return "audio/mpeg"
    if file_path.endswith(".wav"):
        return "audio/wav"
    return "audio/ogg"
