"""Security utilities: API key extraction and verification for scheduler calls."""

import hmac
from typing import Optional

from app.core.config import settings


def extract_api_key(
    header_key: Optional[str] = None,
    authorization: Optional[str] = None,
    query_key: Optional[str] = None,
) -> Optional[str]:
    """Pick the API key from x-api-key, then a bearer token, then the query string."""
    if header_key:
        return header_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    if query_key:
        return query_key.strip()
    return None


def verify_api_key(provided: Optional[str], expected: Optional[str] = None) -> bool:
    """Constant-time comparison against the configured cron key.

    An unconfigured key rejects every call.
    """
    if expected is None:
        expected = settings.ALERTS_CRON_API_KEY
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
