"""
Response normalization and error classification for the content delivery API
"""
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from core.entities import Entry
from core.errors import (
    ContentstackError,
    ContentTypeNotFound,
    InvalidCredentials,
    InvalidReference,
    UpstreamError,
)

logger = logging.getLogger(__name__)

CONTENT_TYPE_NOT_FOUND = 118
INVALID_API_KEY = 109
INVALID_REFERENCE = 141

CREDENTIAL_HINTS = ("api_key", "access_token", "delivery token")

_SECRET_PARAMS = re.compile(r"(api_key|access_token)=[^&]+")


def mask_secrets(url: str) -> str:
    return _SECRET_PARAMS.sub(r"\1=***", url)


def raw_entries(payload: Any) -> List[Any]:
    if payload is None:
        return []
    if isinstance(payload, dict):
        for key in ("entries", "items"):
            if key in payload:
                return payload[key] or []
        return []
    if isinstance(payload, list):
        # SDK shape: [[entries...], count]
        if payload and isinstance(payload[0], list):
            return payload[0]
        return payload
    return []


def normalize_entries(payload: Any) -> List[Entry]:
    """
    Convert any listing response shape into a list of entries.
    """
    entries: List[Entry] = []
    for raw in raw_entries(payload):
        if not isinstance(raw, dict) or not raw.get("uid"):
            logger.debug(f"Skipping malformed entry in listing: {raw!r}")
            continue
        entries.append(Entry.model_validate(raw))
    return entries


def classify_error(
    status_code: int,
    body: Any,
    *,
    content_type: Optional[str],
    include: Sequence[str] = (),
    reason: str = "",
) -> ContentstackError:
    """
    Turn a non-2xx response into a classified error.
    """
    if not isinstance(body, dict):
        body = {}

    error_code = body.get("error_code")
    error_message = body.get("error_message")
    errors = body.get("errors")
    message = error_message or f"HTTP {status_code}: {reason}".rstrip(": ")

    kwargs: Dict[str, Any] = dict(
        error_code=error_code,
        error_message=error_message,
        content_type=content_type,
        errors=errors,
        status_code=status_code,
    )

    if error_code == CONTENT_TYPE_NOT_FOUND:
        return ContentTypeNotFound(message, **kwargs)

    lowered = (error_message or "").lower()
    if error_code == INVALID_API_KEY or any(hint in lowered for hint in CREDENTIAL_HINTS):
        return InvalidCredentials(message, **kwargs)

    if error_code == INVALID_REFERENCE and isinstance(errors, dict):
        for field in include:
            if field in errors:
                return InvalidReference(message, field=field, **kwargs)

    return UpstreamError(message, **kwargs)
