"""
Error taxonomy for the content API and webhook delivery.
"""
from typing import Any, Dict, Optional


class ContentstackError(Exception):
    """
    Classified failure returned by the content delivery API.
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[int] = None,
        error_message: Optional[str] = None,
        content_type: Optional[str] = None,
        errors: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.error_message = error_message
        self.content_type = content_type
        self.errors = errors
        self.status_code = status_code

    @property
    def message(self) -> str:
        return str(self)


class ContentTypeNotFound(ContentstackError):
    """Upstream error code 118."""


class InvalidCredentials(ContentstackError):
    """Upstream error code 109, or a message pointing at the API key / token."""


class InvalidReference(ContentstackError):
    """Upstream error code 141 tied to a reference field requested via include[]."""

    def __init__(self, message: str, *, field: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field


class UpstreamError(ContentstackError):
    """Any other non-2xx response or network failure."""


class DeliveryError(Exception):
    """Webhook submission failed."""

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class PermissionDenied(Exception):
    def __init__(self, role: str, resource: str, action: Any):
        super().__init__(f"Role '{role}' may not perform '{action}' on '{resource}'")
        self.role = role
        self.resource = resource
        self.action = action


def remediation_message(resource: str, env_key: str, candidates: list[str]) -> str:
    """Text telling the user how to point the portal at the right content type."""
    lines = [
        f"Content type for '{resource}' was not found.",
        "",
        "To fix this:",
        "1. Open your stack's Content Types and find the matching content type",
        "2. Copy its UID from the URL or the content type settings",
        f"3. Set it in your .env file: {env_key}=your_actual_uid",
        "4. Restart the portal",
    ]
    if candidates:
        lines.append("")
        lines.append(f"Identifiers already tried: {', '.join(candidates)}")
    return "\n".join(lines)


def user_message(error: Exception, resource: str = "content") -> str:
    """
    Derive user-facing text from a failure.
    Falls back from remediation text to the upstream message to a generic one.
    """
    if isinstance(error, ContentTypeNotFound) and "To fix this:" in str(error):
        return str(error)

    if isinstance(error, InvalidCredentials):
        return (
            "The content API rejected the configured credentials. "
            "Check CONTENTSTACK_API_KEY and CONTENTSTACK_DELIVERY_TOKEN in your .env file."
        )

    if isinstance(error, PermissionDenied):
        return str(error)

    if isinstance(error, ContentstackError) and error.error_message:
        return f"Content API error: {error.error_message}"

    if isinstance(error, DeliveryError):
        return "Failed to submit feedback. Please try again."

    return f"Failed to load {resource}. Please try again later."
