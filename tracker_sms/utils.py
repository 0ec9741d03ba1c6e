"""
Utility functions for the SMS command API.
"""

import hmac
import logging
import sys
from typing import Annotated, Optional

from fastapi import Header

from tracker_sms.config import settings
from tracker_sms.errors import ServiceError

logger = logging.getLogger(__name__)


class AuthenticationError(ServiceError):
    status_code = 401


def verify_api_key(provided: Optional[str], expected: str) -> bool:
    """
    Compare an API key from a request with the configured one.

    Args:
        provided: Value of the X-API-Key header (None when absent)
        expected: Configured API_KEY

    Returns:
        True if the keys match, False otherwise
    """
    if not provided:
        return False

    # Use constant-time comparison to prevent timing attacks
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
    x_api_key: Annotated[Optional[str], Header(alias="X-API-Key")] = None,
) -> None:
    """
    Dependency guarding the /api routes.
    Does nothing when no API_KEY is configured.
    """
    if not settings.API_KEY:
        return

    if not verify_api_key(x_api_key, settings.API_KEY):
        logger.warning("Rejected request with missing or invalid API key")
        raise AuthenticationError("Invalid or missing API key")


def memory_usage() -> dict:
    """
    Peak resident set size of this process, in MB.
    Empty on platforms without the resource module (Windows).
    """
    try:
        import resource
    except ImportError:
        return {}

    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is reported in bytes on macOS and kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return {"max_rss": f"{round(max_rss / divisor)} MB"}
