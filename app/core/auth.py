"""Admin key guard for the credential management routes.

Credential records carry upstream API keys, so listing, creating and
deleting them can be restricted to callers presenting one of the configured
admin keys in the ``X-Admin-Key`` header. The guard is off by default.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.core.logging import fingerprint

logger = logging.getLogger(__name__)


def parse_admin_keys(keys_string: str | None) -> set[str]:
    """Split a comma-separated key list, dropping blanks.

    Examples:
        >>> sorted(parse_admin_keys("a, b ,,c"))
        ['a', 'b', 'c']
        >>> parse_admin_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_admin_key(provided_key: str | None) -> None:
    """Check ``provided_key`` against the configured admin keys.

    Raises:
        AuthenticationAppError: If the guard is enabled and the key is missing,
            unknown, or no keys are configured at all.
    """
    if not settings.app.admin_key_required:
        return

    valid_keys = parse_admin_keys(settings.app.admin_keys)
    if not valid_keys:
        logger.error(
            "auth.admin_keys_not_configured",
            extra={"auth_required": True},
        )
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin key authentication is enabled but no admin keys are configured",
            details={"hint": "Set APP_ADMIN_KEYS or disable with APP_ADMIN_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("auth.missing_key", extra={"auth_required": True})
        raise AuthenticationAppError(
            code="admin_key_missing",
            message="Missing admin key. Provide X-Admin-Key header.",
        )

    if not any(hmac.compare_digest(provided_key, key) for key in valid_keys):
        logger.warning(
            "auth.invalid_key",
            extra={"key_hash": fingerprint(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency enforcing the admin key guard.

    Usage:
        @router.get("/apikeys", dependencies=[Depends(verify_admin_key)])

    Raises:
        AuthenticationAppError: Rendered as 403 by the global handlers.
    """
    validate_admin_key(x_admin_key)
