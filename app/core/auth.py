"""Caller authentication.

Each caller presents a per-user API key in the ``X-API-Key`` header. Keys
are configured as comma-separated ``key:user_id`` pairs in
``APP_API_KEYS``. Failures raise ``AuthenticationAppError``, which the
exception handlers map to 401.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> dict[str, str]:
    """Parse ``key:user_id`` pairs into a mapping.

    Examples:
        >>> parse_api_keys("k1:alice, k2:bob")
        {'k1': 'alice', 'k2': 'bob'}
        >>> parse_api_keys("broken,k3:")
        {}
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    mapping: dict[str, str] = {}
    for entry in keys_string.split(","):
        key, sep, user_id = entry.strip().partition(":")
        key, user_id = key.strip(), user_id.strip()
        if sep and key and user_id:
            mapping[key] = user_id
    return mapping


def _key_hash(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def resolve_user_id(provided_key: str | None) -> str:
    """Map an API key to its user id.

    Raises:
        AuthenticationAppError: Missing or unknown key.
    """
    if not provided_key:
        logger.warning("auth.missing_key")
        raise AuthenticationAppError(
            code="not_authenticated",
            message="Unauthorized",
            details={"hint": "Provide the X-API-Key header."},
        )

    user_id = parse_api_keys(settings.app.api_keys).get(provided_key)
    if user_id is None:
        logger.warning("auth.invalid_key", extra={"api_key_hash": _key_hash(provided_key)})
        raise AuthenticationAppError(
            code="not_authenticated",
            message="Unauthorized",
        )
    return user_id


async def get_auth_user_id(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency returning the authenticated user id.

    Usage:
        @router.get("/me")
        async def me(user_id: str = Depends(get_auth_user_id)): ...
    """
    user_id = resolve_user_id(x_api_key)
    logger.debug("auth.success", extra={"user_id": user_id})
    return user_id
