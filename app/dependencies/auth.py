"""
Caller identity dependency.

Token validation is delegated to the identity provider; this module only
locates the token and maps provider outcomes to HTTP errors.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status

from app.clients import IdentityClient, IdentityProviderError
from app.core.config import AppSettings
from app.dependencies.clients import get_identity_client
from app.dependencies.config import get_app_settings

logger = logging.getLogger(__name__)

_BEARER_PATTERN = re.compile(r"^Bearer\s+(\S+)\s*$", re.IGNORECASE)


def extract_token(request: Request, cookie_names: tuple[str, ...]) -> Optional[str]:
    """Read the token from the Authorization header, session cookies, then query."""
    header = request.headers.get("authorization", "")
    match = _BEARER_PATTERN.match(header)
    if match:
        return match.group(1)

    for name in cookie_names:
        value = request.cookies.get(name)
        if value:
            return value

    return request.query_params.get("access_token") or None


async def require_identity(
    request: Request,
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    identity_client: Annotated[Optional[IdentityClient], Depends(get_identity_client)],
) -> Dict[str, Any]:
    """Return the authenticated user or raise 401/503."""
    if identity_client is None:
        if settings.auth.allow_anonymous:
            return {"id": "anonymous", "anonymous": True}
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider is not configured.",
        )

    token = extract_token(request, settings.auth.session_cookies)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token missing",
        )

    try:
        user = await identity_client.get_user(token)
    except IdentityProviderError as exc:
        logger.error("Identity provider unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable.",
        ) from exc

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


__all__ = ["extract_token", "require_identity"]
