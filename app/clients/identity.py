"""
Identity provider lookups.

The map endpoints never validate tokens themselves; they hand the opaque
bearer token to Supabase Auth and accept whatever user it resolves to.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx


class IdentityProviderError(Exception):
    """Raised when the identity provider cannot be reached."""


class IdentityClient:
    """Resolve bearer tokens to user records via ``/auth/v1/user``."""

    _USER_PATH = "/auth/v1/user"

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport

    async def get_user(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the user for ``token`` or ``None`` when the token is rejected."""
        if not token:
            return None

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    self._USER_PATH,
                    headers={
                        "apikey": self._api_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity lookup failed: {exc}") from exc

        if response.status_code in (401, 403, 404):
            return None
        if response.status_code >= 400:
            raise IdentityProviderError(
                f"Identity provider returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise IdentityProviderError("Identity provider returned non-JSON") from exc
        user = payload.get("user", payload) if isinstance(payload, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user


__all__ = ["IdentityClient", "IdentityProviderError"]
