"""
Purpose:
- Talk to the managed identity provider (GoTrue-style auth API) over httpx.
- OAuth sign-in uses the PKCE code flow so the server can finish it:
    /login          -> authorize URL + verifier cookie
    /auth/callback  -> exchange ?code= + verifier for an access token

Notes:
- A 401/403 from /user means "no user", not an error.
- The access token is what the data API and the upload pipeline accept as bearer.
"""

from __future__ import annotations
import base64
import hashlib
import logging
import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import httpx
from pydantic import BaseModel

from ..core.errors import AuthRequired, DataFetchFailure
from ..core.settings import settings

logger = logging.getLogger(__name__)

class User(BaseModel):
    id: str
    email: Optional[str] = None

def new_code_verifier() -> str:
    return secrets.token_urlsafe(48)

def code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

class IdentityProvider:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/auth/v1"
        self.api_key = api_key
        headers = {"apikey": api_key} if api_key else {}
        self._http = httpx.Client(base_url=self.base_url, headers=headers, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def get_current_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        try:
            r = self._http.get("/user", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            logger.warning("user lookup failed: %r", e)
            raise DataFetchFailure(f"auth: {e}") from e
        if r.status_code in (401, 403):
            return None
        if r.is_error:
            raise DataFetchFailure(f"auth: HTTP {r.status_code}")
        data = r.json() or {}
        return User(id=str(data["id"]), email=data.get("email"))

    def sign_in_url(self, provider: str, redirect_to: str, verifier: str) -> str:
        query = urlencode({
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge(verifier),
            "code_challenge_method": "s256",
        })
        return f"{self.base_url}/authorize?{query}"

    def exchange_code(self, code: str, verifier: str) -> Dict[str, Any]:
        """Swap an OAuth callback code for a session; returns the token payload."""
        try:
            r = self._http.post(
                "/token",
                params={"grant_type": "pkce"},
                json={"auth_code": code, "code_verifier": verifier},
            )
            r.raise_for_status()
            payload = r.json() or {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("code exchange failed: %r", e)
            raise AuthRequired("code-exchange-failed") from e
        if not payload.get("access_token"):
            raise AuthRequired("code-exchange-failed")
        return payload

    def sign_out(self, token: Optional[str]) -> bool:
        """Revoke the session upstream. Local cookies are cleared either way."""
        if not token:
            return False
        try:
            r = self._http.post("/logout", headers={"Authorization": f"Bearer {token}"})
            r.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning("sign-out failed upstream: %r", e)
            return False

_IDP_SINGLETON: Optional[IdentityProvider] = None

def get_identity_provider() -> IdentityProvider:
    global _IDP_SINGLETON
    if _IDP_SINGLETON is None:
        _IDP_SINGLETON = IdentityProvider(
            base_url=settings.supabase_url,
            api_key=settings.supabase_anon_key,
            timeout=settings.http_timeout,
        )
    return _IDP_SINGLETON
