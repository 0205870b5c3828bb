"""
Purpose:
- Sign-in / sign-out redirects around the managed identity provider.
- / and /login bounce signed-in users straight to the feed.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth.identity import IdentityProvider, User, new_code_verifier
from ..core.errors import AuthRequired
from ..core.settings import settings
from ..feed.registry import registry
from .deps import access_token, identity_provider, optional_user

router = APIRouter(tags=["auth"])

def _secure() -> bool:
    return settings.site_url.startswith("https://")

@router.get("/")
def index(user: Optional[User] = Depends(optional_user)):
    return RedirectResponse(url="/feed" if user else "/login", status_code=303)

@router.get("/login")
def login(
    user: Optional[User] = Depends(optional_user),
    idp: IdentityProvider = Depends(identity_provider),
):
    if user:
        return RedirectResponse(url="/feed", status_code=303)
    verifier = new_code_verifier()
    url = idp.sign_in_url(
        settings.auth_provider,
        redirect_to=f"{settings.site_url.rstrip('/')}/auth/callback",
        verifier=verifier,
    )
    resp = RedirectResponse(url=url, status_code=303)
    resp.set_cookie(
        settings.verifier_cookie_name, verifier,
        max_age=600, httponly=True, secure=_secure(), samesite="lax",
    )
    return resp

@router.get("/auth/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    previous: Optional[User] = Depends(optional_user),
    idp: IdentityProvider = Depends(identity_provider),
):
    if error or not code:
        # provider refused; do not bounce back into another sign-in attempt
        return JSONResponse(
            status_code=400,
            content={"ok": False, "error": f"sign-in-failed: {error_description or error or 'missing code'}"},
        )
    verifier = request.cookies.get(settings.verifier_cookie_name)
    if not verifier:
        raise AuthRequired("missing-code-verifier")

    try:
        payload = idp.exchange_code(code, verifier)
    except AuthRequired as e:
        # same as a provider error: answer here instead of restarting sign-in
        return JSONResponse(status_code=400, content={"ok": False, "error": f"sign-in-failed: {e}"})

    # whoever was signed in before in this browser loses their queue, and the
    # new user starts fresh
    if previous is not None:
        registry.discard(previous.id)
    registry.discard((payload.get("user") or {}).get("id"))
    resp = RedirectResponse(url="/feed", status_code=303)
    resp.set_cookie(
        settings.token_cookie_name, payload["access_token"],
        max_age=int(payload.get("expires_in") or 3600),
        httponly=True, secure=_secure(), samesite="lax",
    )
    resp.delete_cookie(settings.verifier_cookie_name)
    return resp

@router.post("/auth/logout")
def logout(
    user: Optional[User] = Depends(optional_user),
    token: Optional[str] = Depends(access_token),
    idp: IdentityProvider = Depends(identity_provider),
):
    idp.sign_out(token)
    if user is not None:
        registry.discard(user.id)
    resp = RedirectResponse(url="/login", status_code=303)
    resp.delete_cookie(settings.token_cookie_name)
    return resp
