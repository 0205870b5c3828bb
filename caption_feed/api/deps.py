"""
Purpose:
- FastAPI dependencies shared by the routers: token, signed-in user,
  per-request data store and pipeline clients.
- Tests swap these out through app.dependency_overrides.
"""

from typing import Iterator, Optional
from fastapi import Depends, Request

from ..auth.identity import IdentityProvider, User, get_identity_provider
from ..core.errors import AuthRequired
from ..core.settings import settings
from ..pipeline.client import CaptionPipeline, get_pipeline
from ..store.client import DataStore, get_store

def identity_provider() -> IdentityProvider:
    return get_identity_provider()

def access_token(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.token_cookie_name)
    if token:
        return token
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None

def optional_user(
    token: Optional[str] = Depends(access_token),
    idp: IdentityProvider = Depends(identity_provider),
) -> Optional[User]:
    return idp.get_current_user(token)

def current_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise AuthRequired()
    return user

def data_store(token: Optional[str] = Depends(access_token)) -> Iterator[DataStore]:
    store = get_store(token)
    try:
        yield store
    finally:
        store.close()

def caption_pipeline(
    user: User = Depends(current_user),
    token: Optional[str] = Depends(access_token),
) -> Iterator[CaptionPipeline]:
    pipeline = get_pipeline(token or "")
    try:
        yield pipeline
    finally:
        pipeline.close()
