"""
Purpose:
- The three failure kinds of the app and how the API surfaces them.

AuthRequired     -> redirect to /login (pages) or 401 JSON (api)
DataFetchFailure -> 502 JSON, inline error, no retry
MutationFailure  -> 502 JSON, prior state intact, caller may retry
"""

from __future__ import annotations
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

class CaptionFeedError(Exception):
    """Base class for failures surfaced to the user."""

class AuthRequired(CaptionFeedError):
    def __init__(self, message: str = "auth-required"):
        super().__init__(message)

class DataFetchFailure(CaptionFeedError):
    pass

class MutationFailure(CaptionFeedError):
    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step

def _wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/") or request.method != "GET"

async def _auth_required(request: Request, exc: AuthRequired):
    if _wants_json(request):
        return JSONResponse(status_code=401, content={"ok": False, "error": "auth-required"})
    return RedirectResponse(url="/login", status_code=303)

async def _data_fetch_failure(request: Request, exc: DataFetchFailure):
    return JSONResponse(status_code=502, content={"ok": False, "error": f"fetch-failed: {exc}"})

async def _mutation_failure(request: Request, exc: MutationFailure):
    return JSONResponse(
        status_code=502,
        content={"ok": False, "error": f"mutation-failed: {exc}", "step": exc.step},
    )

def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthRequired, _auth_required)
    app.add_exception_handler(DataFetchFailure, _data_fetch_failure)
    app.add_exception_handler(MutationFailure, _mutation_failure)
