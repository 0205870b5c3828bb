# Common language: Environment/ops probe that surfaces version pins, config presence and live sessions.
# Use this before/after upgrades to confirm no silent drift.

from fastapi import APIRouter
from ..core.settings import settings
from ..feed.registry import registry
import sys, importlib

router = APIRouter(tags=["health"])

def _ver(modname: str) -> str:
    try:
        m = importlib.import_module(modname)
        return getattr(m, "__version__", "unknown")
    except ImportError:
        return "not-installed"

@router.get("/healthz")
def healthz():
    return {
        "status": "ok",
        "python": sys.version.split()[0],
        "versions": {
            "fastapi": _ver("fastapi"),
            "uvicorn": _ver("uvicorn"),
            "pydantic": _ver("pydantic"),
            "pydantic_settings": _ver("pydantic_settings"),
            "httpx": _ver("httpx"),
            "PIL": _ver("PIL"),
        },
        "config": {
            "supabase_url": settings.supabase_url,
            "pipeline_base_url": settings.pipeline_base_url,
            "auth_provider": settings.auth_provider,
            "feed": {
                "max_items": settings.feed_max_items,
                "max_per_image": settings.feed_max_per_image,
                "shuffle": settings.feed_shuffle,
                "pool_size": settings.feed_pool_size,
            },
            "env_keys_present": {
                "SUPABASE_ANON_KEY": bool(settings.supabase_anon_key),
            },
        },
        "feed_sessions": len(registry),
    }
