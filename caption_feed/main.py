"""
Purpose:
- FastAPI application factory and router mounts.
- Adds CORS for the browser front-end, logging and the app's error handlers.
- Uvicorn will serve this on 0.0.0.0:8000 by default.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.settings import settings
from .core.log_config import configure_logging
from .core.errors import install_error_handlers
from .api.health import router as health_router
from .api.auth import router as auth_router
from .api.feed import router as feed_router
from .api.images import router as images_router

def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Caption Feed", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(feed_router)
    app.include_router(images_router)
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("caption_feed.main:app", host=settings.host, port=settings.port)
