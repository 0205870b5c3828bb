"""
Purpose:
- Centralized configuration using pydantic-settings.
- Reads from environment variables and optional .env file.
- Keeps backend URLs, keys and feed policy tunable without code changes.
"""

from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic v2 config (env file + ignore unexpected env vars)
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API host/port
    host: str = Field(default="0.0.0.0", description="Bind address for FastAPI/Uvicorn")
    port: int = Field(default=8000, description="Port for FastAPI/Uvicorn")

    # CORS
    cors_allow_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed origins for browser apps"
    )

    # ---- Managed backend (auth + data API) ----
    # SUPABASE_URL / SUPABASE_ANON_KEY from .env or shell
    supabase_url: str = Field(default="http://localhost:54321", description="Base URL of the managed backend")
    supabase_anon_key: Optional[str] = None
    http_timeout: float = Field(default=15.0, description="Timeout (s) for every outbound call")

    # ---- Sign-in ----
    site_url: str = Field(default="http://localhost:8000", description="Public base URL used for the OAuth callback")
    auth_provider: str = Field(default="google")
    token_cookie_name: str = Field(default="cf_access_token")
    verifier_cookie_name: str = Field(default="cf_code_verifier")

    # ---- Upload / caption pipeline ----
    pipeline_base_url: str = Field(default="http://localhost:8080/pipeline")
    upload_allowed_types: List[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
    )
    upload_is_common_use: bool = Field(default=False)

    # ---- Feed policy ----
    feed_max_items: int = Field(default=30)          # queue length cap
    feed_max_per_image: int = Field(default=1)       # 1 = strict dedupe, 2 = allow one repeat
    feed_shuffle: bool = Field(default=False)        # shuffle accepted items before serving
    feed_pool_size: int = Field(default=120)         # candidates fetched from a random offset
    feed_max_sessions: int = Field(default=10000)   # live sessions kept in memory, LRU beyond

    # ---- Gallery ----
    gallery_limit: int = Field(default=60)

    log_level: str = Field(default="INFO")

settings = Settings()
