"""
Purpose:
- Sanity-check critical library versions after upgrades.
- Import the exact modules we use and print versions so we can spot drift immediately.
"""

import sys
import fastapi
import uvicorn
import httpx
import pydantic
import PIL
from pydantic_settings import BaseSettings

print("python", sys.version)
print("fastapi", fastapi.__version__)
print("uvicorn", uvicorn.__version__)
print("httpx", httpx.__version__)
print("pydantic", pydantic.VERSION)
print("pillow", PIL.__version__)
print("pydantic-settings", BaseSettings.__module__.split(".")[0])  # presence check
# the app factory must import cleanly with the current env
from caption_feed.main import create_app
print("routes", len(create_app().routes))
print("OK")
