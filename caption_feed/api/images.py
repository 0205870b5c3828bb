"""
Purpose:
- Signed-in image gallery (id, url, description) straight from the images table.
"""

from fastapi import APIRouter, Depends, Query

from ..auth.identity import User
from ..core.settings import settings
from ..store.client import DataStore
from ..store.queries import list_images
from .deps import current_user, data_store

router = APIRouter(prefix="/api/v1/images", tags=["images"])

@router.get("")
def gallery(
    limit: int | None = Query(default=None, ge=1, le=500, description="Cap on images returned"),
    user: User = Depends(current_user),
    store: DataStore = Depends(data_store),
):
    images = list_images(store, limit or settings.gallery_limit)
    return {
        "ok": True,
        "user": {"id": user.id, "email": user.email},
        "count": len(images),
        "images": [img.model_dump() for img in images],
    }
