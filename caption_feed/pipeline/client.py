"""
Purpose:
- Client for the external upload + caption-generation pipeline.
- Four strictly sequential steps, bearer-token authenticated:
    1) POST /generate-presigned-url {contentType}        -> {presignedUrl, cdnUrl}
    2) PUT  <presignedUrl> raw bytes
    3) POST /upload-image-from-url {imageUrl, isCommonUse} -> {imageId}
    4) POST /generate-captions {imageId}                 -> [{id, content}, ...]

Notes:
- Any transport error or non-2xx status fails that step with MutationFailure
  (step name attached) and the remaining steps are not attempted.
- Nothing is rolled back; the pipeline owns cleanup of half-finished uploads.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional
import logging
import httpx
from PIL import Image, UnidentifiedImageError

from ..core.errors import MutationFailure
from ..core.settings import settings

logger = logging.getLogger(__name__)

@dataclass
class GeneratedCaption:
    id: str
    content: str

@dataclass
class UploadResult:
    image_id: str
    cdn_url: str
    captions: List[GeneratedCaption] = field(default_factory=list)

def sniff_content_type(raw: bytes, allowed: List[str]) -> str:
    """
    Identify the image format from its bytes (not the filename).
    Raises MutationFailure for unreadable or disallowed images.
    """
    try:
        with Image.open(BytesIO(raw)) as img:
            fmt = img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise MutationFailure(f"not an image: {e}", step="validate") from e
    mime = Image.MIME.get(fmt or "", "")
    if mime not in allowed:
        raise MutationFailure(f"unsupported image type {mime or fmt!r}", step="validate")
    return mime

class CaptionPipeline:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = {"Authorization": f"Bearer {token}"}
        self._http = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def _post(self, step: str, path: str, body: Dict[str, Any]) -> Any:
        try:
            r = self._http.post(f"{self.base_url}{path}", json=body, headers=self._auth)
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("pipeline step %s failed: %r", step, e)
            raise MutationFailure(f"{step}: {e}", step=step) from e

    def presign(self, content_type: str) -> Dict[str, str]:
        data = self._post("presign", "/generate-presigned-url", {"contentType": content_type})
        if not data.get("presignedUrl") or not data.get("cdnUrl"):
            raise MutationFailure("presign: response missing urls", step="presign")
        return data

    def transfer(self, presigned_url: str, raw: bytes, content_type: str) -> None:
        # presigned URL carries its own auth; no bearer header here
        try:
            r = self._http.put(presigned_url, content=raw, headers={"Content-Type": content_type})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("pipeline step transfer failed: %r", e)
            raise MutationFailure(f"transfer: {e}", step="transfer") from e

    def register(self, cdn_url: str, is_common_use: bool) -> str:
        data = self._post("register", "/upload-image-from-url", {"imageUrl": cdn_url, "isCommonUse": is_common_use})
        image_id = data.get("imageId")
        if not image_id:
            raise MutationFailure("register: response missing imageId", step="register")
        return str(image_id)

    def generate_captions(self, image_id: str) -> List[GeneratedCaption]:
        data = self._post("generate-captions", "/generate-captions", {"imageId": image_id})
        if isinstance(data, dict):
            data = data.get("captions") or []
        return [GeneratedCaption(id=str(c["id"]), content=c.get("content") or "") for c in data]

    def upload(self, raw: bytes, content_type: str, is_common_use: bool = False) -> UploadResult:
        urls = self.presign(content_type)
        self.transfer(urls["presignedUrl"], raw, content_type)
        image_id = self.register(urls["cdnUrl"], is_common_use)
        captions = self.generate_captions(image_id)
        logger.info("uploaded image %s, %d captions generated", image_id, len(captions))
        return UploadResult(image_id=image_id, cdn_url=urls["cdnUrl"], captions=captions)

def get_pipeline(token: str) -> CaptionPipeline:
    return CaptionPipeline(settings.pipeline_base_url, token, timeout=settings.http_timeout)
