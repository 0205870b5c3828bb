"""
Purpose:
- Run an uploaded image through the caption pipeline and put the first
  generated caption at the front of the voter's queue.
"""

from __future__ import annotations
import logging
from typing import List

from ..core.errors import MutationFailure
from ..feed.schema import FeedItem
from ..feed.session import FeedSession, insert_item
from ..pipeline.client import CaptionPipeline, sniff_content_type

logger = logging.getLogger(__name__)

def upload_and_insert(
    pipeline: CaptionPipeline,
    session: FeedSession,
    raw: bytes,
    allowed_types: List[str],
    is_common_use: bool = False,
) -> FeedItem:
    content_type = sniff_content_type(raw, allowed_types)
    result = pipeline.upload(raw, content_type, is_common_use=is_common_use)
    if not result.captions:
        logger.error("image %s: pipeline returned no captions", result.image_id)
        raise MutationFailure("no captions generated", step="generate-captions")

    first = result.captions[0]
    item = FeedItem(
        caption_id=first.id,
        content=first.content,
        image_id=result.image_id,
        image_url=result.cdn_url,
    )
    # waits out an in-flight vote so its cursor advance cannot skip the new item
    with session.lock:
        insert_item(session, item)
    return item
