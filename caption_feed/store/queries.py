"""
Purpose:
- Typed queries over the data API: the random candidate pool for a feed,
  the image gallery, profile lookup, and per-(caption, voter) vote rows.
"""

from __future__ import annotations
import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.errors import DataFetchFailure
from ..feed.schema import CaptionCandidate, Image, Vote
from .client import DataStore

logger = logging.getLogger(__name__)

VOTE_COLUMNS = "id, caption_id, profile_id, vote_value, created_at, modified_at"
CANDIDATE_COLUMNS = (
    "id, content, image_id, is_public, "
    "images(id, url, image_description), "
    f"caption_votes({VOTE_COLUMNS})"
)
PUBLIC_WITH_IMAGE = {"is_public": "eq.true", "image_id": "not.is.null"}

def _candidate(row: Dict[str, Any]) -> CaptionCandidate:
    row = dict(row)
    image = row.pop("images", None)
    votes = row.pop("caption_votes", None) or []
    return CaptionCandidate(**row, image=image, votes=votes)

def fetch_candidate_pool(
    store: DataStore,
    pool_size: int,
    rng: Optional[random.Random] = None,
) -> List[CaptionCandidate]:
    """
    Pull `pool_size` public captions starting at a random offset, each joined
    with its image and all its votes. Order is whatever the store returns.
    """
    total = store.count("captions", PUBLIC_WITH_IMAGE)
    if total == 0:
        return []
    offset = (rng or random).randint(0, max(total - pool_size, 0))
    rows = store.select(
        "captions",
        CANDIDATE_COLUMNS,
        PUBLIC_WITH_IMAGE,
        offset=offset,
        limit=pool_size,
    )
    logger.debug("candidate pool: %d rows from offset %d of %d", len(rows), offset, total)
    return [_candidate(r) for r in rows]

def list_images(store: DataStore, limit: int) -> List[Image]:
    rows = store.select("images", "id, url, image_description", limit=limit)
    return [Image(**r) for r in rows]

def resolve_profile_id(store: DataStore, user_id: str) -> str:
    rows = store.select("profiles", "id, user_id", {"user_id": f"eq.{user_id}"}, limit=1)
    if not rows:
        raise DataFetchFailure(f"no profile for user {user_id}")
    return str(rows[0]["id"])

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

class CaptionVotes:
    """Vote rows for one voter, addressed by caption."""

    def __init__(self, store: DataStore):
        self.store = store

    def find(self, caption_id: str, profile_id: str) -> Optional[Vote]:
        rows = self.store.select(
            "caption_votes",
            VOTE_COLUMNS,
            {"caption_id": f"eq.{caption_id}", "profile_id": f"eq.{profile_id}"},
            limit=1,
        )
        return Vote(**rows[0]) if rows else None

    def insert(self, caption_id: str, profile_id: str, value: int, now: Optional[str] = None) -> Vote:
        stamp = now or _now()
        row = self.store.insert("caption_votes", {
            "caption_id": caption_id,
            "profile_id": profile_id,
            "vote_value": value,
            "created_at": stamp,
            "modified_at": stamp,
        })
        return Vote(**row)

    def update(self, vote: Vote, value: int, now: Optional[str] = None) -> Vote:
        row = self.store.update("caption_votes", vote.id, {
            "vote_value": value,
            "modified_at": now or _now(),
        })
        return Vote(**{**vote.model_dump(), **row})

    def delete(self, vote: Vote) -> None:
        self.store.delete("caption_votes", vote.id)
