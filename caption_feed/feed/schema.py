"""
Purpose:
- Pydantic models for store rows, feed items and API payloads.
- Row models mirror the data API columns; FeedItem is built in memory only.
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

UPVOTE = 1
DOWNVOTE = -1

class Row(BaseModel):
    # ids come back as uuids or bigints depending on the table
    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

class Image(Row):
    id: str
    url: Optional[str] = None
    # column is image_description in the images table
    description: Optional[str] = Field(default=None, alias="image_description")

class Caption(Row):
    id: str
    image_id: Optional[str] = None
    content: Optional[str] = ""
    is_public: bool = True

class Vote(Row):
    id: Optional[str] = None
    caption_id: str
    profile_id: str
    vote_value: int
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None

class CaptionCandidate(Caption):
    """A caption joined with its image (may be missing) and every vote on it."""
    image: Optional[Image] = None
    votes: List[Vote] = []

class FeedItem(BaseModel):
    caption_id: str
    content: str
    image_id: str
    image_url: str
    image_description: Optional[str] = None
    upvotes: int = 0
    downvotes: int = 0
    my_vote: Optional[int] = None

class VoteOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    RETRACTED = "retracted"

# ---- API payloads ----

class VoteIn(BaseModel):
    caption_id: str = Field(..., min_length=1)
    value: int = Field(..., description="+1 for up, -1 for down")

class FeedState(BaseModel):
    ok: bool = True
    exhausted: bool
    position: int
    total: int
    current: Optional[FeedItem] = None

class VoteResponse(FeedState):
    outcome: VoteOutcome
