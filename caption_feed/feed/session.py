"""
Purpose:
- The feed session: a bounded, per-image-deduplicated swipe queue of
  (image, caption) pairs plus a cursor at the next unseen item.
- Pure functions over FeedSession; the store round-trip for votes lives in
  services/voting.py.

Rules:
- build walks candidates in the order received and accepts greedily.
- every successful vote advances the cursor by one, retraction included.
- insertion puts the new item ahead of the unseen remainder and resets the cursor;
  seen items are kept at the tail.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import random
import threading

from .schema import CaptionCandidate, FeedItem, VoteOutcome, UPVOTE, DOWNVOTE

@dataclass
class FeedSession:
    voter_id: str
    items: List[FeedItem] = field(default_factory=list)
    cursor: int = 0
    # signed-in user the queue was built for; voter_id is their profile id
    user_id: Optional[str] = None
    # held for the duration of a vote, and briefly by an upload insertion
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def vote_in_flight(self) -> bool:
        return self.lock.locked()

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.items)

    @property
    def current(self) -> Optional[FeedItem]:
        return None if self.exhausted else self.items[self.cursor]

    @property
    def remaining(self) -> List[FeedItem]:
        return self.items[self.cursor:]

    def advance(self) -> "FeedSession":
        # clamped: an exhausted session stays exhausted
        self.cursor = min(self.cursor + 1, len(self.items))
        return self

def _feed_item(cand: CaptionCandidate, voter_id: str) -> FeedItem:
    up = sum(1 for v in cand.votes if v.vote_value == UPVOTE)
    down = sum(1 for v in cand.votes if v.vote_value == DOWNVOTE)
    mine = next((v.vote_value for v in cand.votes if v.profile_id == voter_id), None)
    return FeedItem(
        caption_id=cand.id,
        content=cand.content or "",
        image_id=cand.image.id,
        image_url=cand.image.url,
        image_description=cand.image.description,
        upvotes=up,
        downvotes=down,
        my_vote=mine,
    )

def build_session(
    candidates: Iterable[CaptionCandidate],
    voter_id: str,
    *,
    max_items: int = 30,
    max_per_image: int = 1,
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
    user_id: Optional[str] = None,
) -> FeedSession:
    """
    Accept candidates in order until max_items are taken or the list runs out.
    A candidate is skipped when its image is missing, has no URL, or has
    already been used max_per_image times in this build.
    """
    used: Dict[str, int] = {}
    accepted: List[FeedItem] = []
    for cand in candidates:
        if len(accepted) >= max_items:
            break
        img = cand.image
        if img is None or not img.url:
            continue
        if used.get(img.id, 0) >= max_per_image:
            continue
        used[img.id] = used.get(img.id, 0) + 1
        accepted.append(_feed_item(cand, voter_id))

    if shuffle:
        (rng or random).shuffle(accepted)
    return FeedSession(voter_id=voter_id, items=accepted, cursor=0, user_id=user_id)

def decide_vote(existing: Optional[int], value: int) -> VoteOutcome:
    """Three-way toggle: no vote -> insert, same -> retract, opposite -> update."""
    if value not in (UPVOTE, DOWNVOTE):
        raise ValueError(f"vote value must be +1 or -1, got {value!r}")
    if existing is None:
        return VoteOutcome.INSERTED
    if existing == value:
        return VoteOutcome.RETRACTED
    return VoteOutcome.UPDATED

def _bump(item: FeedItem, value: Optional[int], delta: int) -> None:
    if value == UPVOTE:
        item.upvotes = max(item.upvotes + delta, 0)
    elif value == DOWNVOTE:
        item.downvotes = max(item.downvotes + delta, 0)

def record_vote(session: FeedSession, caption_id: str, outcome: VoteOutcome, value: int) -> FeedSession:
    """
    Reflect a stored vote in the local items, then advance the cursor once.
    Only call after the store write succeeded.
    """
    for item in session.items:
        if item.caption_id != caption_id:
            continue
        if outcome is VoteOutcome.INSERTED:
            _bump(item, value, +1)
            item.my_vote = value
        elif outcome is VoteOutcome.UPDATED:
            _bump(item, item.my_vote if item.my_vote is not None else -value, -1)
            _bump(item, value, +1)
            item.my_vote = value
        else:
            _bump(item, value, -1)
            item.my_vote = None
    return session.advance()

def insert_item(session: FeedSession, item: FeedItem) -> FeedSession:
    """
    Put item at the head of the unseen remainder and restart from it.
    Already-seen items keep their order and move behind the unseen ones.
    """
    seen, unseen = session.items[:session.cursor], session.items[session.cursor:]
    session.items = [item] + unseen + seen
    session.cursor = 0
    return session
