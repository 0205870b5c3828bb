"""
Purpose:
- Cast one vote against the store and move the swipe queue forward.

Flow:
- look up the voter's existing vote for the caption
- insert / update / delete according to decide_vote
- only after the store call succeeds: update local counts, advance cursor

A failed store call leaves the session exactly as it was, so the same vote
can simply be sent again.
"""

from __future__ import annotations
import logging
from typing import Optional, Protocol

from ..core.errors import CaptionFeedError, MutationFailure
from ..feed.schema import Vote, VoteOutcome, UPVOTE, DOWNVOTE
from ..feed.session import FeedSession, decide_vote, record_vote

logger = logging.getLogger(__name__)

class VoteRows(Protocol):
    def find(self, caption_id: str, profile_id: str) -> Optional[Vote]: ...
    def insert(self, caption_id: str, profile_id: str, value: int, now: Optional[str] = None) -> Vote: ...
    def update(self, vote: Vote, value: int, now: Optional[str] = None) -> Vote: ...
    def delete(self, vote: Vote) -> None: ...

class VoteInFlight(Exception):
    """A vote for this session has not come back yet."""

def cast_vote(
    votes: VoteRows,
    session: FeedSession,
    caption_id: str,
    value: int,
    voter_id: str,
    now: Optional[str] = None,
) -> VoteOutcome:
    if value not in (UPVOTE, DOWNVOTE):
        raise ValueError(f"vote value must be +1 or -1, got {value!r}")
    # non-blocking: a second vote is refused, never queued behind the first
    if not session.lock.acquire(blocking=False):
        raise VoteInFlight(caption_id)
    try:
        try:
            existing = votes.find(caption_id, voter_id)
            outcome = decide_vote(existing.vote_value if existing else None, value)
            if outcome is VoteOutcome.INSERTED:
                votes.insert(caption_id, voter_id, value, now)
            elif outcome is VoteOutcome.RETRACTED:
                votes.delete(existing)
            else:
                votes.update(existing, value, now)
        except CaptionFeedError as e:
            logger.error("vote %+d on caption %s by %s failed: %s", value, caption_id, voter_id, e)
            if isinstance(e, MutationFailure):
                raise
            raise MutationFailure(str(e), step="lookup-vote") from e
        record_vote(session, caption_id, outcome, value)
    finally:
        session.lock.release()

    logger.debug("vote %s on caption %s, cursor now %d", outcome.value, caption_id, session.cursor)
    return outcome
