"""
Purpose:
- Expose the swipe feed: build on page load, read the current item,
  vote (advances the queue), upload (new item jumps to the front).

Notes:
- The FeedSession lives in the in-memory registry under the signed-in
  user's id, so a queue is only ever served to the user it was built for.
- Voter identity is the profile id, resolved once at build time.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ..auth.identity import User
from ..core.settings import settings
from ..feed.registry import registry
from ..feed.schema import FeedState, VoteIn, VoteResponse
from ..feed.session import FeedSession, build_session
from ..pipeline.client import CaptionPipeline
from ..services.uploads import upload_and_insert
from ..services.voting import VoteInFlight, cast_vote
from ..store.client import DataStore
from ..store.queries import CaptionVotes, fetch_candidate_pool, resolve_profile_id
from .deps import caption_pipeline, current_user, data_store

router = APIRouter(tags=["feed"])

def _state(session: FeedSession) -> dict:
    return FeedState(
        exhausted=session.exhausted,
        position=session.cursor,
        total=len(session.items),
        current=session.current,
    ).model_dump()

def _no_session() -> JSONResponse:
    return JSONResponse(status_code=404, content={"ok": False, "error": "no-feed-session"})

def _session_for(user: User) -> Optional[FeedSession]:
    session = registry.get(user.id)
    if session is None or session.user_id != user.id:
        return None
    return session

def _build(user: User, store: DataStore) -> dict:
    voter_id = resolve_profile_id(store, user.id)
    pool = fetch_candidate_pool(store, settings.feed_pool_size)
    session = build_session(
        pool,
        voter_id,
        max_items=settings.feed_max_items,
        max_per_image=settings.feed_max_per_image,
        shuffle=settings.feed_shuffle,
        user_id=user.id,
    )
    # a rebuild replaces the user's previous queue
    registry.put(user.id, session)
    return _state(session)

@router.get("/feed")
def feed_page(user: User = Depends(current_user), store: DataStore = Depends(data_store)):
    """Page load: always a fresh queue."""
    return _build(user, store)

@router.post("/api/v1/feed/build")
def feed_build(user: User = Depends(current_user), store: DataStore = Depends(data_store)):
    return _build(user, store)

@router.get("/api/v1/feed/current", response_model=FeedState)
def feed_current(user: User = Depends(current_user)):
    session = _session_for(user)
    if session is None:
        return _no_session()
    return _state(session)

@router.post("/api/v1/feed/vote", response_model=VoteResponse)
def feed_vote(
    payload: VoteIn,
    user: User = Depends(current_user),
    store: DataStore = Depends(data_store),
):
    """
    Cast +1 / -1 on a caption. Same value twice retracts; opposite flips.
    Any success moves the queue forward by one.
    """
    session = _session_for(user)
    if session is None:
        return _no_session()
    try:
        outcome = cast_vote(CaptionVotes(store), session, payload.caption_id, payload.value, session.voter_id)
    except ValueError as e:
        return JSONResponse(status_code=422, content={"ok": False, "error": str(e)})
    except VoteInFlight:
        return JSONResponse(status_code=409, content={"ok": False, "error": "vote-in-flight"})
    return {**_state(session), "outcome": outcome.value}

@router.post("/api/v1/feed/upload")
async def feed_upload(
    image: UploadFile = File(...),
    is_common_use: Optional[bool] = Form(default=None),
    user: User = Depends(current_user),
    pipeline: CaptionPipeline = Depends(caption_pipeline),
):
    session = _session_for(user)
    if session is None:
        return _no_session()
    raw = await image.read()
    common = settings.upload_is_common_use if is_common_use is None else is_common_use
    item = await run_in_threadpool(
        upload_and_insert, pipeline, session, raw, settings.upload_allowed_types, common
    )
    return {**_state(session), "inserted": item.model_dump(), "filename": image.filename}
