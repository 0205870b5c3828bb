"""
Purpose:
- Keep each signed-in user's FeedSession in memory, keyed by user id.
- One user, one session: a rebuild replaces the old one.
- Bounded: past max_sessions the least recently used session is dropped.
  Nothing here is persisted; a dropped or lost session simply means the
  next request rebuilds.
"""

from __future__ import annotations
from collections import OrderedDict
from typing import Optional
import threading

from ..core.settings import settings
from .session import FeedSession

class SessionRegistry:
    def __init__(self, max_sessions: int = 10000):
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, FeedSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, user_id: Optional[str]) -> Optional[FeedSession]:
        if not user_id:
            return None
        with self._lock:
            session = self._sessions.get(user_id)
            if session is not None:
                self._sessions.move_to_end(user_id)
            return session

    def put(self, user_id: str, session: FeedSession) -> FeedSession:
        with self._lock:
            self._sessions[user_id] = session
            self._sessions.move_to_end(user_id)
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
        return session

    def discard(self, user_id: Optional[str]) -> None:
        if user_id:
            with self._lock:
                self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

registry = SessionRegistry(settings.feed_max_sessions)
