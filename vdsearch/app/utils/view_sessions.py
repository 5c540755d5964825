from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from vdsearch.app import config
from vdsearch.app.core.view_router import ViewRouter


@dataclass
class SessionRecord:
    router: ViewRouter = field(default_factory=ViewRouter)
    last_seen: float = field(default_factory=time.monotonic)


# Mutated only from the event loop thread; there are no awaits between reads
# and writes, so no lock is taken.
_sessions: Dict[str, SessionRecord] = {}


def _evict_idle(now: float) -> None:
    ttl = max(config.VIEW_SESSION_IDLE_SECONDS, 1)
    expired = [session_id for session_id, record in _sessions.items() if now - record.last_seen > ttl]
    for session_id in expired:
        _sessions.pop(session_id, None)


def create_session() -> tuple[str, ViewRouter]:
    now = time.monotonic()
    _evict_idle(now)
    session_id = str(uuid.uuid4())
    record = SessionRecord(last_seen=now)
    _sessions[session_id] = record
    return session_id, record.router


def get_session(session_id: str) -> Optional[ViewRouter]:
    record = _sessions.get(session_id)
    if record is None:
        return None
    now = time.monotonic()
    if now - record.last_seen > max(config.VIEW_SESSION_IDLE_SECONDS, 1):
        _sessions.pop(session_id, None)
        return None
    record.last_seen = now
    return record.router


def clear_session(session_id: str) -> None:
    _sessions.pop(session_id, None)


def reset_sessions() -> None:
    """Drop every session; used by tests."""
    _sessions.clear()


def session_count() -> int:
    return len(_sessions)
