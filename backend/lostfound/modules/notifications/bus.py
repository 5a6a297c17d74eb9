from __future__ import annotations

from queue import Full, Queue
from threading import Lock
from typing import Any, Dict, List

from ...logger import get_logger

logger = get_logger(__name__)

# Simple in-memory pub/sub for SSE. Not suitable for multi-process deployments.
_MAX_PENDING = 100
_subs: Dict[int, List[Queue]] = {}
_lock = Lock()


def subscribe(user_id: int) -> Queue:
    q: Queue = Queue(maxsize=_MAX_PENDING)
    with _lock:
        _subs.setdefault(user_id, []).append(q)
    return q


def unsubscribe(user_id: int, q: Queue) -> None:
    with _lock:
        arr = _subs.get(user_id)
        if not arr:
            return
        if q in arr:
            arr.remove(q)
        if not arr:
            _subs.pop(user_id, None)


def subscriber_count(user_id: int) -> int:
    with _lock:
        return len(_subs.get(user_id, []))


def publish(user_id: int, event: Dict[str, Any]) -> int:
    """Fan an event out to the user's open streams. Returns how many received it."""
    with _lock:
        arr = list(_subs.get(user_id, []))
    delivered = 0
    for q in arr:
        try:
            q.put_nowait(event)
            delivered += 1
        except Full:
            logger.warning("Dropping notification event for user %s: stream backlog full", user_id)
    return delivered
