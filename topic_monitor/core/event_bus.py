from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from topic_monitor.schema.events import EmittedEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    Per-session fan-out of monitoring events.

    Every subscriber owns a bounded queue. Publishing never blocks the segment path:
    a subscriber whose queue is full simply misses the event.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._subscribers: dict[str, set[asyncio.Queue[EmittedEvent]]] = defaultdict(set)

    async def publish(self, session_id: str, event: EmittedEvent) -> None:
        lock = self._locks.get(session_id)
        if lock is None:
            return
        async with lock:
            for q in list(self._subscribers.get(session_id, ())):
                if q.full():
                    logger.debug("dropping %s event for slow subscriber on %s", event.type, session_id)
                    continue
                q.put_nowait(event.model_copy(deep=True))

    async def subscribe(self, session_id: str, maxsize: int = 1000) -> asyncio.Queue[EmittedEvent]:
        q: asyncio.Queue[EmittedEvent] = asyncio.Queue(maxsize=maxsize)
        async with self._locks[session_id]:
            self._subscribers[session_id].add(q)
        return q

    async def unsubscribe(self, session_id: str, q: asyncio.Queue[EmittedEvent]) -> None:
        lock = self._locks.get(session_id)
        if lock is None:
            return
        async with lock:
            subs = self._subscribers.get(session_id)
            if subs is not None:
                subs.discard(q)
            if not subs:
                self._subscribers.pop(session_id, None)
                self._locks.pop(session_id, None)

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))
