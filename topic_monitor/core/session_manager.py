from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Callable

from topic_monitor.core.engine import MonitoringEngine
from topic_monitor.core.errors import MonitoringStateError, SessionNotFoundError

logger = logging.getLogger(__name__)


class MonitoringSessionManager:
    """
    In-memory registry of monitoring engines keyed by session id.

    - creates one engine per session id on first start
    - a terminated session may be started again; a running one may not
    - keeps only the `retain_finished` most recently stopped engines so their
      reports stay readable; older ones are evicted (history lives in Redis)
    """

    def __init__(self, engine_factory: Callable[[str], MonitoringEngine], *, retain_finished: int = 50) -> None:
        self._engines: dict[str, MonitoringEngine] = {}
        self._finished: OrderedDict[str, None] = OrderedDict()
        self._factory = engine_factory
        self._retain_finished = max(0, retain_finished)
        self._lock = asyncio.Lock()

    async def acquire(self, session_id: str) -> MonitoringEngine:
        async with self._lock:
            engine = self._engines.get(session_id)
            if engine is not None and engine.active:
                raise MonitoringStateError(f"session already active: {session_id}")
            if engine is None:
                engine = self._factory(session_id)
                self._engines[session_id] = engine
            self._finished.pop(session_id, None)
            return engine

    async def get(self, session_id: str) -> MonitoringEngine:
        async with self._lock:
            engine = self._engines.get(session_id)
            if engine is None:
                raise SessionNotFoundError(f"session not found: {session_id}")
            if session_id in self._finished:
                self._finished.move_to_end(session_id)
            return engine

    async def release(self, session_id: str) -> None:
        """Mark a stopped session as finished and evict the oldest finished ones."""
        async with self._lock:
            engine = self._engines.get(session_id)
            if engine is None or engine.active:
                return
            self._finished[session_id] = None
            self._finished.move_to_end(session_id)
            while len(self._finished) > self._retain_finished:
                old, _ = self._finished.popitem(last=False)
                self._engines.pop(old, None)
                logger.debug("evicted finished session %s", old)

    def __len__(self) -> int:
        return len(self._engines)

    async def stop_all(self) -> None:
        async with self._lock:
            engines = [e for e in self._engines.values() if e.active]
        for engine in engines:
            try:
                await engine.stop_monitoring()
            except MonitoringStateError:
                continue
