from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from topic_monitor.classifiers.remote import RemoteClassifier, RemoteVerdict
from topic_monitor.core.retry import ConnectivityGuard
from topic_monitor.core.schedulers import PeriodicScheduler
from topic_monitor.core.segment_analyzer import segment_score
from topic_monitor.core.session import MonitoringSession, Segment

logger = logging.getLogger(__name__)


class RemoteReconciler:
    """
    Second-opinion pass for weakly on-topic segments.

    Candidates are sent to the remote classifier in detached tasks (or buffered and
    flushed per interval when batching is on). A verdict can only downgrade a segment
    that is still inside the reconciliation window; everything else is discarded.
    """

    def __init__(
        self,
        *,
        session: MonitoringSession,
        remote: RemoteClassifier,
        guard: ConnectivityGuard,
        window: int = 3,
        timeout_s: float | None = None,
        batch_interval_s: float = 0.0,
        on_revised: Callable[[Segment], Awaitable[None]] | None = None,
    ) -> None:
        self.session = session
        self.remote = remote
        self.guard = guard
        self.window = window
        self.timeout_s = timeout_s
        self._on_revised = on_revised
        self._tasks: set[asyncio.Task] = set()
        self._pending: list[Segment] = []
        self._closed = False
        self._flusher: PeriodicScheduler | None = None
        if batch_interval_s > 0:
            self._flusher = PeriodicScheduler(
                name=f"remote-batch-{session.session_id}",
                interval_s=batch_interval_s,
                tick=self.flush,
            )

    def start(self) -> None:
        if self._flusher is not None:
            self._flusher.start()

    def submit(self, segment: Segment) -> bool:
        """Queue a segment for a remote opinion; returns False when it was not eligible."""
        if self._closed or not segment.is_weak_on_topic or segment.revised:
            return False
        if not self.guard.available():
            logger.debug("remote unavailable, keeping local verdict for seq %d", segment.seq)
            return False
        if self._flusher is not None:
            self._pending.append(segment)
            return True
        self._spawn(self._classify_one(segment.seq, segment.text), name=f"remote-{self.session.session_id}-{segment.seq}")
        return True

    async def flush(self) -> None:
        if self._closed or not self._pending:
            return
        batch, self._pending = self._pending, []
        # drop anything that has already left the window
        in_window = {s.seq for s in self.session.reconciliation_window(self.window)}
        batch = [s for s in batch if s.seq in in_window]
        if batch:
            self._spawn(self._classify_batch(batch), name=f"remote-batch-{self.session.session_id}")

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._closed = True
        self._pending.clear()
        if self._flusher is not None:
            await self._flusher.stop()
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, coro: Awaitable[None], *, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _classify_one(self, seq: int, text: str) -> None:
        s = self.session
        verdict = await self.guard.call(lambda: self.remote.classify(text, s.topic, s.subject), timeout_s=self.timeout_s)
        if verdict is not None:
            await self._apply(seq, verdict)

    async def _classify_batch(self, batch: list[Segment]) -> None:
        s = self.session
        texts = [seg.text for seg in batch]
        verdicts = await self.guard.call(lambda: self.remote.classify_batch(texts, s.topic, s.subject), timeout_s=self.timeout_s)
        if verdicts is None:
            return
        for seg, verdict in zip(batch, verdicts):
            await self._apply(seg.seq, verdict)

    async def _apply(self, seq: int, verdict: RemoteVerdict) -> None:
        if self._closed:
            return
        async with self.session.lock:
            if self.session.state != "ACTIVE":
                logger.debug("discarding late remote verdict for seq %d", seq)
                return
            window = {seg.seq for seg in self.session.reconciliation_window(self.window)}
            if seq not in window:
                logger.debug("remote verdict for seq %d arrived outside the window", seq)
                return
            if verdict.is_on_topic:
                return
            current = next((seg for seg in self.session.segments if seg.seq == seq), None)
            if current is None or not current.is_weak_on_topic:
                return
            revised = self.session.downgrade(
                seq,
                reason=f"Remote review: {verdict.reason or 'judged off-topic'}",
                score=segment_score(
                    is_on_topic=False,
                    confidence=verdict.confidence,
                    has_question=current.has_question,
                    has_example=current.has_example,
                ),
            )
            if revised is None:
                return
            self.session.metrics.nudge("clarity", -2)
            self.session.metrics.nudge("engagement", -2)
            logger.info("session %s seq %d downgraded by remote review", self.session.session_id, seq)
        if self._on_revised is not None:
            await self._on_revised(revised)
