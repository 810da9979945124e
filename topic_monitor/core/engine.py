from __future__ import annotations

import logging
from time import time
from typing import Callable

from pydantic import BaseModel

from topic_monitor.classifiers.corpus import KeywordCorpus, TopicProfile
from topic_monitor.classifiers.local import LocalClassifier
from topic_monitor.classifiers.remote import RemoteClassifier
from topic_monitor.core.errors import MonitoringStateError
from topic_monitor.core.event_bus import EventBus
from topic_monitor.core.grading import GradingPolicy
from topic_monitor.core.reconciler import RemoteReconciler
from topic_monitor.core.retry import ConnectivityGuard, RetryPolicy
from topic_monitor.core.schedulers import PeriodicScheduler
from topic_monitor.core.segment_analyzer import SegmentAnalyzer
from topic_monitor.core.session import MonitoringSession, Segment
from topic_monitor.core.settings import Settings, settings as default_settings
from topic_monitor.ingest.interim import InterimPreviewer
from topic_monitor.ingest.simulation import ScriptedSegmentSource
from topic_monitor.schema.events import EmittedEvent, EventType, InterimPreview, LiveStatus, Notice
from topic_monitor.schema.report import AnalysisSnapshot, MonitoringReport, TeacherInfo

logger = logging.getLogger(__name__)

TRANSIENT_TRANSCRIPTION_ERRORS = frozenset({"no-speech", "aborted", "network"})


class MonitoringEngine:
    """
    Drives one monitoring run at a time for a single session id.

    Segments are processed one by one under the session lock. Remote review, the
    analysis ticker, simulated ingestion and interim previews run beside that path
    and are all torn down by `stop_monitoring`.
    """

    def __init__(
        self,
        session_id: str,
        *,
        corpus: KeywordCorpus,
        bus: EventBus,
        settings: Settings | None = None,
        remote: RemoteClassifier | None = None,
        clock: Callable[[], float] = time,
    ) -> None:
        self.session_id = session_id
        self.corpus = corpus
        self.bus = bus
        self.settings = settings or default_settings
        self.remote = remote
        self._clock = clock

        self.session: MonitoringSession | None = None
        self.profile: TopicProfile | None = None
        self.guard: ConnectivityGuard | None = None
        self._analyzer: SegmentAnalyzer | None = None
        self._reconciler: RemoteReconciler | None = None
        self._ticker: PeriodicScheduler | None = None
        self._simulation: PeriodicScheduler | None = None
        self._source: ScriptedSegmentSource | None = None
        self._interim: InterimPreviewer | None = None

    @property
    def active(self) -> bool:
        return self.session is not None and self.session.state == "ACTIVE"

    async def start_monitoring(
        self,
        topic: str,
        subject: str,
        teacher: TeacherInfo | None = None,
        *,
        simulate: bool = False,
    ) -> MonitoringSession:
        if self.active:
            raise MonitoringStateError(f"session {self.session_id} is already being monitored")

        s = self.settings
        self.profile = self.corpus.lookup(topic, subject)
        session = MonitoringSession(
            session_id=self.session_id,
            topic=topic,
            subject=subject,
            teacher=teacher,
            policy=GradingPolicy.from_settings(s),
            off_topic_sample_limit=s.off_topic_sample_limit,
        )
        session.start(self._clock())
        self.session = session
        self._source = None
        self._simulation = None
        self._analyzer = SegmentAnalyzer(LocalClassifier(min_tokens=s.min_segment_tokens), self.profile)
        self._interim = InterimPreviewer(debounce_s=s.interim_debounce_s, on_settled=self._preview_interim)

        if self.remote is None:
            session.remote_mode = "local_only"
            self.guard = None
            self._reconciler = None
        else:
            self.guard = ConnectivityGuard(
                RetryPolicy(max_attempts=s.remote_max_attempts, base_delay_s=s.remote_backoff_base_s),
                clock=self._clock,
                on_degraded=self._remote_degraded,
            )
            self._reconciler = RemoteReconciler(
                session=session,
                remote=self.remote,
                guard=self.guard,
                window=s.reconciliation_window,
                timeout_s=s.remote_timeout_s,
                batch_interval_s=s.remote_batch_interval_s,
                on_revised=self._segment_revised,
            )
            self._reconciler.start()

        self._ticker = PeriodicScheduler(
            name=f"analysis-{self.session_id}",
            interval_s=s.analysis_interval_s,
            tick=self._analysis_tick,
        )
        self._ticker.start()
        if simulate:
            self._start_simulation()

        logger.info(
            "monitoring started: session=%s topic=%r subject=%r keywords=%d (%s) mode=%s",
            self.session_id,
            topic,
            subject,
            len(self.profile.keywords),
            self.profile.source,
            session.ingestion_mode,
        )
        return session

    async def on_final_segment(self, text: str, confidence: float | None = None) -> LiveStatus:
        session = self._require_session()
        analyzer = self._analyzer
        assert analyzer is not None
        async with session.lock:
            session.require_active()
            segment = analyzer.analyze(session, text, self._clock())
            if self._reconciler is not None and not segment.is_filler:
                self._reconciler.submit(segment)
            status = analyzer.live_status(session, segment)
        if confidence is not None:
            logger.debug("session %s seq %d transcription confidence %.2f", self.session_id, segment.seq, confidence)
        await self._emit("live_status", status)
        return status

    async def on_interim_segment(self, text: str) -> None:
        session = self._require_session()
        session.require_active()
        session.transcript.set_interim(text)
        if self._interim is not None:
            self._interim.push(text)

    async def on_transcription_error(self, kind: str) -> str:
        session = self._require_session()
        session.require_active()
        if kind in TRANSIENT_TRANSCRIPTION_ERRORS:
            logger.info("session %s transient transcription error: %s", self.session_id, kind)
            return session.ingestion_mode
        if session.ingestion_mode == "simulation":
            return session.ingestion_mode

        logger.warning("session %s transcription failed (%s), switching to simulated ingestion", self.session_id, kind)
        message = f"Live transcription unavailable ({kind}); using simulated speech"
        session.notices.append(message)
        self._start_simulation()
        await self._emit(
            "notice",
            Notice(session_id=self.session_id, kind="ingestion_fallback", message=message, detail={"error": kind}),
        )
        return session.ingestion_mode

    async def snapshot(self) -> AnalysisSnapshot:
        session = self._require_session()
        async with session.lock:
            return session.snapshot(self._clock())

    async def stop_monitoring(self) -> MonitoringReport:
        session = self._require_session()
        session.require_active()
        await self._stop_background()
        async with session.lock:
            report = session.stop(self._clock())
        logger.info(
            "monitoring stopped: session=%s grade=%s score=%.2f on_topic=%.1f%% segments=%d",
            self.session_id,
            report.grade,
            report.grade_score,
            report.on_topic_percentage,
            report.segment_count,
        )
        return report.model_copy(deep=True)

    def generate_report(self) -> MonitoringReport:
        session = self._require_session()
        if session.report is None:
            raise MonitoringStateError(f"session {self.session_id} has no report until monitoring stops")
        return session.report.model_copy(deep=True)

    async def wait_remote_idle(self) -> None:
        if self._reconciler is not None:
            await self._reconciler.drain()

    async def flush_interim(self) -> None:
        if self._interim is not None:
            await self._interim.flush()

    async def simulate_once(self) -> LiveStatus:
        if self._source is None:
            raise MonitoringStateError(f"session {self.session_id} is not in simulation mode")
        return await self.on_final_segment(self._source.next_text())

    def _require_session(self) -> MonitoringSession:
        if self.session is None:
            raise MonitoringStateError(f"session {self.session_id} has not been started")
        return self.session

    def _start_simulation(self) -> None:
        session = self._require_session()
        assert self.profile is not None
        session.ingestion_mode = "simulation"
        self._source = ScriptedSegmentSource(self.profile)
        self._simulation = PeriodicScheduler(
            name=f"simulation-{self.session_id}",
            interval_s=self.settings.simulation_interval_s,
            tick=self._simulation_tick,
        )
        self._simulation.start()

    async def _stop_background(self) -> None:
        for scheduler in (self._ticker, self._simulation):
            if scheduler is not None:
                await scheduler.stop()
        if self._interim is not None:
            await self._interim.close()
        if self._reconciler is not None:
            await self._reconciler.close()

    async def _simulation_tick(self) -> None:
        if self.active:
            await self.simulate_once()

    async def _analysis_tick(self) -> None:
        session = self._require_session()
        async with session.lock:
            if session.state != "ACTIVE":
                return
            now = self._clock()
            session.refresh_pacing(now)
            snap = session.snapshot(now)
        await self._emit("analysis_update", snap)

    async def _preview_interim(self, text: str) -> None:
        if not self.active or self._analyzer is None:
            return
        verdict = self._analyzer.preview(text)
        await self._emit(
            "interim_preview",
            InterimPreview(
                session_id=self.session_id,
                text=text,
                is_on_topic=verdict.is_on_topic,
                matched_keywords=list(verdict.matched_keywords),
                reason=verdict.reason,
            ),
        )

    async def _remote_degraded(self, reason: str) -> None:
        session = self._require_session()
        session.remote_mode = "local_only"
        session.degraded = True
        message = "Remote classifier unavailable; continuing with keyword analysis only"
        session.notices.append(message)
        await self._emit(
            "notice",
            Notice(session_id=self.session_id, kind="degraded_remote", message=message, detail={"reason": reason}),
        )

    async def _segment_revised(self, segment: Segment) -> None:
        await self._emit(
            "notice",
            Notice(
                session_id=self.session_id,
                kind="remote_revision",
                message=f"Segment {segment.seq} reclassified as off-topic",
                detail={"seq": segment.seq, "reason": segment.reason},
            ),
        )

    async def _emit(self, event_type: EventType, payload: BaseModel) -> None:
        await self.bus.publish(
            self.session_id,
            EmittedEvent(type=event_type, timestamp=self._clock(), payload=payload.model_dump()),
        )
