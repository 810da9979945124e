from __future__ import annotations

import logging
from time import time
from uuid import uuid4

from redis.asyncio import Redis

from topic_monitor.classifiers.corpus import KeywordCorpus
from topic_monitor.classifiers.remote import ArkRemoteClassifier, RemoteClassifier
from topic_monitor.core.engine import MonitoringEngine
from topic_monitor.core.event_bus import EventBus
from topic_monitor.core.session_manager import MonitoringSessionManager
from topic_monitor.core.settings import Settings, settings as default_settings
from topic_monitor.infra.redis_history_store import HistoryStoreError, RedisHistoryStore
from topic_monitor.llm.ark_client import ArkChatClient
from topic_monitor.schema.events import EmittedEvent
from topic_monitor.schema.monitoring import RealtimeFrame, StartMonitoringRequest
from topic_monitor.schema.report import MonitoringReport

logger = logging.getLogger(__name__)


def build_remote_classifier(s: Settings) -> RemoteClassifier | None:
    if s.remote_classifier_backend == "disabled":
        return None
    if s.remote_classifier_backend == "agentscope":
        if not s.openai_api_key:
            logger.warning("OPENAI_API_KEY missing, remote classification disabled")
            return None
        from topic_monitor.classifiers.agent_remote import AgentScopeRemoteClassifier

        return AgentScopeRemoteClassifier(api_key=s.openai_api_key, model_name=s.openai_model)
    if not s.ark_api_key:
        logger.warning("ARK_API_KEY missing, remote classification disabled")
        return None
    client = ArkChatClient(
        base_url=s.ark_base_url,
        api_key=s.ark_api_key,
        model=s.ark_model,
        timeout_s=s.remote_timeout_s,
    )
    return ArkRemoteClassifier(client)


class AppContext:
    """
    Process-wide application context.

    - owns the keyword corpus, event bus, engine registry and history store
    - builds one remote classifier shared by all engines
    - persists each final report and announces it on the event bus
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        redis: Redis | None = None,
        remote: RemoteClassifier | None = None,
        corpus: KeywordCorpus | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.corpus = corpus or KeywordCorpus()
        self.event_bus = EventBus()
        self.remote = remote if remote is not None else build_remote_classifier(self.settings)

        self.redis: Redis = redis if redis is not None else Redis.from_url(self.settings.redis_url, decode_responses=False)
        self.history = RedisHistoryStore(self.redis, limit=self.settings.history_limit)
        self.session_manager = MonitoringSessionManager(
            self._new_engine, retain_finished=self.settings.retained_finished_sessions
        )

    def _new_engine(self, session_id: str) -> MonitoringEngine:
        return MonitoringEngine(
            session_id,
            corpus=self.corpus,
            bus=self.event_bus,
            settings=self.settings,
            remote=self.remote,
        )

    async def shutdown(self) -> None:
        await self.session_manager.stop_all()
        aclose = getattr(self.remote, "aclose", None)
        if aclose is not None:
            await aclose()
        await self.redis.aclose()

    async def start_monitoring(self, req: StartMonitoringRequest) -> MonitoringEngine:
        session_id = req.session_id or f"monitor-{uuid4().hex[:12]}"
        engine = await self.session_manager.acquire(session_id)
        await engine.start_monitoring(req.topic, req.subject, req.teacher, simulate=req.simulate)
        return engine

    async def stop_monitoring(self, session_id: str) -> MonitoringReport:
        engine = await self.session_manager.get(session_id)
        report = await engine.stop_monitoring()
        await self.session_manager.release(session_id)
        try:
            await self.history.save_report(report)
        except HistoryStoreError:
            logger.exception("could not store history for session %s", session_id)
        await self.event_bus.publish(
            session_id,
            EmittedEvent(type="final_report_ready", timestamp=time(), payload=report.model_dump()),
        )
        return report

    async def handle_realtime_frame(self, frame: RealtimeFrame) -> str:
        engine = await self.session_manager.get(frame.session_id)
        if frame.type == "final":
            await engine.on_final_segment(frame.text, frame.confidence)
        elif frame.type == "interim":
            await engine.on_interim_segment(frame.text)
        else:
            await engine.on_transcription_error(frame.kind or "unknown")
        assert engine.session is not None
        return engine.session.ingestion_mode
