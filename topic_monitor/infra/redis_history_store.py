from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from topic_monitor.schema.report import MonitoringReport
from topic_monitor.schema.teachers import (
    SessionRecord,
    SessionSummary,
    SubjectStats,
    TeacherRanking,
    TeacherStats,
)

logger = logging.getLogger(__name__)

GRADE_VALUES: dict[str, float] = {
    "A+": 100, "A": 90, "B+": 85, "B": 80, "C+": 75, "C": 70, "D": 60, "F": 40,
}
UNKNOWN_GRADE_VALUE = 50.0
AVERAGE_GRADE_THRESHOLDS: list[tuple[float, str]] = [
    (95, "A+"), (85, "A"), (80, "B+"), (75, "B"), (70, "C+"), (65, "C"), (55, "D"),
]
HISTORY_DEPTH = 10
RECENT_SUMMARIES = 5


class HistoryStoreError(RuntimeError):
    pass


def grade_to_number(grade: str) -> float:
    return GRADE_VALUES.get(grade, UNKNOWN_GRADE_VALUE)


def number_to_grade(value: float) -> str:
    for threshold, letter in AVERAGE_GRADE_THRESHOLDS:
        if value >= threshold:
            return letter
    return "F"


def ranking_status(average_on_topic: float) -> str:
    if average_on_topic >= 80:
        return "Exemplary"
    if average_on_topic >= 65:
        return "Good"
    if average_on_topic >= 50:
        return "Satisfactory"
    return "Needs Improvement"


def _decode(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8", errors="replace")
    return str(raw)


class RedisHistoryStore:
    """
    Teaching session history (Redis).

    Layout:
    - `monitor:sessions`: JSON session records, newest first, trimmed to `limit`
    - `monitor:teacher:{id}:stats`: JSON aggregate stats per teacher
    - `monitor:teachers`: set of teacher ids that have stats
    """

    def __init__(self, redis: Redis, *, limit: int = 100) -> None:
        self._r = redis
        self.limit = limit

    @staticmethod
    def _k_sessions() -> str:
        return "monitor:sessions"

    @staticmethod
    def _k_teachers() -> str:
        return "monitor:teachers"

    @staticmethod
    def _k_stats(teacher_id: str) -> str:
        return f"monitor:teacher:{teacher_id}:stats"

    async def save_report(self, report: MonitoringReport) -> SessionRecord | None:
        if report.teacher is None:
            logger.info("report for %s has no teacher, not stored", report.session_id)
            return None
        record = self._record_from_report(report)
        try:
            stats = await self.get_teacher_stats(record.teacher_id)
            stats = self._fold(stats, record)
            pipe = self._r.pipeline()
            pipe.lpush(self._k_sessions(), record.model_dump_json())
            pipe.ltrim(self._k_sessions(), 0, self.limit - 1)
            pipe.set(self._k_stats(record.teacher_id), stats.model_dump_json())
            pipe.sadd(self._k_teachers(), record.teacher_id)
            await pipe.execute()
        except RedisError as e:
            raise HistoryStoreError(f"failed to store session {report.session_id}: {e}") from e
        return record

    async def list_sessions(self, limit: int | None = None) -> list[SessionRecord]:
        end = (limit if limit is not None else self.limit) - 1
        if end < 0:
            return []
        try:
            items = await self._r.lrange(self._k_sessions(), 0, end)
        except RedisError as e:
            raise HistoryStoreError(f"failed to list sessions: {e}") from e
        out: list[SessionRecord] = []
        for raw in items:
            try:
                out.append(SessionRecord.model_validate_json(_decode(raw)))
            except ValueError:
                continue
        return out

    async def recent_sessions(self, limit: int = 10) -> list[SessionRecord]:
        return await self.list_sessions(limit)

    async def teacher_sessions(self, teacher_id: str) -> list[SessionRecord]:
        return [r for r in await self.list_sessions() if r.teacher_id == teacher_id]

    async def get_teacher_stats(self, teacher_id: str) -> TeacherStats | None:
        try:
            raw = await self._r.get(self._k_stats(teacher_id))
        except RedisError as e:
            raise HistoryStoreError(f"failed to read stats for {teacher_id}: {e}") from e
        if raw is None:
            return None
        try:
            return TeacherStats.model_validate_json(_decode(raw))
        except ValueError:
            logger.warning("discarding unreadable stats for teacher %s", teacher_id)
            return None

    async def rankings(self) -> list[TeacherRanking]:
        try:
            ids = await self._r.smembers(self._k_teachers())
        except RedisError as e:
            raise HistoryStoreError(f"failed to list teachers: {e}") from e
        out: list[TeacherRanking] = []
        for teacher_id in sorted(_decode(i) for i in ids):
            stats = await self.get_teacher_stats(teacher_id)
            if stats is None or stats.total_sessions < 1:
                continue
            out.append(
                TeacherRanking(
                    **stats.model_dump(),
                    average_grade_letter=number_to_grade(stats.average_grade),
                    status=ranking_status(stats.average_on_topic),
                )
            )
        out.sort(key=lambda r: r.average_grade, reverse=True)
        return out

    def _record_from_report(self, report: MonitoringReport) -> SessionRecord:
        assert report.teacher is not None
        ts = datetime.fromtimestamp(report.end_time, tz=timezone.utc).isoformat()
        return SessionRecord(
            id=f"session-{int(report.end_time * 1000)}-{uuid4().hex[:9]}",
            session_id=report.session_id,
            teacher_id=report.teacher.teacher_id,
            teacher_name=report.teacher.teacher_name,
            teacher_email=report.teacher.teacher_email,
            timestamp=ts,
            topic=report.topic,
            subject=report.subject,
            grade=report.grade,
            grade_score=report.grade_score,
            status=report.status,
            on_topic_percentage=report.on_topic_percentage,
            total_duration=report.total_duration,
            teaching_metrics=dict(report.teaching_metrics),
            questions_asked=report.questions_asked,
            examples_given=report.examples_given,
            words_per_minute=report.words_per_minute,
            strengths=list(report.strengths),
            improvements=list(report.improvements),
            suggestions=list(report.suggestions),
            degraded=report.degraded,
        )

    @staticmethod
    def _fold(stats: TeacherStats | None, record: SessionRecord) -> TeacherStats:
        if stats is None:
            stats = TeacherStats(teacher_id=record.teacher_id, teacher_name=record.teacher_name)
        stats.teacher_name = record.teacher_name
        stats.teacher_email = record.teacher_email
        stats.total_sessions += 1
        stats.total_duration = round(stats.total_duration + record.total_duration, 2)
        stats.last_session_date = record.timestamp

        stats.grade_history = (stats.grade_history + [grade_to_number(record.grade)])[-HISTORY_DEPTH:]
        stats.average_grade = sum(stats.grade_history) / len(stats.grade_history)
        stats.on_topic_history = (stats.on_topic_history + [record.on_topic_percentage])[-HISTORY_DEPTH:]
        stats.average_on_topic = round(sum(stats.on_topic_history) / len(stats.on_topic_history))

        if record.subject:
            subject = stats.subjects.setdefault(record.subject, SubjectStats())
            subject.count += 1
            if record.topic and record.topic not in subject.topics:
                subject.topics.append(record.topic)

        summary = SessionSummary(
            id=record.id,
            timestamp=record.timestamp,
            topic=record.topic,
            subject=record.subject,
            grade=record.grade,
            on_topic_percentage=record.on_topic_percentage,
            duration=record.total_duration,
        )
        stats.sessions = [summary] + stats.sessions[: RECENT_SUMMARIES - 1]
        return stats
