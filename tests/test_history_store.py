from __future__ import annotations

import pytest
from conftest import InMemoryRedis

from topic_monitor.infra.redis_history_store import (
    RedisHistoryStore,
    grade_to_number,
    number_to_grade,
    ranking_status,
)
from topic_monitor.schema.report import MonitoringReport, TeacherInfo


def _report(session_id: str, teacher: TeacherInfo | None, *, grade: str = "A", pct: float = 90.0, subject: str = "mathematics", topic: str = "algebra") -> MonitoringReport:
    return MonitoringReport(
        session_id=session_id,
        topic=topic,
        subject=subject,
        session_state="TERMINATED",
        ingestion_mode="live",
        remote_mode="remote",
        elapsed_seconds=600.0,
        total_duration=10.0,
        on_topic_percentage=pct,
        segment_basis_pct=pct,
        time_basis_pct=pct,
        on_topic_seconds=540.0,
        off_topic_seconds=60.0,
        on_topic_minutes=9.0,
        off_topic_minutes=1.0,
        off_topic_count=1,
        status="Excellent",
        teaching_metrics={"clarity": 80.0},
        questions_asked=4,
        examples_given=2,
        words_per_minute=120.0,
        total_words=1200,
        segment_count=40,
        scored_segment_count=38,
        overall_score=75.0,
        start_time=1_700_000_000.0,
        end_time=1_700_000_600.0,
        teacher=teacher,
        grade=grade,
        grade_score=72.0,
    )


RAO = TeacherInfo(teacher_id="t-rao", teacher_name="Ms. Rao")
IYER = TeacherInfo(teacher_id="t-iyer", teacher_name="Mr. Iyer")


@pytest.fixture
def store() -> RedisHistoryStore:
    return RedisHistoryStore(InMemoryRedis(), limit=3)


@pytest.mark.parametrize("grade, value", [("A+", 100), ("B+", 85), ("F", 40), ("Z", 50)])
def test_grade_to_number(grade, value):
    assert grade_to_number(grade) == value


@pytest.mark.parametrize("value, grade", [(95, "A+"), (90, "A"), (82, "B+"), (76, "B"), (70, "C+"), (66, "C"), (55, "D"), (54, "F")])
def test_number_to_grade(value, grade):
    assert number_to_grade(value) == grade


def test_ranking_status():
    assert [ranking_status(p) for p in (85, 70, 55, 10)] == ["Exemplary", "Good", "Satisfactory", "Needs Improvement"]


class TestRedisHistoryStore:
    async def test_report_without_teacher_is_skipped(self, store):
        assert await store.save_report(_report("s0", None)) is None
        assert await store.recent_sessions() == []

    async def test_sessions_newest_first_and_trimmed(self, store):
        for i in range(5):
            await store.save_report(_report(f"s{i}", RAO))
        sessions = await store.list_sessions()
        assert [s.session_id for s in sessions] == ["s4", "s3", "s2"]
        assert [s.session_id for s in await store.recent_sessions(2)] == ["s4", "s3"]

    async def test_teacher_stats_aggregate(self, store):
        await store.save_report(_report("s1", RAO, grade="A+", pct=90, topic="algebra"))
        await store.save_report(_report("s2", RAO, grade="B", pct=70, topic="geometry"))
        await store.save_report(_report("s3", RAO, grade="A", pct=80, topic="algebra"))
        stats = await store.get_teacher_stats("t-rao")
        assert stats.total_sessions == 3
        assert stats.total_duration == 30.0
        assert stats.grade_history == [100, 80, 90]
        assert stats.average_grade == pytest.approx(90)
        assert stats.average_on_topic == 80
        assert stats.subjects["mathematics"].count == 3
        assert stats.subjects["mathematics"].topics == ["algebra", "geometry"]
        assert [s.grade for s in stats.sessions] == ["A", "B", "A+"]

    async def test_history_keeps_last_ten(self):
        store = RedisHistoryStore(InMemoryRedis())
        for i in range(12):
            await store.save_report(_report(f"s{i}", RAO, grade="F" if i < 2 else "A"))
        stats = await store.get_teacher_stats("t-rao")
        assert len(stats.grade_history) == 10
        assert stats.average_grade == 90
        assert len(stats.sessions) == 5

    async def test_rankings(self, store):
        await store.save_report(_report("s1", RAO, grade="B", pct=60))
        await store.save_report(_report("s2", IYER, grade="A+", pct=85))
        rankings = await store.rankings()
        assert [r.teacher_id for r in rankings] == ["t-iyer", "t-rao"]
        assert rankings[0].average_grade_letter == "A+"
        assert rankings[0].status == "Exemplary"
        assert rankings[1].status == "Satisfactory"
        assert [s.teacher_id for s in await store.teacher_sessions("t-rao")] == ["t-rao"]
