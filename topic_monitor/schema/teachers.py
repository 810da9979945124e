from __future__ import annotations

from pydantic import BaseModel, Field

from topic_monitor.schema.report import Suggestion


class SessionRecord(BaseModel):
    """A finished monitoring report as kept in the history store."""

    id: str
    session_id: str
    teacher_id: str
    teacher_name: str
    teacher_email: str = ""
    timestamp: str
    topic: str
    subject: str
    grade: str
    grade_score: float
    status: str
    on_topic_percentage: float = 0.0
    total_duration: float = 0.0
    teaching_metrics: dict[str, float] = Field(default_factory=dict)
    questions_asked: int = 0
    examples_given: int = 0
    words_per_minute: float = 0.0
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    degraded: bool = False


class SessionSummary(BaseModel):
    id: str
    timestamp: str
    topic: str
    subject: str
    grade: str
    on_topic_percentage: float
    duration: float


class SubjectStats(BaseModel):
    count: int = 0
    topics: list[str] = Field(default_factory=list)


class TeacherStats(BaseModel):
    teacher_id: str
    teacher_name: str
    teacher_email: str = ""
    total_sessions: int = 0
    total_duration: float = 0.0
    average_on_topic: float = 0.0
    average_grade: float = 0.0
    grade_history: list[float] = Field(default_factory=list)
    on_topic_history: list[float] = Field(default_factory=list)
    subjects: dict[str, SubjectStats] = Field(default_factory=dict)
    last_session_date: str | None = None
    sessions: list[SessionSummary] = Field(default_factory=list)


class TeacherRanking(TeacherStats):
    average_grade_letter: str
    status: str


class TeacherStatsResponse(BaseModel):
    ok: bool = True
    stats: TeacherStats


class TeacherSessionsResponse(BaseModel):
    ok: bool = True
    teacher_id: str
    items: list[SessionRecord] = Field(default_factory=list)


class RecentSessionsResponse(BaseModel):
    ok: bool = True
    items: list[SessionRecord] = Field(default_factory=list)


class RankingsResponse(BaseModel):
    ok: bool = True
    items: list[TeacherRanking] = Field(default_factory=list)
