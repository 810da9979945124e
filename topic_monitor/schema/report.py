from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TeacherInfo(BaseModel):
    teacher_id: str = Field(..., min_length=1)
    teacher_name: str = Field(..., min_length=1)
    teacher_email: str = ""


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["content", "engagement", "clarity", "pacing"]
    priority: Literal["high", "medium", "low"]
    message: str
    action: str


class SegmentView(BaseModel):
    model_config = ConfigDict(frozen=True)

    seq: int
    text: str
    timestamp: float
    duration_seconds: float
    is_on_topic: bool
    is_filler: bool
    matched_keywords: list[str] = Field(default_factory=list)
    confidence: float
    reason: str
    score: float | None = None
    has_question: bool = False
    has_example: bool = False
    has_clarity_marker: bool = False
    revised: bool = False


class OffTopicSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    seq: int
    text: str
    timestamp: float
    reason: str


class AnalysisSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    topic: str
    subject: str
    session_state: Literal["IDLE", "ACTIVE", "TERMINATED"]
    ingestion_mode: Literal["live", "simulation"]
    remote_mode: Literal["remote", "local_only"]
    elapsed_seconds: float
    total_duration: float
    on_topic_percentage: float
    segment_basis_pct: float
    time_basis_pct: float
    on_topic_seconds: float
    off_topic_seconds: float
    on_topic_minutes: float
    off_topic_minutes: float
    off_topic_count: int
    status: str
    teaching_metrics: dict[str, float]
    questions_asked: int
    examples_given: int
    words_per_minute: float
    total_words: int
    segment_count: int
    scored_segment_count: int
    overall_score: float
    recent_keywords: list[str] = Field(default_factory=list)


class MonitoringReport(AnalysisSnapshot):
    start_time: float
    end_time: float
    teacher: TeacherInfo | None = None
    grade: str
    grade_score: float
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    off_topic_segments: list[OffTopicSample] = Field(default_factory=list)
    transcript: str = ""
    segments: list[SegmentView] = Field(default_factory=list)
    degraded: bool = False
    notices: list[str] = Field(default_factory=list)
