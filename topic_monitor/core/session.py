from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Literal

from topic_monitor.core.errors import MonitoringStateError
from topic_monitor.core.grading import (
    GradingInputs,
    GradingPolicy,
    blend_on_topic,
    generate_suggestions,
    grade_letter,
    grade_score,
    identify_improvements,
    identify_strengths,
    status_label,
)
from topic_monitor.core.metrics import TeachingMetricsTracker
from topic_monitor.ingest.transcript_buffer import TranscriptBuffer
from topic_monitor.schema.report import (
    AnalysisSnapshot,
    MonitoringReport,
    OffTopicSample,
    SegmentView,
    TeacherInfo,
)

SessionState = Literal["IDLE", "ACTIVE", "TERMINATED"]


@dataclass
class Segment:
    seq: int
    text: str
    timestamp: float
    duration_seconds: float
    is_on_topic: bool
    is_filler: bool
    matched_keywords: list[str]
    confidence: float
    reason: str
    match_weight: int = 0
    has_question: bool = False
    has_example: bool = False
    has_clarity_marker: bool = False
    score: float | None = None
    revised: bool = False

    @property
    def is_weak_on_topic(self) -> bool:
        return self.is_on_topic and len(self.matched_keywords) < 2

    def view(self) -> SegmentView:
        return SegmentView(
            seq=self.seq,
            text=self.text,
            timestamp=self.timestamp,
            duration_seconds=round(self.duration_seconds, 3),
            is_on_topic=self.is_on_topic,
            is_filler=self.is_filler,
            matched_keywords=list(self.matched_keywords),
            confidence=self.confidence,
            reason=self.reason,
            score=self.score,
            has_question=self.has_question,
            has_example=self.has_example,
            has_clarity_marker=self.has_clarity_marker,
            revised=self.revised,
        )


@dataclass
class MonitoringSession:
    """
    One monitoring run for a (topic, subject) pair.

    Lifecycle: IDLE -> ACTIVE -> TERMINATED. A terminated session keeps its report and
    rejects further writes; restarting requires a new session object.
    """

    session_id: str
    topic: str
    subject: str
    teacher: TeacherInfo | None = None
    policy: GradingPolicy = field(default_factory=GradingPolicy)
    off_topic_sample_limit: int = 5

    state: SessionState = "IDLE"
    start_time: float = 0.0
    end_time: float | None = None
    segments: list[Segment] = field(default_factory=list)
    on_topic_seconds: float = 0.0
    off_topic_seconds: float = 0.0
    word_count: int = 0
    question_count: int = 0
    example_count: int = 0
    metrics: TeachingMetricsTracker = field(default_factory=TeachingMetricsTracker)
    transcript: TranscriptBuffer = field(default_factory=TranscriptBuffer)
    last_segment_at: float | None = None
    ingestion_mode: Literal["live", "simulation"] = "live"
    remote_mode: Literal["remote", "local_only"] = "remote"
    degraded: bool = False
    notices: list[str] = field(default_factory=list)
    report: MonitoringReport | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def start(self, now: float) -> None:
        if self.state != "IDLE":
            raise MonitoringStateError(f"session {self.session_id} cannot start from {self.state}")
        self.state = "ACTIVE"
        self.start_time = now
        self.last_segment_at = None

    def require_active(self) -> None:
        if self.state != "ACTIVE":
            raise MonitoringStateError(f"session {self.session_id} is not active (state={self.state})")

    def next_seq(self) -> int:
        return len(self.segments) + 1

    def gap_since_last(self, now: float) -> float:
        anchor = self.last_segment_at if self.last_segment_at is not None else self.start_time
        return max(0.0, now - anchor)

    def record(self, segment: Segment, token_count: int) -> None:
        self.require_active()
        self.segments.append(segment)
        self.transcript.append(segment.text)
        self.word_count += token_count
        self.last_segment_at = max(segment.timestamp, self.last_segment_at or self.start_time)
        if segment.is_filler:
            return
        if segment.has_question:
            self.question_count += 1
        if segment.has_example:
            self.example_count += 1
        if segment.is_on_topic:
            self.on_topic_seconds += segment.duration_seconds
        else:
            self.off_topic_seconds += segment.duration_seconds

    def scored_segments(self) -> list[Segment]:
        return [s for s in self.segments if not s.is_filler]

    def reconciliation_window(self, size: int) -> list[Segment]:
        if size <= 0:
            return []
        return self.scored_segments()[-size:]

    def downgrade(self, seq: int, *, reason: str, score: float) -> Segment | None:
        self.require_active()
        segment = next((s for s in self.segments if s.seq == seq), None)
        if segment is None or segment.revised or not segment.is_on_topic or segment.is_filler:
            return None
        segment.is_on_topic = False
        segment.revised = True
        segment.reason = reason
        segment.score = score
        self.on_topic_seconds -= segment.duration_seconds
        self.off_topic_seconds += segment.duration_seconds
        return segment

    def elapsed(self, now: float) -> float:
        if self.state == "IDLE":
            return 0.0
        end = self.end_time if self.end_time is not None else now
        return max(0.0, end - self.start_time)

    def on_topic_percentages(self) -> tuple[float, float, float]:
        scored = self.scored_segments()
        if not scored:
            return 0.0, 0.0, 0.0
        segment_pct = 100.0 * sum(1 for s in scored if s.is_on_topic) / len(scored)
        total = self.on_topic_seconds + self.off_topic_seconds
        time_pct = 100.0 * self.on_topic_seconds / total if total > 0 else segment_pct
        return blend_on_topic(segment_pct, time_pct, self.policy), segment_pct, time_pct

    def cumulative_score(self) -> float:
        scores = [s.score for s in self.scored_segments() if s.score is not None]
        return sum(scores) / len(scores) if scores else 0.0

    def words_per_minute(self, now: float) -> float:
        minutes = self.elapsed(now) / 60.0
        return self.word_count / minutes if minutes > 0 else 0.0

    def refresh_pacing(self, now: float) -> None:
        self.metrics.update_pacing(self.word_count, self.elapsed(now))

    def off_topic_sample(self) -> list[OffTopicSample]:
        out = [
            OffTopicSample(seq=s.seq, text=s.text[:150], timestamp=s.timestamp, reason=s.reason)
            for s in self.scored_segments()
            if not s.is_on_topic
        ]
        return out[: self.off_topic_sample_limit]

    def snapshot(self, now: float) -> AnalysisSnapshot:
        return AnalysisSnapshot(**self._summary_fields(now))

    def grading_inputs(self, now: float) -> GradingInputs:
        pct, _, _ = self.on_topic_percentages()
        return GradingInputs(
            topic=self.topic,
            on_topic_pct=pct,
            metrics=dict(self.metrics.gauges),
            questions=self.question_count,
            examples=self.example_count,
            duration_minutes=self.elapsed(now) / 60.0,
            words_per_minute=self.words_per_minute(now),
        )

    def stop(self, now: float) -> MonitoringReport:
        self.require_active()
        self.refresh_pacing(now)
        self.end_time = max(now, self.start_time)
        self.state = "TERMINATED"

        inputs = self.grading_inputs(self.end_time)
        score = grade_score(inputs, self.policy)
        self.report = MonitoringReport(
            **self._summary_fields(self.end_time),
            start_time=self.start_time,
            end_time=self.end_time,
            teacher=self.teacher,
            grade=grade_letter(score),
            grade_score=round(score, 2),
            strengths=identify_strengths(inputs),
            improvements=identify_improvements(inputs),
            suggestions=generate_suggestions(inputs),
            off_topic_segments=self.off_topic_sample(),
            transcript=self.transcript.text(),
            segments=[s.view() for s in self.segments],
            degraded=self.degraded or self.ingestion_mode == "simulation",
            notices=list(self.notices),
        )
        return self.report

    def _summary_fields(self, now: float) -> dict:
        pct, segment_pct, time_pct = self.on_topic_percentages()
        elapsed = self.elapsed(now)
        scored = self.scored_segments()
        return {
            "session_id": self.session_id,
            "topic": self.topic,
            "subject": self.subject,
            "session_state": self.state,
            "ingestion_mode": self.ingestion_mode,
            "remote_mode": self.remote_mode,
            "elapsed_seconds": round(elapsed, 3),
            "total_duration": round(elapsed / 60.0, 2),
            "on_topic_percentage": round(pct, 2),
            "segment_basis_pct": round(segment_pct, 2),
            "time_basis_pct": round(time_pct, 2),
            "on_topic_seconds": round(self.on_topic_seconds, 3),
            "off_topic_seconds": round(self.off_topic_seconds, 3),
            "on_topic_minutes": round(self.on_topic_seconds / 60.0, 2),
            "off_topic_minutes": round(self.off_topic_seconds / 60.0, 2),
            "off_topic_count": sum(1 for s in scored if not s.is_on_topic),
            "status": status_label(pct),
            "teaching_metrics": self.metrics.snapshot(),
            "questions_asked": self.question_count,
            "examples_given": self.example_count,
            "words_per_minute": round(self.words_per_minute(now), 1),
            "total_words": self.word_count,
            "segment_count": len(self.segments),
            "scored_segment_count": len(scored),
            "overall_score": round(self.cumulative_score(), 2),
            "recent_keywords": [kw for s in scored[-3:] for kw in s.matched_keywords],
        }
