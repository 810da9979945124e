from __future__ import annotations

import logging

from topic_monitor.classifiers.corpus import TopicProfile
from topic_monitor.classifiers.local import LocalClassifier, LocalVerdict
from topic_monitor.classifiers.markers import TeachingMarkers, detect_markers
from topic_monitor.core.metrics import clamp
from topic_monitor.core.session import MonitoringSession, Segment
from topic_monitor.schema.events import LiveStatus

logger = logging.getLogger(__name__)

BASE_SCORE = 50.0
ON_TOPIC_POINTS = 20.0
CONFIDENCE_POINTS = 20.0
OFF_TOPIC_PENALTY = -20.0
MARKER_POINTS = 5.0


def segment_score(*, is_on_topic: bool, confidence: float, has_question: bool, has_example: bool) -> float:
    score = BASE_SCORE
    score += ON_TOPIC_POINTS + CONFIDENCE_POINTS * confidence if is_on_topic else OFF_TOPIC_PENALTY
    if has_question:
        score += MARKER_POINTS
    if has_example:
        score += MARKER_POINTS
    return clamp(score)


class SegmentAnalyzer:
    """
    Turns one final transcript segment into a committed `Segment`.

    The caller holds the session lock; nothing here awaits.
    """

    def __init__(self, classifier: LocalClassifier, profile: TopicProfile) -> None:
        self.classifier = classifier
        self.profile = profile

    def preview(self, text: str) -> LocalVerdict:
        return self.classifier.classify(text, self.profile.keywords, self.profile.off_topic_phrases)

    def analyze(self, session: MonitoringSession, text: str, now: float) -> Segment:
        session.require_active()
        verdict = self.preview(text)
        duration = session.gap_since_last(now)

        if verdict.is_filler:
            segment = Segment(
                seq=session.next_seq(),
                text=text,
                timestamp=now,
                duration_seconds=duration,
                is_on_topic=False,
                is_filler=True,
                matched_keywords=[],
                confidence=0.0,
                reason=verdict.reason,
                match_weight=verdict.match_weight,
            )
            session.record(segment, verdict.token_count)
            logger.debug("session %s seq %d filler: %r", session.session_id, segment.seq, text)
            return segment

        markers = detect_markers(text)
        session.metrics.observe_segment(markers, is_on_topic=verdict.is_on_topic)
        segment = Segment(
            seq=session.next_seq(),
            text=text,
            timestamp=now,
            duration_seconds=duration,
            is_on_topic=verdict.is_on_topic,
            is_filler=False,
            matched_keywords=list(verdict.matched_keywords),
            confidence=verdict.confidence,
            reason=verdict.reason,
            match_weight=verdict.match_weight,
            has_question=markers.has_question,
            has_example=markers.has_example,
            has_clarity_marker=markers.has_clarity_marker,
            score=self._score(verdict, markers),
        )
        session.record(segment, verdict.token_count)
        logger.debug(
            "session %s seq %d on_topic=%s weight=%d keywords=%s",
            session.session_id,
            segment.seq,
            segment.is_on_topic,
            segment.match_weight,
            segment.matched_keywords,
        )
        return segment

    def live_status(self, session: MonitoringSession, segment: Segment) -> LiveStatus:
        pct, _, _ = session.on_topic_percentages()
        return LiveStatus(
            session_id=session.session_id,
            seq=segment.seq,
            text=segment.text,
            timestamp=segment.timestamp,
            is_on_topic=segment.is_on_topic,
            is_filler=segment.is_filler,
            matched_keywords=list(segment.matched_keywords),
            confidence=segment.confidence,
            reason=segment.reason,
            score=segment.score,
            has_question=segment.has_question,
            has_example=segment.has_example,
            has_clarity_marker=segment.has_clarity_marker,
            cumulative_score=round(session.cumulative_score(), 2),
            on_topic_percentage=round(pct, 2),
        )

    @staticmethod
    def _score(verdict: LocalVerdict, markers: TeachingMarkers) -> float:
        return segment_score(
            is_on_topic=verdict.is_on_topic,
            confidence=verdict.confidence,
            has_question=markers.has_question,
            has_example=markers.has_example,
        )
