from __future__ import annotations

from dataclasses import dataclass

from topic_monitor.core.settings import Settings
from topic_monitor.schema.report import Suggestion

GRADE_THRESHOLDS: list[tuple[float, str]] = [
    (80, "A+"), (70, "A"), (60, "B+"), (50, "B"), (40, "C+"), (30, "C"), (20, "D"),
]
STATUS_THRESHOLDS: list[tuple[float, str]] = [
    (80, "Excellent"), (65, "Good"), (50, "Satisfactory"), (35, "Needs Improvement"),
]


@dataclass(frozen=True)
class GradingPolicy:
    on_topic_blend: str = "favorable"
    blend_high_weight: float = 0.6
    topic_weight: float = 0.40
    metrics_weight: float = 0.30
    engagement_cap: float = 20.0
    question_points: float = 3.0
    example_points: float = 4.0
    duration_cap: float = 10.0
    duration_points_per_minute: float = 0.5
    normalize_short_sessions: bool = True

    @classmethod
    def from_settings(cls, s: Settings) -> "GradingPolicy":
        return cls(
            on_topic_blend=s.on_topic_blend,
            blend_high_weight=s.blend_high_weight,
            topic_weight=s.grade_topic_weight,
            metrics_weight=s.grade_metrics_weight,
            engagement_cap=s.engagement_bonus_cap,
            question_points=s.question_points,
            example_points=s.example_points,
            duration_cap=s.duration_bonus_cap,
            duration_points_per_minute=s.duration_points_per_minute,
            normalize_short_sessions=s.normalize_short_sessions,
        )


@dataclass(frozen=True)
class GradingInputs:
    topic: str
    on_topic_pct: float
    metrics: dict[str, float]
    questions: int
    examples: int
    duration_minutes: float
    words_per_minute: float


def blend_on_topic(segment_pct: float, time_pct: float, policy: GradingPolicy) -> float:
    """
    Combine the segment-count and time-weighted on-topic percentages.

    `favorable` leans towards the higher of the two so a brief off-topic dip is not
    punished twice; `symmetric` is a plain average.
    """
    if policy.on_topic_blend == "symmetric":
        value = (segment_pct + time_pct) / 2
    else:
        hi, lo = max(segment_pct, time_pct), min(segment_pct, time_pct)
        value = policy.blend_high_weight * hi + (1 - policy.blend_high_weight) * lo
    return max(0.0, min(100.0, value))


def grade_score(inputs: GradingInputs, policy: GradingPolicy) -> float:
    """
    0.40 * on-topic % + 0.30 * metrics average + engagement bonus + duration bonus.

    With `normalize_short_sessions` on (the default) the score is rescaled: the raw
    value is multiplied by full maximum / attainable maximum. The attainable maximum
    counts only the duration bonus earned so far. A short session can then reach
    the same grades as a long one, and the reported score is no longer the plain
    weighted sum. Sessions that have earned the full duration bonus are unchanged.
    """
    metrics_avg = sum(inputs.metrics.values()) / len(inputs.metrics) if inputs.metrics else 0.0
    engagement = min(policy.engagement_cap, policy.question_points * inputs.questions + policy.example_points * inputs.examples)
    duration_bonus = min(policy.duration_cap, policy.duration_points_per_minute * max(0.0, inputs.duration_minutes))
    raw = policy.topic_weight * inputs.on_topic_pct + policy.metrics_weight * metrics_avg + engagement + duration_bonus

    if not policy.normalize_short_sessions:
        return raw
    base = 100 * (policy.topic_weight + policy.metrics_weight) + policy.engagement_cap
    full = base + policy.duration_cap
    attainable = base + duration_bonus
    if attainable <= 0 or attainable >= full:
        return raw
    return raw * full / attainable


def grade_letter(score: float) -> str:
    for threshold, letter in GRADE_THRESHOLDS:
        if score >= threshold:
            return letter
    return "F"


def status_label(on_topic_pct: float) -> str:
    for threshold, label in STATUS_THRESHOLDS:
        if on_topic_pct >= threshold:
            return label
    return "Critical"


def identify_strengths(inputs: GradingInputs) -> list[str]:
    out: list[str] = []
    if inputs.on_topic_pct >= 80:
        out.append("Excellent focus on the topic")
    if inputs.questions >= 5:
        out.append("Great student engagement through questions")
    if inputs.examples >= 3:
        out.append("Good use of examples")
    if inputs.metrics.get("pacing", 0) >= 80:
        out.append("Appropriate teaching pace")
    if inputs.metrics.get("clarity", 0) >= 80:
        out.append("Clear explanations")
    return out or ["Keep up the good work!"]


def identify_improvements(inputs: GradingInputs) -> list[str]:
    out: list[str] = []
    if inputs.on_topic_pct < 60:
        out.append("Stay more focused on the lesson topic")
    if inputs.questions < 3:
        out.append("Ask more questions to check understanding")
    if inputs.examples < 2:
        out.append("Include more practical examples")
    if inputs.metrics.get("pacing", 100) < 65:
        out.append("Adjust speaking pace")
    return out


def generate_suggestions(inputs: GradingInputs) -> list[Suggestion]:
    out: list[Suggestion] = []
    long_enough = inputs.duration_minutes >= 2
    if inputs.on_topic_pct < 60:
        out.append(
            Suggestion(
                type="content",
                priority="high",
                message=f"Focus more on {inputs.topic}. Only {round(inputs.on_topic_pct)}% of content was on-topic.",
                action="Review lesson plan and stick to key concepts",
            )
        )
    if inputs.questions < 2 and long_enough:
        out.append(
            Suggestion(
                type="engagement",
                priority="medium",
                message="Ask more questions to engage students",
                action="Include 1-2 questions every 5 minutes",
            )
        )
    if inputs.examples < 2 and long_enough:
        out.append(
            Suggestion(
                type="clarity",
                priority="medium",
                message="Use more examples to illustrate concepts",
                action="Prepare 2-3 real-world examples for each concept",
            )
        )
    if inputs.words_per_minute > 160:
        out.append(
            Suggestion(
                type="pacing",
                priority="high",
                message="Speaking pace is too fast",
                action="Slow down and pause after important points",
            )
        )
    elif 0 < inputs.words_per_minute < 100 and long_enough:
        out.append(
            Suggestion(
                type="pacing",
                priority="low",
                message="Speaking pace is slower than the target band",
                action="Keep explanations moving and cut long pauses",
            )
        )
    if inputs.metrics.get("clarity", 100) < 65:
        out.append(
            Suggestion(
                type="clarity",
                priority="high",
                message="Use connecting words to improve clarity",
                action='Use words like "therefore", "because", "in other words"',
            )
        )
    return out
