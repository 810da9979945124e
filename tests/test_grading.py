from __future__ import annotations

import pytest

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

CLEAN_METRICS = {"clarity": 72, "engagement": 70, "pacing": 95 - 20 / 3, "example_usage": 74, "question_asking": 70}


def _inputs(**overrides) -> GradingInputs:
    base = dict(
        topic="Quadratic Equations",
        on_topic_pct=100.0,
        metrics=dict(CLEAN_METRICS),
        questions=0,
        examples=1,
        duration_minutes=0.25,
        words_per_minute=80.0,
    )
    base.update(overrides)
    return GradingInputs(**base)


class TestBlend:
    def test_favorable_leans_to_the_higher_basis(self):
        assert blend_on_topic(50, 100, GradingPolicy()) == pytest.approx(80)

    def test_symmetric_averages(self):
        assert blend_on_topic(50, 100, GradingPolicy(on_topic_blend="symmetric")) == pytest.approx(75)

    def test_weight_is_configurable(self):
        assert blend_on_topic(0, 100, GradingPolicy(blend_high_weight=0.5)) == pytest.approx(50)


class TestScore:
    def test_raw_formula(self):
        raw = grade_score(_inputs(), GradingPolicy(normalize_short_sessions=False))
        assert raw == pytest.approx(40 + 0.3 * sum(CLEAN_METRICS.values()) / 5 + 4 + 0.125)
        assert grade_letter(raw) == "B+"

    def test_short_session_is_scaled_to_attainable_maximum(self):
        policy = GradingPolicy()
        raw = grade_score(_inputs(), GradingPolicy(normalize_short_sessions=False))
        scaled = grade_score(_inputs(), policy)
        assert scaled == pytest.approx(raw * 100 / 90.125)
        assert grade_letter(scaled) == "A"

    def test_long_session_is_not_rescaled(self):
        inputs = _inputs(duration_minutes=30)
        assert grade_score(inputs, GradingPolicy()) == grade_score(inputs, GradingPolicy(normalize_short_sessions=False))

    def test_engagement_bonus_is_capped(self):
        a = grade_score(_inputs(questions=10, examples=10, duration_minutes=30), GradingPolicy())
        b = grade_score(_inputs(questions=4, examples=2, duration_minutes=30), GradingPolicy())
        assert a == pytest.approx(b)


@pytest.mark.parametrize(
    "score, letter",
    [(95, "A+"), (80, "A+"), (79.9, "A"), (70, "A"), (60, "B+"), (50, "B"), (40, "C+"), (30, "C"), (20, "D"), (19.9, "F")],
)
def test_grade_letters(score, letter):
    assert grade_letter(score) == letter


@pytest.mark.parametrize(
    "pct, label",
    [(80, "Excellent"), (65, "Good"), (50, "Satisfactory"), (35, "Needs Improvement"), (34.9, "Critical")],
)
def test_status_labels(pct, label):
    assert status_label(pct) == label


class TestFeedbackRules:
    def test_unfocused_session(self):
        inputs = _inputs(on_topic_pct=40, duration_minutes=10, words_per_minute=120)
        assert "Stay more focused on the lesson topic" in identify_improvements(inputs)
        suggestions = generate_suggestions(inputs)
        content = [s for s in suggestions if s.type == "content"]
        assert content and content[0].priority == "high"
        assert "Only 40% of content was on-topic" in content[0].message
        assert any(s.type == "engagement" for s in suggestions)

    def test_short_session_skips_duration_gated_suggestions(self):
        suggestions = generate_suggestions(_inputs())
        assert suggestions == []

    def test_fast_pace(self):
        suggestions = generate_suggestions(_inputs(words_per_minute=190, duration_minutes=5, questions=3, examples=3))
        assert [(s.type, s.priority) for s in suggestions] == [("pacing", "high")]

    def test_strengths(self):
        inputs = _inputs(questions=6, examples=3, metrics={**CLEAN_METRICS, "pacing": 95, "clarity": 85})
        assert identify_strengths(inputs) == [
            "Excellent focus on the topic",
            "Great student engagement through questions",
            "Good use of examples",
            "Appropriate teaching pace",
            "Clear explanations",
        ]

    def test_default_strength(self):
        assert identify_strengths(_inputs(on_topic_pct=10, metrics={**CLEAN_METRICS, "pacing": 70})) == ["Keep up the good work!"]
