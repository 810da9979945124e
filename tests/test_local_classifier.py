from __future__ import annotations

from topic_monitor.classifiers.corpus import OFF_TOPIC_PHRASES
from topic_monitor.classifiers.local import LocalClassifier
from topic_monitor.classifiers.markers import detect_markers
from topic_monitor.classifiers.text import find_terms, tokenize


class TestKeywordWeights:
    def test_phrase_match_alone_is_on_topic(self):
        verdict = LocalClassifier().classify("now we apply the quadratic formula here", ["quadratic formula"])
        assert verdict.match_weight == 2
        assert verdict.is_on_topic
        assert verdict.confidence == 0.4

    def test_single_word_alone_is_not_enough(self):
        verdict = LocalClassifier().classify("this relationship is linear in nature", ["linear"])
        assert verdict.match_weight == 1
        assert not verdict.is_on_topic
        assert verdict.reason == "Only 1 keyword(s) found, need more topic focus"

    def test_single_words_need_exact_tokens(self):
        verdict = LocalClassifier().classify("the factorial of five is large", ["factor", "five"])
        assert verdict.matched_keywords == ["five"]

    def test_confidence_saturates(self):
        verdict = LocalClassifier().classify(
            "the quadratic formula gives the roots from the discriminant and coefficient",
            ["quadratic formula", "roots", "discriminant", "coefficient"],
        )
        assert verdict.match_weight == 5
        assert verdict.confidence == 1.0
        assert verdict.reason.startswith("Found 4 topic keywords: quadratic formula, roots, discriminant")

    def test_no_keywords(self):
        verdict = LocalClassifier().classify("please open your notebooks now", ["parabola"])
        assert not verdict.is_on_topic
        assert verdict.reason == "No topic-specific keywords detected"


class TestOffTopicVeto:
    def test_greeting_and_leisure_veto(self):
        verdict = LocalClassifier().classify(
            "Good morning everyone, how was your weekend cricket match",
            ["quadratic", "match", "weekend"],
            OFF_TOPIC_PHRASES,
        )
        assert not verdict.is_on_topic
        assert verdict.match_weight >= 2
        assert verdict.off_topic_phrase == "good morning"
        assert verdict.reason == "Contains off-topic conversation: 'good morning'"

    def test_veto_overrides_strong_evidence(self):
        verdict = LocalClassifier().classify(
            "after lunch we solve the quadratic formula for the roots",
            ["quadratic formula", "roots", "solve"],
            ["lunch"],
        )
        assert verdict.match_weight == 4
        assert not verdict.is_on_topic


class TestFiller:
    def test_short_segment_is_filler(self):
        verdict = LocalClassifier().classify("ok, quadratic formula", ["quadratic formula"])
        assert verdict.is_filler
        assert not verdict.is_on_topic
        assert verdict.token_count == 3

    def test_threshold_is_configurable(self):
        verdict = LocalClassifier(min_tokens=2).classify("quadratic formula", ["quadratic formula"])
        assert not verdict.is_filler
        assert verdict.is_on_topic


def test_tokenize_strips_punctuation():
    assert tokenize("Let's see: x-squared, OK?") == ["let's", "see", "x", "squared", "ok"]


def test_phrases_are_word_bounded():
    hits = find_terms(["four ac"], tokenize("b squared minus four acres"))
    assert hits == []


class TestMarkers:
    def test_question_by_mark_or_leading_wh_word(self):
        assert detect_markers("Is this clear?").has_question
        assert detect_markers("why does the parabola open upward").has_question
        assert not detect_markers("the parabola opens upward").has_question

    def test_leading_wh_word_in_a_statement_is_not_a_question(self):
        assert not detect_markers("When we factor the polynomial the roots appear").has_question
        assert not detect_markers("What is left over becomes the constant term.").has_question
        assert detect_markers("how many roots does this equation have").has_question
        assert detect_markers("what's the value of the discriminant").has_question

    def test_example_and_clarity(self):
        markers = detect_markers("For instance, the roots are real because the discriminant is positive")
        assert markers.has_example
        assert markers.has_clarity_marker
        assert not markers.has_question
