from __future__ import annotations

from dataclasses import dataclass

from topic_monitor.classifiers.text import find_terms, tokenize

WH_WORDS = ["what", "why", "how", "when", "where", "who", "which"]
# a leading wh-word only marks a question when an auxiliary follows it
AUXILIARIES = [
    "is", "are", "was", "were", "do", "does", "did", "can", "could", "would", "should",
    "will", "has", "have", "many", "much",
]
QUESTION_PHRASES = [
    "can anyone", "does anyone", "does everyone", "do you understand", "any questions",
    "who can", "can you tell", "what do you think", "is that clear",
]
EXAMPLE_PHRASES = [
    "for example", "for instance", "such as", "example", "instance", "consider", "suppose",
    "imagine", "let's say", "e g",
]
CLARITY_PHRASES = [
    "therefore", "because", "thus", "hence", "in other words", "simply put", "this means",
    "that is why", "as a result", "to summarize", "step by step",
]


@dataclass(frozen=True)
class TeachingMarkers:
    has_question: bool
    has_example: bool
    has_clarity_marker: bool


def _asks(tokens: list[str]) -> bool:
    if tokens and tokens[0] in ("what's", "how's", "who's", "where's", "why's"):
        return True
    return len(tokens) > 1 and tokens[0] in WH_WORDS and tokens[1] in AUXILIARIES


def detect_markers(text: str) -> TeachingMarkers:
    tokens = tokenize(text)
    question = "?" in (text or "") or bool(find_terms(QUESTION_PHRASES, tokens))
    # transcripts often drop the question mark
    if not question and _asks(tokens) and not (text or "").rstrip().endswith("."):
        question = True
    return TeachingMarkers(
        has_question=question,
        has_example=bool(find_terms(EXAMPLE_PHRASES, tokens)),
        has_clarity_marker=bool(find_terms(CLARITY_PHRASES, tokens)),
    )
