from __future__ import annotations

from dataclasses import dataclass

from topic_monitor.classifiers.text import find_terms, tokenize

PHRASE_WEIGHT = 2
WORD_WEIGHT = 1
ON_TOPIC_MIN_WEIGHT = 2
FULL_CONFIDENCE_WEIGHT = 5


@dataclass(frozen=True)
class LocalVerdict:
    is_on_topic: bool
    confidence: float
    matched_keywords: list[str]
    reason: str
    match_weight: int
    token_count: int
    is_filler: bool = False
    off_topic_phrase: str | None = None


class LocalClassifier:
    """
    Keyword classifier for one transcript segment.

    Pure and synchronous so the live feedback loop never waits on it.
    """

    def __init__(self, *, min_tokens: int = 4) -> None:
        self.min_tokens = min_tokens

    def classify(
        self,
        text: str,
        topic_keywords: list[str] | tuple[str, ...],
        off_topic_phrases: list[str] | tuple[str, ...] = (),
    ) -> LocalVerdict:
        tokens = tokenize(text)
        if len(tokens) < self.min_tokens:
            return LocalVerdict(
                is_on_topic=False,
                confidence=0.0,
                matched_keywords=[],
                reason="Too short to classify",
                match_weight=0,
                token_count=len(tokens),
                is_filler=True,
            )

        matched: list[str] = []
        weight = 0
        for term, phrase in find_terms(topic_keywords, tokens):
            matched.append(term)
            weight += PHRASE_WEIGHT if phrase else WORD_WEIGHT

        vetoes = find_terms(off_topic_phrases, tokens)
        veto = vetoes[0][0] if vetoes else None

        is_on_topic = weight >= ON_TOPIC_MIN_WEIGHT and veto is None
        confidence = min(1.0, weight / FULL_CONFIDENCE_WEIGHT)

        if veto is not None:
            reason = f"Contains off-topic conversation: '{veto}'"
        elif is_on_topic:
            reason = f"Found {len(matched)} topic keywords: {', '.join(matched[:3])}"
        elif weight == 0:
            reason = "No topic-specific keywords detected"
        else:
            reason = f"Only {len(matched)} keyword(s) found, need more topic focus"

        return LocalVerdict(
            is_on_topic=is_on_topic,
            confidence=round(confidence, 4),
            matched_keywords=matched,
            reason=reason,
            match_weight=weight,
            token_count=len(tokens),
            off_topic_phrase=veto,
        )
