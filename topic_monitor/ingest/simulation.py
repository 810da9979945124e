from __future__ import annotations

import random

from topic_monitor.classifiers.corpus import TopicProfile

TEMPLATES: tuple[str, ...] = (
    "Today we'll learn about {topic} and understand the {k0}",
    "Let me explain the concept of {k0} and {k1} in detail",
    "For example, when we have a {k1} we can solve it using {k2}",
    "Can anyone tell me what happens when we apply {k0}?",
    "This {k0} is very important because it relates to {k3}",
    "Let's look at another example of {k1} and {k2}",
    "Does everyone understand the {k0} so far?",
    "The key point here is the {k2} which connects to {k0}",
    "In other words, we can say that {k0} equals {k1}",
    "Who can solve this {k0} problem using {k2}?",
    "Remember, {k0} is related to {k3} and {k1}",
    "Let me show you {k0} step by step with {k2}",
    "Any questions about {k1} before we move on to {k3}?",
    "The {k0} formula helps us calculate {k1} efficiently",
    "Therefore, by understanding {k0} we master {k2}",
)


class ScriptedSegmentSource:
    """
    Stand-in transcript source used when live transcription is unavailable.

    Cycles through the templates in order, filled with the topic's own keywords. Pass
    a `seed` to shuffle the order reproducibly.
    """

    def __init__(self, profile: TopicProfile, *, seed: int | None = None) -> None:
        keywords = list(profile.keywords) or ["concept"]
        fill = {f"k{i}": keywords[i] if i < len(keywords) else keywords[0] for i in range(4)}
        self.phrases = [t.format(topic=profile.topic, **fill) for t in TEMPLATES]
        if seed is not None:
            random.Random(seed).shuffle(self.phrases)
        self._cursor = 0

    def next_text(self) -> str:
        text = self.phrases[self._cursor % len(self.phrases)]
        self._cursor += 1
        return text

    def take(self, n: int) -> list[str]:
        return [self.next_text() for _ in range(n)]
