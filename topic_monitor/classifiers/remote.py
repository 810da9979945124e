from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from topic_monitor.core.errors import RemoteClassifierError
from topic_monitor.llm.ark_client import ArkChatClient, ArkChatTurn, ArkClientError


@dataclass(frozen=True)
class RemoteVerdict:
    is_on_topic: bool
    confidence: float
    matched_concepts: list[str] = field(default_factory=list)
    reason: str = ""


class RemoteClassifier(Protocol):
    async def classify(self, text: str, topic: str, subject: str) -> RemoteVerdict: ...

    async def classify_batch(self, texts: list[str], topic: str, subject: str) -> list[RemoteVerdict]: ...


class _VerdictPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    segment: int | None = None
    is_on_topic: bool = Field(alias="isOnTopic")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    matched_concepts: list[str] = Field(default_factory=list, alias="matchedConcepts")
    reason: str = ""

    def to_verdict(self) -> RemoteVerdict:
        return RemoteVerdict(
            is_on_topic=self.is_on_topic,
            confidence=self.confidence,
            matched_concepts=[str(c) for c in self.matched_concepts],
            reason=self.reason,
        )


def build_single_prompt(text: str, topic: str, subject: str) -> str:
    return (
        f'You are an educational content analyzer. Decide whether the following classroom speech is teaching "{topic}" in {subject}.\n\n'
        f'SPEECH: "{text}"\n\n'
        "Respond ONLY with a JSON object in this exact format (no markdown):\n"
        '{"isOnTopic": true/false, "confidence": 0.0-1.0, "matchedConcepts": ["..."], "reason": "brief explanation"}\n\n'
        "Rules:\n"
        f"- isOnTopic is true only if the speech directly discusses {topic} concepts\n"
        "- greetings, logistics and casual conversation are false\n"
        "- partially related content is true with lower confidence"
    )


def build_batch_prompt(texts: list[str], topic: str, subject: str) -> str:
    numbered = "\n".join(f"{i}. {t}" for i, t in enumerate(texts, start=1))
    return (
        f'Analyze these numbered classroom speech segments for teaching "{topic}" in {subject}.\n\n'
        f"SEGMENTS:\n{numbered}\n\n"
        "Respond ONLY with a JSON array, one object per segment, in order:\n"
        '[{"segment": 1, "isOnTopic": true/false, "confidence": 0.0-1.0, "reason": "..."}]\n\n'
        f"Be strict: only mark a segment on-topic if it directly discusses {topic}."
    )


def parse_verdict(raw: str) -> RemoteVerdict:
    m = re.search(r"\{[\s\S]*\}", raw or "")
    if not m:
        raise RemoteClassifierError(f"no JSON object in remote reply: {(raw or '')[:200]}")
    try:
        return _VerdictPayload.model_validate(json.loads(m.group(0))).to_verdict()
    except (ValueError, ValidationError) as e:
        raise RemoteClassifierError(f"malformed remote verdict: {e}") from e


def parse_batch(raw: str, expected: int) -> list[RemoteVerdict]:
    m = re.search(r"\[[\s\S]*\]", raw or "")
    if not m:
        raise RemoteClassifierError(f"no JSON array in remote reply: {(raw or '')[:200]}")
    try:
        items: Any = json.loads(m.group(0))
        if not isinstance(items, list):
            raise ValueError("batch reply is not a list")
        payloads = [_VerdictPayload.model_validate(item) for item in items]
    except (ValueError, ValidationError) as e:
        raise RemoteClassifierError(f"malformed remote batch: {e}") from e
    if len(payloads) != expected:
        raise RemoteClassifierError(f"remote batch returned {len(payloads)} verdicts for {expected} segments")
    if all(p.segment is not None for p in payloads):
        payloads.sort(key=lambda p: p.segment or 0)
    return [p.to_verdict() for p in payloads]


class ArkRemoteClassifier:
    def __init__(self, client: ArkChatClient) -> None:
        self._client = client

    async def classify(self, text: str, topic: str, subject: str) -> RemoteVerdict:
        raw = await self._chat(build_single_prompt(text, topic, subject), max_tokens=200)
        return parse_verdict(raw)

    async def classify_batch(self, texts: list[str], topic: str, subject: str) -> list[RemoteVerdict]:
        if not texts:
            return []
        raw = await self._chat(build_batch_prompt(texts, topic, subject), max_tokens=120 * len(texts))
        return parse_batch(raw, len(texts))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _chat(self, prompt: str, *, max_tokens: int) -> str:
        try:
            return await self._client.chat([ArkChatTurn(role="user", text=prompt)], max_tokens=max_tokens)
        except ArkClientError as e:
            raise RemoteClassifierError(str(e), transient=e.transient) from e
