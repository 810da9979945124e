from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

EventType = Literal["live_status", "interim_preview", "analysis_update", "notice", "final_report_ready"]


class EmittedEvent(BaseModel):
    type: EventType
    timestamp: float
    payload: dict = Field(default_factory=dict)


class LiveStatus(BaseModel):
    session_id: str
    seq: int
    text: str
    timestamp: float
    is_on_topic: bool
    is_filler: bool
    matched_keywords: list[str] = Field(default_factory=list)
    confidence: float
    reason: str
    score: float | None = None
    has_question: bool = False
    has_example: bool = False
    has_clarity_marker: bool = False
    cumulative_score: float
    on_topic_percentage: float


class InterimPreview(BaseModel):
    session_id: str
    text: str
    is_on_topic: bool
    matched_keywords: list[str] = Field(default_factory=list)
    reason: str


class Notice(BaseModel):
    session_id: str
    kind: Literal["degraded_remote", "ingestion_fallback", "remote_revision"]
    message: str
    detail: dict = Field(default_factory=dict)
