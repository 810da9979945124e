from __future__ import annotations

from pydantic import BaseModel, Field


class TopicsResponse(BaseModel):
    ok: bool = True
    subjects: dict[str, list[str]] = Field(default_factory=dict)


class CustomTopicRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    keywords: list[str] | None = None


class CustomTopicResponse(BaseModel):
    ok: bool = True
    subject: str
    topic: str
    keywords: list[str] = Field(default_factory=list)
    off_topic_phrases: list[str] = Field(default_factory=list)
