from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from topic_monitor.schema.events import LiveStatus
from topic_monitor.schema.report import AnalysisSnapshot, MonitoringReport, TeacherInfo


class StartMonitoringRequest(BaseModel):
    session_id: str | None = None
    topic: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    teacher: TeacherInfo | None = None
    simulate: bool = False


class StartMonitoringResponse(BaseModel):
    ok: bool
    session_id: str
    mode: Literal["live", "simulation"]
    keyword_count: int


class FinalSegmentRequest(BaseModel):
    text: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class InterimSegmentRequest(BaseModel):
    text: str


class TranscriptionErrorRequest(BaseModel):
    kind: str = Field(..., min_length=1)


class SegmentResponse(BaseModel):
    ok: bool
    status: LiveStatus


class ModeResponse(BaseModel):
    ok: bool
    session_id: str
    mode: Literal["live", "simulation"]


class AnalysisResponse(BaseModel):
    ok: bool
    analysis: AnalysisSnapshot


class ReportResponse(BaseModel):
    ok: bool
    session_id: str
    report: MonitoringReport


class RealtimeFrame(BaseModel):
    session_id: str = Field(..., min_length=1)
    type: Literal["final", "interim", "error"]
    text: str = ""
    confidence: float | None = None
    kind: str | None = None
