from __future__ import annotations

import json
import logging
from time import time

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from topic_monitor.api.errors import domain_errors
from topic_monitor.core.errors import MonitoringStateError, SessionNotFoundError
from topic_monitor.schema.monitoring import (
    AnalysisResponse,
    FinalSegmentRequest,
    InterimSegmentRequest,
    ModeResponse,
    RealtimeFrame,
    ReportResponse,
    SegmentResponse,
    StartMonitoringRequest,
    StartMonitoringResponse,
    TranscriptionErrorRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["monitoring"])


@router.post("/monitoring/start", response_model=StartMonitoringResponse)
async def start_monitoring(payload: StartMonitoringRequest, request: Request) -> StartMonitoringResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.start_monitoring(payload)
    return StartMonitoringResponse(
        ok=True,
        session_id=engine.session_id,
        mode=engine.session.ingestion_mode,
        keyword_count=len(engine.profile.keywords),
    )


@router.post("/monitoring/{session_id}/segments", response_model=SegmentResponse)
async def post_final_segment(session_id: str, payload: FinalSegmentRequest, request: Request) -> SegmentResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.session_manager.get(session_id)
        status = await engine.on_final_segment(payload.text, payload.confidence)
    return SegmentResponse(ok=True, status=status)


@router.post("/monitoring/{session_id}/interim", response_model=ModeResponse)
async def post_interim_segment(session_id: str, payload: InterimSegmentRequest, request: Request) -> ModeResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.session_manager.get(session_id)
        await engine.on_interim_segment(payload.text)
    return ModeResponse(ok=True, session_id=session_id, mode=engine.session.ingestion_mode)


@router.post("/monitoring/{session_id}/transcription_error", response_model=ModeResponse)
async def post_transcription_error(session_id: str, payload: TranscriptionErrorRequest, request: Request) -> ModeResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.session_manager.get(session_id)
        mode = await engine.on_transcription_error(payload.kind)
    return ModeResponse(ok=True, session_id=session_id, mode=mode)


@router.get("/monitoring/{session_id}/analysis", response_model=AnalysisResponse)
async def get_analysis(session_id: str, request: Request) -> AnalysisResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.session_manager.get(session_id)
        snap = await engine.snapshot()
    return AnalysisResponse(ok=True, analysis=snap)


@router.post("/monitoring/{session_id}/stop", response_model=ReportResponse)
async def stop_monitoring(session_id: str, request: Request) -> ReportResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        report = await ctx.stop_monitoring(session_id)
    return ReportResponse(ok=True, session_id=session_id, report=report)


@router.get("/monitoring/{session_id}/report", response_model=ReportResponse)
async def get_report(session_id: str, request: Request) -> ReportResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        engine = await ctx.session_manager.get(session_id)
        report = engine.generate_report()
    return ReportResponse(ok=True, session_id=session_id, report=report)


@router.websocket("/monitoring/realtime")
async def monitoring_realtime_ws(websocket: WebSocket):
    ctx = websocket.app.state.ctx
    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = RealtimeFrame.model_validate(json.loads(raw))
                mode = await ctx.handle_realtime_frame(frame)
            except (ValueError, ValidationError, MonitoringStateError, SessionNotFoundError) as e:
                await websocket.send_text(json.dumps({"ok": False, "error": str(e)}, ensure_ascii=False))
                continue
            await websocket.send_text(json.dumps({"ok": True, "mode": mode, "timestamp": time()}, ensure_ascii=False))
    except WebSocketDisconnect:
        logger.debug("realtime ingestion socket closed")
