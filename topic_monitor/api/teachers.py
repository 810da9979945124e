from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request

from topic_monitor.api.errors import domain_errors
from topic_monitor.schema.teachers import (
    RankingsResponse,
    RecentSessionsResponse,
    TeacherSessionsResponse,
    TeacherStatsResponse,
)

router = APIRouter(tags=["teachers"])


@router.get("/teachers/rankings", response_model=RankingsResponse)
async def teacher_rankings(request: Request) -> RankingsResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        items = await ctx.history.rankings()
    return RankingsResponse(ok=True, items=items)


@router.get("/teachers/{teacher_id}/stats", response_model=TeacherStatsResponse)
async def teacher_stats(teacher_id: str, request: Request) -> TeacherStatsResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        stats = await ctx.history.get_teacher_stats(teacher_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"no sessions recorded for teacher {teacher_id}")
    return TeacherStatsResponse(ok=True, stats=stats)


@router.get("/teachers/{teacher_id}/sessions", response_model=TeacherSessionsResponse)
async def teacher_sessions(teacher_id: str, request: Request) -> TeacherSessionsResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        items = await ctx.history.teacher_sessions(teacher_id)
    return TeacherSessionsResponse(ok=True, teacher_id=teacher_id, items=items)


@router.get("/sessions/recent", response_model=RecentSessionsResponse)
async def recent_sessions(request: Request, limit: int = Query(default=10, ge=1, le=100)) -> RecentSessionsResponse:
    ctx = request.app.state.ctx
    with domain_errors():
        items = await ctx.history.recent_sessions(limit)
    return RecentSessionsResponse(ok=True, items=items)
