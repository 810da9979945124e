from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from topic_monitor.schema.topics import CustomTopicRequest, CustomTopicResponse, TopicsResponse

router = APIRouter(tags=["topics"])


@router.get("/topics", response_model=TopicsResponse)
async def list_topics(request: Request) -> TopicsResponse:
    ctx = request.app.state.ctx
    return TopicsResponse(ok=True, subjects=ctx.corpus.list_topics())


@router.post("/topics/custom", response_model=CustomTopicResponse)
async def add_custom_topic(payload: CustomTopicRequest, request: Request) -> CustomTopicResponse:
    ctx = request.app.state.ctx
    try:
        profile = ctx.corpus.add_custom_topic(payload.subject, payload.topic, payload.keywords)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return CustomTopicResponse(
        ok=True,
        subject=profile.subject,
        topic=profile.topic,
        keywords=list(profile.keywords),
        off_topic_phrases=list(profile.off_topic_phrases),
    )
