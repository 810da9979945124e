from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])


@router.websocket("/ws/{session_id}")
async def ws_events(websocket: WebSocket, session_id: str):
    """Stream live_status, interim_preview, analysis_update, notice and final_report_ready events."""
    ctx = websocket.app.state.ctx
    await websocket.accept()
    q = await ctx.event_bus.subscribe(session_id)
    try:
        while True:
            event = await q.get()
            await websocket.send_text(event.model_dump_json())
    except WebSocketDisconnect:
        logger.debug("event subscriber for %s disconnected", session_id)
    finally:
        await ctx.event_bus.unsubscribe(session_id, q)
