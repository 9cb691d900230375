import json
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as SchemaError
from digital_humans.realtime.connection import ConnectionContext
from digital_humans.realtime.gateway import realtime_gateway
from digital_humans.realtime.manager import connection_manager
from digital_humans.schemas.realtime import RealtimeEvent

logger = logging.getLogger("realtime_controller")

router = APIRouter(tags=["realtime"])

# Frames are JSON text: {"type": <event>, "data": <payload>}
@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    ctx = ConnectionContext(websocket.send_text)
    connection_manager.register(ctx)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = RealtimeEvent.model_validate(json.loads(raw))
            except (json.JSONDecodeError, SchemaError):
                await ctx.emit("error", {"message": "Malformed frame", "code": "VALIDATION_ERROR"})
                continue
            await realtime_gateway.dispatch(ctx, frame.type, frame.data)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {ctx.id}")
    finally:
        ctx.close()
        connection_manager.unregister(ctx)
