from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from dribblecam.api.schemas.models import FrameSchema
from dribblecam.api.services.engine import DrillEngine
from dribblecam.api.services.state import get_engine

router = APIRouter()

logger = logging.getLogger(__name__)


def _is_closed_send_error(exc: BaseException) -> bool:
    # Uvicorn raises this when an ASGI websocket.send happens after close.
    if not isinstance(exc, RuntimeError):
        return False
    msg = str(exc)
    return "Unexpected ASGI message 'websocket.send'" in msg or "response already completed" in msg


@router.websocket("/stream/metadata")
async def stream_metadata(ws: WebSocket):
    await ws.accept()
    # The first call may create and start the engine; keep that off the event loop.
    await asyncio.to_thread(get_engine)

    async def _poll_and_handle_ping() -> None:
        try:
            msg = await asyncio.wait_for(ws.receive_json(), timeout=0.001)
        except asyncio.TimeoutError:
            return
        except WebSocketDisconnect:
            raise
        except Exception:
            return

        if not isinstance(msg, dict) or msg.get("type") != "ping":
            return
        await ws.send_json({"type": "pong", "t": msg.get("t"), "server_time": time.time()})

    last_engine: DrillEngine | None = None
    last_version = -1
    try:
        while True:
            await _poll_and_handle_ping()
            # Settings reloads replace the engine; follow the current one.
            engine = get_engine()
            if engine is not last_engine:
                last_engine = engine
                last_version = -1

            version, result = engine.latest_versioned()
            if result is not None and version != last_version:
                last_version = version
                try:
                    payload = FrameSchema.from_result(result).to_payload()
                except Exception:
                    # Keep the websocket alive even if one frame fails serialization.
                    logger.exception("Failed to serialize frame result")
                    payload = None
                if payload is not None:
                    try:
                        await ws.send_json(payload)
                    except Exception as e:
                        if _is_closed_send_error(e) or isinstance(e, WebSocketDisconnect):
                            return
                        raise

            await asyncio.sleep(0.02)
    except WebSocketDisconnect:
        return
    except Exception:
        logger.exception("Metadata websocket crashed")
        try:
            await ws.close(code=1011)
        except Exception:
            logger.debug("WebSocket already closed")
