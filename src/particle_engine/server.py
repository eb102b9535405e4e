"""WebSocket server streaming particle frames to render clients.

Runs the tick loop inside the server's event loop, pushes every completed
frame to connected clients and accepts control messages from them.

Client → server messages:
    {"type": "shape", "shape": "heart"}
    {"type": "palette", "palette": "neon"}
    {"type": "explode"}
    {"type": "key", "key": "3"}
    {"type": "landmarks", "landmarks": [[x, y], ... 21] | null}
    {"type": "ping"}

Usage:
    particle-engine serve
    # or
    uvicorn particle_engine.server:app --host 0.0.0.0 --port 8770
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

try:
    from fastapi import FastAPI, WebSocket, WebSocketDisconnect
    from fastapi.responses import PlainTextResponse
    _HAS_FASTAPI = True
except ImportError:
    _HAS_FASTAPI = False

if not _HAS_FASTAPI:
    raise ImportError("FastAPI required. Install with: pip install fastapi uvicorn")

from particle_engine import __version__
from particle_engine.config import EngineConfig
from particle_engine.palettes import PALETTES
from particle_engine.particles import RenderFrame
from particle_engine.scheduler import TickScheduler
from particle_engine.session import Session
from particle_engine.shapes import SHAPES
from particle_engine.tracking import HandTrackingFeed

logger = logging.getLogger("particle_engine.server")

app = FastAPI(title="ParticleEngine", version=__version__)


class ServerState:
    def __init__(self):
        self.config = EngineConfig()
        self.clients: set[WebSocket] = set()
        self.session: Optional[Session] = None
        self.scheduler: Optional[TickScheduler] = None
        self.feed: Optional[HandTrackingFeed] = None
        self.loop_task: Optional[asyncio.Task] = None

state = ServerState()


def _require_session() -> Session:
    if state.session is None:
        state.session = Session(state.config)
    return state.session


# --- API endpoints ---

@app.get("/api/status")
async def api_status():
    session = _require_session()
    return {
        **session.status(),
        "running": state.scheduler is not None and state.scheduler.running,
        "clients": len(state.clients),
        "tracking": state.feed is not None and state.feed.enabled,
        "tracking_error": state.feed.error if state.feed else None,
        "profiler": session.profiler.summary(),
    }


@app.get("/api/shapes")
async def list_shapes():
    return {"shapes": list(SHAPES), "current": _require_session().state.shape}


@app.get("/api/palettes")
async def list_palettes():
    return {
        "palettes": {name: [f"#{c:06x}" for c in colors] for name, colors in PALETTES.items()},
        "current": _require_session().state.palette,
    }


@app.get("/metrics")
async def metrics():
    session = _require_session()
    session.metrics.set_render_clients(len(state.clients))
    return PlainTextResponse(
        session.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- Control messages ---

def apply_message(session: Session, data: dict) -> Optional[dict]:
    """Apply one client message. Returns the reply to send, if any."""
    if not isinstance(data, dict):
        return {"type": "error", "message": "expected a JSON object"}
    kind = data.get("type")
    try:
        if kind == "ping":
            return {"type": "pong", "server_time": time.time()}
        if kind == "shape":
            session.select_shape(data["shape"])
        elif kind == "palette":
            session.select_palette(data["palette"])
        elif kind == "explode":
            session.trigger_explosion()
        elif kind == "key":
            session.handle_key(data["key"])
        elif kind == "landmarks":
            sample = session.on_landmarks(data.get("landmarks"))
            return {"type": "gesture", **sample.to_dict()}
        else:
            return {"type": "error", "message": f"unknown message type {kind!r}"}
    except (KeyError, ValueError) as e:
        return {"type": "error", "message": str(e)}
    return {"type": "status", **session.status()}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    state.clients.add(ws)
    session = _require_session()
    logger.info("Render client connected (%d total)", len(state.clients))

    try:
        await ws.send_json({
            "type": "connected",
            "particles": session.particles.count,
            "shapes": list(SHAPES),
            "palettes": list(PALETTES),
            **session.status(),
        })

        while True:
            try:
                msg = await asyncio.wait_for(ws.receive_text(), timeout=30)
            except asyncio.TimeoutError:
                await ws.send_json({"type": "ping"})
                continue

            try:
                data = json.loads(msg)
            except json.JSONDecodeError:
                await ws.send_json({"type": "error", "message": "invalid JSON"})
                continue

            reply = apply_message(session, data)
            if reply is not None:
                await ws.send_json(reply)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.debug("WebSocket error: %s", e)
    finally:
        state.clients.discard(ws)
        logger.info("Render client disconnected (%d total)", len(state.clients))


async def broadcast(message: dict):
    """Send message to all render clients, dropping dead ones."""
    if not state.clients:
        return
    dead = set()
    payload = json.dumps(message)
    for ws in list(state.clients):
        try:
            await ws.send_text(payload)
        except Exception:
            dead.add(ws)
    state.clients -= dead


def _publish(frame: RenderFrame):
    if not state.clients or frame.tick % state.config.frame_every:
        return
    asyncio.get_running_loop().create_task(
        broadcast(frame.to_dict(state.config.frame_precision))
    )


# --- Lifecycle ---

@app.on_event("startup")
async def startup():
    session = _require_session()
    session.on_frame(_publish)

    if state.config.camera_enabled:
        state.feed = HandTrackingFeed(session.on_landmarks, state.config)
        state.feed.start()

    state.scheduler = TickScheduler(session.tick, fps=state.config.fps)
    state.loop_task = asyncio.create_task(state.scheduler.run_async())
    logger.info("Tick loop running at %.0f fps", state.config.fps)


@app.on_event("shutdown")
async def shutdown():
    if state.scheduler:
        state.scheduler.stop()
    if state.loop_task:
        await state.loop_task
        state.loop_task = None
    if state.feed:
        state.feed.stop()
    logger.info("Server stopped")


# --- CLI entry point ---

def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="ParticleEngine WebSocket Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8770, help="Port")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
