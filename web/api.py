# FILE: web/api.py
# PURPOSE: FastAPI server streaming chart windows and the hop minimap to the browser.


import json
import asyncio
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

STATIC_DIR = Path(__file__).parent / "static"


class ConnectionManager:
    def __init__(self): self.active_connections = []
    async def connect(self, websocket): await websocket.accept(); self.active_connections.append(websocket)
    def disconnect(self, websocket):
        if websocket in self.active_connections: self.active_connections.remove(websocket)
    async def broadcast(self, message):
        for connection in self.active_connections[:]:
            try: await connection.send_text(message)
            except Exception: self.disconnect(connection)


async def broadcast_snapshots(monitor, manager):
    """Pushes one snapshot per new tick. Only reads from the monitor, never waits on it."""
    last_sent = None
    while True:
        if manager.active_connections and monitor.last_tick != last_sent:
            last_sent = monitor.last_tick
            payload = {'type': 'update', **monitor.snapshot()}
            await manager.broadcast(json.dumps(payload))
        await asyncio.sleep(monitor.config.interval_s / 2)


def create_app(monitor):
    manager = ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(broadcast_snapshots(monitor, manager))
        yield
        task.cancel()

    app = FastAPI(lifespan=lifespan)
    app.state.monitor = monitor
    app.state.manager = manager

    @app.get("/", response_class=HTMLResponse)
    async def get_root():
        return HTMLResponse(content=(STATIC_DIR / "index.html").read_text())

    @app.get("/api/snapshot", response_class=JSONResponse)
    async def api_snapshot():
        return monitor.snapshot()

    @app.get("/api/targets/{name}/estimate", response_class=JSONResponse)
    async def api_estimate(name: str):
        if monitor.registry.get(name) is None:
            raise HTTPException(404, f"Unknown target '{name}'.")
        return [e.to_dict() for e in monitor.estimate(name)]

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await manager.connect(websocket)
        try:
            while True: await websocket.receive_text()
        except WebSocketDisconnect: manager.disconnect(websocket)

    return app
