import logging
from typing import Dict, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from spinfour.ai.selector import Difficulty
from spinfour.ai.tactics import Rotation
from spinfour.config import ServerSettings
from spinfour.errors import GameNotFound
from spinfour.messages import parse_intent
from spinfour.registry import SessionRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Delivers registry messages to the websocket behind each connection id."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid4().hex
        self.active_connections[connection_id] = websocket
        logger.info("connected %s", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self.active_connections.pop(connection_id, None)
        logger.info("disconnected %s", connection_id)

    async def send(self, connection_id: str, message: dict) -> None:
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            raise ConnectionError(f"{connection_id} is not connected")
        await websocket.send_json(message)


class SuggestRequest(BaseModel):
    difficulty: str = "master"
    time_ms: Optional[int] = Field(default=None, ge=1)


COLS = "ABCD"
ROWS = "1234"


def action_to_dict(action) -> dict:
    if isinstance(action, Rotation):
        return {
            "kind": "rotate",
            "quadrantIndex": int(action.quadrant),
            "direction": action.direction.label,
            "move": f"{action.quadrant.name} {action.direction.name}",
        }
    return {
        "kind": "place",
        "row": action.row,
        "col": action.col,
        "move": f"{COLS[action.col]}{ROWS[action.row]}",
    }


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    settings = settings or ServerSettings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="spinfour")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    manager = ConnectionManager()
    app.state.settings = settings
    app.state.manager = manager
    app.state.registry = SessionRegistry(manager, settings)

    @app.get("/state/{gid}")
    def state(gid: str):
        try:
            session = app.state.registry.get(gid)
        except GameNotFound:
            raise HTTPException(404, "unknown game")
        return {"state": session.snapshot()}

    @app.post("/suggest/{gid}")
    def suggest(gid: str, req: SuggestRequest):
        registry: SessionRegistry = app.state.registry
        try:
            session = registry.get(gid)
            difficulty = Difficulty.from_label(req.difficulty)
        except GameNotFound:
            raise HTTPException(404, "unknown game")
        except ValueError as e:
            raise HTTPException(400, str(e))
        if session.is_over:
            raise HTTPException(409, "game is over")
        action = registry.suggest(gid, difficulty, time_ms=req.time_ms)
        if action is None:
            raise HTTPException(409, "no move available")
        return {"suggestion": action_to_dict(action), "player": session.current_player.label}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        registry: SessionRegistry = app.state.registry
        connection_id = await manager.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    intent = parse_intent(raw)
                except ValidationError as e:
                    logger.warning("malformed payload from %s: %s", connection_id, e.errors()[:1])
                    continue
                await registry.dispatch(connection_id, intent)
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(connection_id)
            await registry.disconnect(connection_id)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port, log_level=app.state.settings.log_level.lower())
