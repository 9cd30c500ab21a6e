import json
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import pydantic
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from .board import Cell
from .config import Settings, configure_logging
from .errors import ConfigurationError, IllegalStateError, OccupiedError, ValidationError
from .models import (
    LeaderboardEntry, MoveRequest, MoveResponse, Outcome, SessionCreateRequest,
    SessionSummary, SessionView, build_player,
)
from .session import FinalTallies, RoundStarted, SessionController
from .store import InMemoryStore, SessionNotFound, StoreFull

logger = logging.getLogger(__name__)

T = TypeVar("T")

openapi_tags = [
    {"name": "session", "description": "Start sessions, play moves and rounds, end sessions"},
    {"name": "scoreboard", "description": "Totals across ended sessions"},
    {"name": "ws", "description": "Websocket for live session updates"},
]


def outcome_message(outcome: Outcome) -> Dict[str, Any]:
    """JSON message broadcast to session viewers."""
    payload = outcome.model_dump(mode="json")
    payload["type"] = payload.pop("event")
    return payload


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, SessionNotFound):
        return HTTPException(status_code=404, detail="Session not found.")
    if isinstance(exc, IllegalStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


class ConnectionManager:
    """Manages active websocket connections per session."""
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(session_id, []).append(websocket)
        logger.debug("Viewer connected to session %s", session_id)

    def disconnect(self, session_id: str, websocket: WebSocket):
        if session_id in self.active_connections:
            self.active_connections[session_id] = [
                ws for ws in self.active_connections[session_id]
                if ws != websocket
            ]
            if not self.active_connections[session_id]:
                del self.active_connections[session_id]
        logger.debug("Viewer disconnected from session %s", session_id)

    async def broadcast(self, session_id: str, message: dict):
        """Send JSON to all viewers of this session."""
        disconnected = []
        for ws in list(self.active_connections.get(session_id, [])):
            try:
                await ws.send_json(message)
            except (RuntimeError, WebSocketDisconnect):
                disconnected.append(ws)
        for ws in disconnected:
            self.disconnect(session_id, ws)


# PUBLIC_INTERFACE
def create_app(store: Optional[InMemoryStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around its own session store."""
    settings = settings or Settings()
    configure_logging(settings.log_level)
    store = store or InMemoryStore(max_sessions=settings.max_sessions)
    manager = ConnectionManager()

    app = FastAPI(
        title="Noughts & Crosses Backend",
        description="REST and WebSocket API for browser noughts & crosses. Sessions of rounds between two players with running scores.",
        version="1.0.0",
        openapi_tags=openapi_tags,
    )
    app.state.store = store
    app.state.manager = manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def call(session_id: str, operation: Callable[[SessionController], T]) -> T:
        try:
            return store.run(session_id, operation)
        except (SessionNotFound, ValidationError, OccupiedError, IllegalStateError) as exc:
            logger.info("Rejected request on session %s: %s", session_id, exc)
            raise _http_error(exc)

    def view(session_id: str) -> SessionView:
        return call(session_id, lambda c: SessionView.from_controller(session_id, c))

    @app.get("/")
    def health_check():
        """Health check endpoint."""
        return {"message": "Healthy", "env": settings.env}

    # ---------------- Sessions ---------------- #

    # PUBLIC_INTERFACE
    @app.post("/sessions", response_model=SessionView, status_code=201, tags=["session"], summary="Start a session")
    async def create_session(req: SessionCreateRequest):
        """Start a session; player_x plays crosses and opens round 1."""
        try:
            player_x = build_player(req.player_x, Cell.CROSS)
            player_o = build_player(req.player_o, Cell.NOUGHT)
            record = store.create_session(player_x, player_o)
        except pydantic.ValidationError as exc:
            raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False))
        except ConfigurationError as exc:
            raise _http_error(exc)
        except StoreFull as exc:
            logger.warning("%s", exc)
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
        return view(record.session_id)

    # PUBLIC_INTERFACE
    @app.get("/sessions", response_model=List[SessionSummary], tags=["session"], summary="List running sessions")
    async def list_sessions():
        summaries = []
        for record in store.list_sessions():
            controller = record.controller
            players = [p.name for p in (controller.player_x, controller.player_o) if p is not None]
            summaries.append(SessionSummary(
                session_id=record.session_id,
                players=players,
                phase=controller.phase,
                round_number=controller.round_number,
            ))
        return summaries

    # PUBLIC_INTERFACE
    @app.get("/sessions/{session_id}", response_model=SessionView, tags=["session"], summary="Get session state")
    async def get_session(session_id: str):
        return view(session_id)

    # PUBLIC_INTERFACE
    @app.post("/sessions/{session_id}/moves", response_model=MoveResponse, tags=["session"], summary="Play a move")
    async def play_move(session_id: str, req: MoveRequest):
        """Place the active player's marker at (row, col)."""
        outcome = call(session_id, lambda c: c.apply_move(req.row, req.col))
        await manager.broadcast(session_id, outcome_message(outcome))
        return MoveResponse(outcome=outcome, session=view(session_id))

    # PUBLIC_INTERFACE
    @app.post("/sessions/{session_id}/provider-move", response_model=MoveResponse, tags=["session"],
              summary="Let the registered provider move for a non-human player")
    async def play_provider_move(session_id: str):
        active = call(session_id, lambda c: c.active_player)
        if active is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No move is expected.")
        if active.is_human:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{active.name} is human.")
        provider = store.get_provider(active.type)
        if provider is None:
            raise HTTPException(
                status_code=status.HTTP_501_NOT_IMPLEMENTED,
                detail=f"No move provider registered for {active.type.value}.",
            )
        outcome = call(session_id, lambda c: c.apply_provided_move(provider))
        await manager.broadcast(session_id, outcome_message(outcome))
        return MoveResponse(outcome=outcome, session=view(session_id))

    # PUBLIC_INTERFACE
    @app.post("/sessions/{session_id}/next-round", response_model=SessionView, tags=["session"],
              summary="Start the next round")
    async def next_round(session_id: str):
        outcome: RoundStarted = call(session_id, lambda c: c.start_next_round())
        await manager.broadcast(session_id, outcome_message(outcome))
        return view(session_id)

    # PUBLIC_INTERFACE
    @app.get("/sessions/{session_id}/events", response_model=List[Dict[str, Any]], tags=["session"],
             summary="Outcome log of the session")
    async def get_events(session_id: str):
        try:
            return list(store.get_session(session_id).log.events)
        except SessionNotFound as exc:
            raise _http_error(exc)

    # PUBLIC_INTERFACE
    @app.delete("/sessions/{session_id}", response_model=FinalTallies, tags=["session"], summary="End a session")
    async def end_session(session_id: str):
        """End the session and record its totals on the scoreboard."""
        try:
            final = store.end_session(session_id)
        except SessionNotFound as exc:
            raise _http_error(exc)
        await manager.broadcast(session_id, outcome_message(final))
        return final

    # ----------------- Scoreboard ---------------- #

    # PUBLIC_INTERFACE
    @app.get("/scoreboard", response_model=List[LeaderboardEntry], tags=["scoreboard"], summary="Sorted scoreboard")
    async def get_scoreboard():
        """Totals by player name, sorted by wins."""
        return store.get_leaderboard()

    # --------------- WebSocket live updates --------------- #

    # PUBLIC_INTERFACE
    @app.websocket("/ws/sessions/{session_id}")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        Live updates for one session.

        Every outcome is pushed to all viewers; errors go back to the sender only.
        """
        try:
            store.get_session(session_id)
        except SessionNotFound:
            logger.info("Refused viewer for unknown session %s", session_id)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await manager.connect(session_id, websocket)
        try:
            while True:
                text = await websocket.receive_text()
                try:
                    data = json.loads(text)
                except ValueError:
                    await websocket.send_json({"error": "Invalid command"})
                    continue
                action = data.get("action") if isinstance(data, dict) else None
                if action == "move":
                    row, col = data.get("row"), data.get("col")
                    operation = lambda c: c.apply_move(row, col)
                elif action == "next_round":
                    operation = lambda c: c.start_next_round()
                else:
                    await websocket.send_json({"error": "Invalid command"})
                    continue
                try:
                    outcome = store.run(session_id, operation)
                except SessionNotFound:
                    await websocket.send_json({"error": "Session not found."})
                    continue
                except (ValidationError, OccupiedError, IllegalStateError) as err:
                    await websocket.send_json({"error": str(err)})
                    continue
                await manager.broadcast(session_id, outcome_message(outcome))
        except WebSocketDisconnect:
            pass
        finally:
            manager.disconnect(session_id, websocket)

    # PUBLIC_INTERFACE
    @app.get("/ws/docs", tags=["ws"], summary="Websocket API usage help")
    def websocket_usage():
        """
        API docs for websocket:
        - Endpoint: /ws/sessions/{session_id}
        - Client messages:
            - { "action": "move", "row": 0, "col": 1 }
            - { "action": "next_round" }
        - Broadcasts: { "type": "move_settled" | "round_won" | "round_tied" | "round_started" | "session_ended", ... }
        - Errors (sender only): { "error": "<string>" }
        """
        return {
            "endpoint": "/ws/sessions/{session_id}",
            "messages": [
                {"action": "move", "row": 0, "col": 1},
                {"action": "next_round"},
            ],
            "broadcast_types": ["round_started", "move_settled", "round_won", "round_tied", "session_ended"],
        }

    return app


app = create_app()
