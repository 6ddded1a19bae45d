"""FastAPI server for chess rooms."""

import json
import logging
from typing import List, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.config import Settings
from chess_rooms.connection_lifecycle import ConnectionLifecycleHandler
from chess_rooms.connection_manager import ConnectionManager
from chess_rooms.errors import InvalidPayload
from chess_rooms.events import EventDispatcher
from chess_rooms.lifecycle import IdleRoomReaper, RoomLifecycleManager
from chess_rooms.models import utcnow
from chess_rooms.protocol import RoomSummaryView
from chess_rooms.registry import SessionRegistry
from chess_rooms.turns import TurnCoordinator

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


class StatusResponse(BaseModel):
    """
    Response model for the root status endpoint.

    :param message: Server name
    :type message: str
    :param version: Server version
    :type version: str
    :param status: Liveness status
    :type status: str
    :param activeRooms: Number of rooms currently open
    :type activeRooms: int
    :param timestamp: Server time in ISO-8601
    :type timestamp: str
    """

    message: str
    version: str
    status: str
    activeRooms: int
    timestamp: str


class RoomListResponse(BaseModel):
    """
    Response model for the room listing.

    :param rooms: Summary of every open room
    :type rooms: List[RoomSummaryView]
    :param total: Number of rooms listed
    :type total: int
    """

    rooms: List[RoomSummaryView]
    total: int


def create_app(settings: Optional[Settings] = None, registry: Optional[SessionRegistry] = None) -> FastAPI:
    """
    Build the application with one instance of every session component.

    :param settings: Server settings, read from the environment if omitted
    :type settings: Optional[Settings]
    :param registry: Session registry, a fresh one if omitted
    :type registry: Optional[SessionRegistry]
    :return: Configured FastAPI application
    :rtype: FastAPI
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level)

    registry = registry or SessionRegistry()
    connection_manager = ConnectionManager()
    router = BroadcastRouter(connection_manager)
    lifecycle = RoomLifecycleManager(registry, router)
    coordinator = TurnCoordinator(registry, router)
    disconnects = ConnectionLifecycleHandler(registry, lifecycle, router)
    dispatcher = EventDispatcher(connection_manager, lifecycle, coordinator, disconnects, router)
    reaper = (
        IdleRoomReaper(lifecycle, settings.sweep_interval, settings.max_idle)
        if settings.sweep_interval
        else None
    )

    app = FastAPI(title="Chess Rooms", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.connections = connection_manager
    app.state.dispatcher = dispatcher
    app.state.reaper = reaper

    @app.on_event("startup")
    async def on_startup() -> None:
        """Start the idle-room sweep."""
        if reaper is not None:
            reaper.start()
        logger.info(f"Chess Rooms server v{VERSION} ready on port {settings.port}")
        logger.info(f"Health check: http://localhost:{settings.port}/api/rooms")

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        """Stop the idle-room sweep."""
        if reaper is not None:
            await reaper.stop()
        logger.info("Chess Rooms server stopped")

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/", response_model=StatusResponse)
    def root() -> StatusResponse:
        """
        Server status.

        :return: Name, version, liveness and number of open rooms
        :rtype: StatusResponse
        """
        return StatusResponse(
            message="Chess Game Server",
            version=VERSION,
            status="running",
            activeRooms=len(registry),
            timestamp=utcnow().isoformat(),
        )

    @app.get("/api/rooms", response_model=RoomListResponse)
    def list_rooms() -> RoomListResponse:
        """
        List open rooms.

        :return: Room summaries and their count
        :rtype: RoomListResponse
        """
        rooms = [RoomSummaryView.from_summary(summary) for summary in registry.list_summaries()]
        return RoomListResponse(rooms=rooms, total=len(rooms))

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """
        WebSocket endpoint for room events.

        Each text frame is a JSON envelope handled by the event dispatcher.
        On disconnect the connection is unseated from its room.

        :param websocket: WebSocket connection
        :type websocket: WebSocket
        """
        origin = websocket.headers.get("origin")
        if not settings.origin_allowed(origin):
            logger.info(f"[WS] Rejected connection from origin {origin}")
            await websocket.close(code=1008)
            return

        connection_id = await connection_manager.connect(websocket)
        logger.info(f"[WS:{connection_id}] Connected ({connection_manager.count()} active)")

        try:
            while True:
                try:
                    text = await websocket.receive_text()
                except (RuntimeError, WebSocketDisconnect):
                    raise WebSocketDisconnect()
                except (KeyError, TypeError):
                    await router.send_error(connection_id, InvalidPayload("Frames must be JSON text"))
                    continue

                try:
                    frame = json.loads(text)
                except ValueError:
                    await router.send_error(connection_id, InvalidPayload("Frames must be JSON text"))
                    continue

                await dispatcher.dispatch(connection_id, frame)
        except WebSocketDisconnect:
            logger.info(f"[WS:{connection_id}] Disconnected")
        finally:
            await connection_manager.disconnect(connection_id)
            await dispatcher.handle_disconnect(connection_id)

    return app


app = create_app()
