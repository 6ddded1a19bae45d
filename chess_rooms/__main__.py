"""Main entry point for the chess room server."""

import argparse
import os

import uvicorn

from chess_rooms.config import Settings


def main() -> None:
    """
    Start the FastAPI server.

    Defaults come from the environment (HOST, PORT, ALLOWED_ORIGINS,
    ROOM_SWEEP_INTERVAL, ROOM_MAX_IDLE, LOG_LEVEL); command line flags win.
    Visit http://<host>:<port>/api/rooms to list open rooms.
    """
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="Chess Rooms Server")
    parser.add_argument("--host", type=str, default=settings.host,
                        help=f"Host to bind the server to (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port,
                        help=f"Port to bind the server to (default: {settings.port})")
    parser.add_argument("--log-level", type=str, default=settings.log_level,
                        help=f"Logging level (default: {settings.log_level})")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    # The app module reads its settings from the environment on import
    os.environ["PORT"] = str(args.port)
    os.environ["LOG_LEVEL"] = args.log_level.upper()

    uvicorn.run(
        "chess_rooms.server:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
