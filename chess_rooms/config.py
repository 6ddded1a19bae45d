"""Runtime configuration for the chess room server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _optional_float(raw: str) -> Optional[float]:
    if raw.lower() == "none":
        return None
    return float(raw)


@dataclass
class Settings:
    """
    Server settings, normally read from the environment.

    :param host: Interface to bind the server to
    :type host: str
    :param port: Listening port
    :type port: int
    :param allowed_origins: Origins allowed to open cross-origin connections ('*' allows any)
    :type allowed_origins: List[str]
    :param sweep_interval: Seconds between idle-room sweeps, None disables the sweep
    :type sweep_interval: Optional[float]
    :param max_idle: Seconds of inactivity after which a room is reclaimed
    :type max_idle: float
    :param log_level: Root logging level name
    :type log_level: str
    """

    host: str = "0.0.0.0"
    port: int = 8080
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    sweep_interval: Optional[float] = 5 * 60.0
    max_idle: float = 30 * 60.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables, falling back to defaults.

        :return: Settings instance
        :rtype: Settings
        """
        settings = cls()
        if "HOST" in os.environ:
            settings.host = os.environ["HOST"]
        if "PORT" in os.environ:
            settings.port = int(os.environ["PORT"])
        if "ALLOWED_ORIGINS" in os.environ:
            settings.allowed_origins = _split_origins(os.environ["ALLOWED_ORIGINS"])
        if "ROOM_SWEEP_INTERVAL" in os.environ:
            settings.sweep_interval = _optional_float(os.environ["ROOM_SWEEP_INTERVAL"])
        if "ROOM_MAX_IDLE" in os.environ:
            settings.max_idle = float(os.environ["ROOM_MAX_IDLE"])
        if "LOG_LEVEL" in os.environ:
            settings.log_level = os.environ["LOG_LEVEL"].upper()
        return settings

    def origin_allowed(self, origin: Optional[str]) -> bool:
        """
        Check whether a connection from the given origin may be established.

        Requests without an Origin header (non-browser clients) are allowed.

        :param origin: Value of the Origin header, if any
        :type origin: Optional[str]
        :return: True if the origin is allowed
        :rtype: bool
        """
        if not origin:
            return True
        return "*" in self.allowed_origins or origin in self.allowed_origins
