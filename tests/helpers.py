"""Test helpers shared by several test modules."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
from unittest.mock import AsyncMock


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sent_messages(websocket: AsyncMock) -> List[Dict[str, Any]]:
    """
    Messages sent to a mocked websocket, in order.

    :param websocket: Mocked websocket
    :type websocket: AsyncMock
    :return: JSON payloads passed to send_json
    :rtype: List[Dict[str, Any]]
    """
    return [call.args[0] for call in websocket.send_json.call_args_list]


def sent_events(websocket: AsyncMock) -> List[str]:
    return [message["event"] for message in sent_messages(websocket)]
