"""Shared fixtures for chess room tests."""

import pytest

from chess_rooms.broadcast import BroadcastRouter
from chess_rooms.connection_lifecycle import ConnectionLifecycleHandler
from chess_rooms.connection_manager import ConnectionManager
from chess_rooms.lifecycle import RoomLifecycleManager
from chess_rooms.registry import SessionRegistry
from chess_rooms.turns import TurnCoordinator
from tests.helpers import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def connections() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture()
def router(connections: ConnectionManager) -> BroadcastRouter:
    return BroadcastRouter(connections)


@pytest.fixture()
def lifecycle(registry: SessionRegistry, router: BroadcastRouter, clock: FakeClock) -> RoomLifecycleManager:
    return RoomLifecycleManager(registry, router, clock=clock)


@pytest.fixture()
def coordinator(registry: SessionRegistry, router: BroadcastRouter, clock: FakeClock) -> TurnCoordinator:
    return TurnCoordinator(registry, router, clock=clock)


@pytest.fixture()
def disconnects(
    registry: SessionRegistry, lifecycle: RoomLifecycleManager, router: BroadcastRouter, clock: FakeClock
) -> ConnectionLifecycleHandler:
    return ConnectionLifecycleHandler(registry, lifecycle, router, clock=clock)
