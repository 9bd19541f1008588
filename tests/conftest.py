import random
from typing import Any, List, Tuple

import pytest

from impostor.registry import RoomRegistry
from impostor.words import WordBank


class FakeConnection:
    """Records everything the server sends to one client."""

    def __init__(self, name: str = "conn", fail: bool = False):
        self.connection_id = name
        self.fail = fail
        self.sent: List[Tuple[str, Any]] = []

    async def emit(self, event: str, data: Any = None) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append((event, data))

    async def ack(self, ack_id: Any, data: Any) -> None:
        self.sent.append(("ack", data))

    def events(self, name: str) -> List[Any]:
        return [data for event, data in self.sent if event == name]

    def last(self, name: str) -> Any:
        found = self.events(name)
        assert found, f"{self.connection_id} never received {name}"
        return found[-1]

    def __repr__(self) -> str:
        return f"<FakeConnection {self.connection_id}>"


WORDS = {
    "General": [f"general-{i}" for i in range(10)],
    "Animals": ["Cat", "Dog", "Owl", "Fox", "Bat", "Yak"],
    "Tiny": ["Only"],
    "Empty": [],
}


@pytest.fixture
def bank() -> WordBank:
    return WordBank(WORDS)


@pytest.fixture
def registry(bank) -> RoomRegistry:
    return RoomRegistry(bank, rng=random.Random(1234), grace_seconds=60)


@pytest.fixture
def make_conn():
    def factory(name: str = "conn", fail: bool = False) -> FakeConnection:
        return FakeConnection(name, fail=fail)

    return factory
