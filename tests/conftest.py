import itertools

import pytest

from registry import RoomRegistry


class FakeConnection:
    """Records everything sent to it; can be flipped to not-writable."""

    def __init__(self, open=True):
        self.open = open
        self.sent = []

    def is_open(self):
        return self.open

    def send(self, message):
        if not self.open:
            return False
        self.sent.append(message)
        return True

    def of_type(self, message_type):
        return [m for m in self.sent if m.get("type") == message_type]


@pytest.fixture
def sequential_ids():
    counter = itertools.count(1)
    return lambda name: f"{name}_{next(counter):05d}"


@pytest.fixture
def registry(sequential_ids):
    return RoomRegistry(id_generator=sequential_ids)


@pytest.fixture
def make_connection():
    return FakeConnection
