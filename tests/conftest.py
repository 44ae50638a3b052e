import asyncio
import threading
import time
from typing import Any, Dict, List

import pytest

from clipreceiver.clipboard.base import ClipboardSink
from clipreceiver.config import ReceiverSettings


class FakeSink(ClipboardSink):

    def __init__(self, results=None):
        self.writes: List[bytes] = []
        self.results = list(results or [])
        self._lock = threading.Lock()

    @classmethod
    def is_available(cls) -> bool:
        return True

    def _set_clipboard(self, payload: bytes, metadata: Dict[str, Any]) -> bool:
        with self._lock:
            self.writes.append(payload)
            if self.results:
                return self.results.pop(0)
        return True


class FakeLiveness:

    def __init__(self, alive=(), error=None):
        self.alive = set(alive)
        self.error = error
        self.checked: List[int] = []

    def is_alive(self, pid: int) -> bool:
        self.checked.append(pid)
        if self.error is not None:
            raise self.error
        return pid in self.alive


async def wait_for(predicate, timeout: float = 3.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def settings(tmp_path):
    return ReceiverSettings(
        address="127.0.0.1",
        port=0,
        pid_file=tmp_path / "receiver.pid",
        port_file=tmp_path / "receiver.port",
    )
