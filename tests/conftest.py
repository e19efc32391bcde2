"""Shared fixtures and fakes for memgraph tests."""

import json
import time
from queue import Queue

import pytest
import websocket

from memgraph.models import DebuggerTarget

_CLOSED = object()


class FakeWebSocket:
    """In-memory stand-in for websocket.WebSocket."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: Queue = Queue()

    def push(self, message) -> None:
        self._inbox.put(message)

    def hang_up(self) -> None:
        self._inbox.put(_CLOSED)

    def send(self, payload: str) -> None:
        if self.closed:
            raise websocket.WebSocketConnectionClosedException("socket is already closed.")
        self.sent.append(payload)

    def recv(self):
        message = self._inbox.get()
        if message is _CLOSED:
            raise websocket.WebSocketConnectionClosedException("Connection to remote host was lost.")
        return message

    def settimeout(self, timeout) -> None:
        self.timeout = timeout

    def close(self) -> None:
        self.closed = True
        self.hang_up()

    def sent_methods(self) -> list[str]:
        return [json.loads(payload)["method"] for payload in self.sent]


def wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def node(name: str, url: str = "", size: int = 0, children: list | None = None) -> dict:
    """Build a profile node in its wire form."""
    return {
        "callFrame": {
            "functionName": name,
            "scriptId": "0",
            "url": url,
            "lineNumber": 0,
            "columnNumber": 0,
        },
        "selfSize": size,
        "id": 1,
        "children": children or [],
    }


def profile_message(head: dict, message_id: int = 1) -> str:
    """Build a getSamplingProfile response."""
    return json.dumps({"id": message_id, "result": {"profile": {"head": head, "samples": []}}})


@pytest.fixture
def fake_ws():
    ws = FakeWebSocket()
    yield ws
    # Release any receive thread still blocked on the socket
    ws.hang_up()


@pytest.fixture
def target() -> DebuggerTarget:
    return DebuggerTarget(
        title="app.js",
        url="file:///srv/app.js",
        websocket_debugger_url="ws://127.0.0.1:9229/0f2c936f-b1cd-4ac9-aab3-f63b0f33d55e",
        id="0f2c936f-b1cd-4ac9-aab3-f63b0f33d55e",
        type="node",
    )
