"""Debugger discovery and the duplex protocol channel."""

import logging
from collections.abc import Iterator

import httpx
import websocket

from memgraph.codec import encode_command
from memgraph.errors import ConnectError, DiscoveryError, NoTargetsFound
from memgraph.models import DebuggerTarget

logger = logging.getLogger(__name__)

DEFAULT_DISCOVERY_URL = "http://localhost:9229/json"


def _parse_target(entry: object) -> DebuggerTarget:
    if not isinstance(entry, dict) or not isinstance(entry.get("webSocketDebuggerUrl"), str):
        raise DiscoveryError("discovery entry has no webSocketDebuggerUrl")

    return DebuggerTarget(
        title=str(entry.get("title", "")),
        url=str(entry.get("url", "")),
        websocket_debugger_url=entry["webSocketDebuggerUrl"],
        id=str(entry.get("id", "")),
        type=str(entry.get("type", "")),
        description=str(entry.get("description", "")),
    )


def discover(endpoint: str = DEFAULT_DISCOVERY_URL, timeout: float = 10.0) -> DebuggerTarget:
    """
    Query the discovery endpoint and return the first advertised target.

    Raises:
        DiscoveryError: The endpoint was unreachable or answered garbage.
        NoTargetsFound: The endpoint answered with an empty list.
    """
    try:
        response = httpx.get(endpoint, timeout=timeout)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPError as e:
        raise DiscoveryError(f"could not query {endpoint}: {e}") from e
    except ValueError as e:
        raise DiscoveryError(f"{endpoint} did not return JSON: {e}") from e

    if not isinstance(body, list):
        raise DiscoveryError(f"{endpoint} did not return a list of targets")
    if not body:
        raise NoTargetsFound(f"no debuggers found at {endpoint}")

    targets = [_parse_target(entry) for entry in body]
    logger.debug("Discovered %d target(s)", len(targets))
    return targets[0]


class CommandSender:
    """Send half of the debugger channel."""

    def __init__(self, ws: websocket.WebSocket) -> None:
        self._ws = ws

    def send(self, command_id: int, method: str) -> None:
        """Send a parameterless command. Safe to call from any thread."""
        logger.debug("Sending %s (id %d)", method, command_id)
        try:
            self._ws.send(encode_command(command_id, method))
        except (websocket.WebSocketException, OSError) as e:
            raise ConnectError(f"lost connection while sending {method}: {e}") from e


class ResponseReceiver:
    """
    Receive half of the debugger channel.

    Iterating yields raw messages in arrival order until the peer closes the
    connection.
    """

    def __init__(self, ws: websocket.WebSocket) -> None:
        self._ws = ws

    def __iter__(self) -> Iterator[bytes]:
        while True:
            try:
                message = self._ws.recv()
            except websocket.WebSocketConnectionClosedException:
                logger.info("Debugger closed the connection")
                return
            except (websocket.WebSocketPayloadException, websocket.WebSocketProtocolException) as e:
                # Bad frame; the connection itself is still usable
                logger.warning("Skipping unreadable frame: %s", e)
                continue
            except (websocket.WebSocketException, OSError) as e:
                logger.warning("Connection to debugger failed: %s", e)
                return

            if not message:
                # Control frames surface as empty messages
                continue
            if isinstance(message, str):
                message = message.encode("utf-8")
            yield message


class DebuggerSession:
    """An open protocol channel split into independent send and receive halves."""

    def __init__(self, target: DebuggerTarget, ws: websocket.WebSocket) -> None:
        self.target = target
        self._ws = ws
        self.sender = CommandSender(ws)
        self.receiver = ResponseReceiver(ws)

    def close(self) -> None:
        """Close the underlying socket."""
        try:
            self._ws.close()
        except (websocket.WebSocketException, OSError) as e:
            logger.debug("Error while closing connection: %s", e)

    def __enter__(self) -> "DebuggerSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect(target: DebuggerTarget, timeout: float = 10.0) -> DebuggerSession:
    """
    Open the WebSocket channel to a target.

    Raises:
        ConnectError: The connection could not be established.
    """
    logger.info("Connecting to %s", target.websocket_debugger_url)
    try:
        ws = websocket.create_connection(
            target.websocket_debugger_url,
            timeout=timeout,
            suppress_origin=True,
        )
    except (websocket.WebSocketException, OSError) as e:
        raise ConnectError(f"could not connect to {target.websocket_debugger_url}: {e}") from e

    # Responses may take arbitrarily long; block on reads indefinitely
    ws.settimeout(None)
    logger.info("Connected")
    return DebuggerSession(target, ws)
