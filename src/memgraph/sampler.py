"""Heap sampling engine for memgraph."""

import logging
import threading

from memgraph.codec import (
    GET_SAMPLING_PROFILE,
    RUN_IF_WAITING_FOR_DEBUGGER,
    START_SAMPLING,
    decode,
)
from memgraph.errors import ConnectError, DecodeError, PersistenceError
from memgraph.flatten import flatten
from memgraph.models import Acknowledgement, SamplerState
from memgraph.session import DebuggerSession
from memgraph.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

# Commands reuse fixed ids; responses are consumed in arrival order
SETUP_COMMAND_ID = 0
POLL_COMMAND_ID = 1


class HeapSampler:
    """
    Heap sampler that polls a debugger for allocation profiles.

    Commands are sent from the thread calling run(). Responses are handled by a
    daemon thread that flattens every profile and writes it to the snapshot
    store. Malformed messages and failed writes are logged and skipped.
    """

    def __init__(
        self,
        session: DebuggerSession,
        store: SnapshotStore,
        interval: float = 1.0,
        initial_delay: float = 0.0,
    ) -> None:
        """
        Initialize the HeapSampler.

        Args:
            session: Open channel to the profiled program.
            store: Where flattened snapshots are written.
            interval: Seconds between profile requests. Default 1.0s.
            initial_delay: Seconds to wait before sampling starts.
        """
        self._session = session
        self._store = store
        self.interval = interval
        self._initial_delay = initial_delay
        self._state = SamplerState.IDLE
        self._thread: threading.Thread | None = None
        self._snapshots_written = 0

    @property
    def interval(self) -> float:
        """Get the current polling interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the polling interval."""
        self._interval = max(0.01, value)  # Minimum 10 milliseconds

    @property
    def state(self) -> SamplerState:
        """Get the current lifecycle state."""
        return self._state

    @property
    def snapshots_written(self) -> int:
        """Number of snapshot files written so far."""
        return self._snapshots_written

    @property
    def is_receiving(self) -> bool:
        """Check if the receive thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start_receiving(self) -> None:
        """Start the receive thread."""
        if self.is_receiving:
            return

        self._thread = threading.Thread(
            target=self._receive_loop,
            daemon=True,
            name="ResponseReceiver",
        )
        self._thread.start()

    def run(self, shutdown: threading.Event) -> None:
        """
        Sample until shutdown is set.

        Raises:
            ConnectError: The connection dropped while sending a command
                or the receive loop ended.
        """
        self.start_receiving()
        sender = self._session.sender

        self._state = SamplerState.AWAITING_TARGET_RESUME
        logger.info("Ensuring debugger is running")
        sender.send(SETUP_COMMAND_ID, RUN_IF_WAITING_FOR_DEBUGGER)

        if self._initial_delay > 0:
            logger.info("Sleeping for %.0fms", self._initial_delay * 1000)
        if not shutdown.wait(timeout=self._initial_delay):
            sender.send(SETUP_COMMAND_ID, START_SAMPLING)
            self._state = SamplerState.SAMPLING
            logger.info("Sampling every %.0fms", self._interval * 1000)

            while not shutdown.is_set():
                if not self.is_receiving:
                    raise ConnectError("debugger stopped delivering responses")
                logger.debug("Requesting sampling profile")
                sender.send(POLL_COMMAND_ID, GET_SAMPLING_PROFILE)
                # Wait for interval seconds or until shutdown is requested
                shutdown.wait(timeout=self._interval)

        self._state = SamplerState.TERMINATING
        logger.info("Stopped sampling after %d snapshot(s)", self._snapshots_written)

    def _receive_loop(self) -> None:
        """Main receive loop running in the background thread."""
        logger.info("Waiting for samples")
        for message in self._session.receiver:
            self.handle_message(message)

    def handle_message(self, message: bytes) -> None:
        """Decode one message and persist it if it carries a profile."""
        try:
            response = decode(message)
        except DecodeError as e:
            logger.warning("Skipping undecodable message: %s", e)
            return

        if isinstance(response, Acknowledgement):
            logger.debug("Command %d acknowledged", response.id)
            return

        lines = flatten(response.head)
        try:
            path = self._store.write(lines)
        except PersistenceError as e:
            logger.error("Dropping snapshot: %s", e)
            return

        self._snapshots_written += 1
        logger.debug("Snapshot %s: %d stack(s)", path.name, len(lines))
