"""memgraph - command line application."""

import argparse
import logging
import os
import signal
import sys
import threading

from memgraph.aggregator import (
    DEFAULT_OUTPUT,
    DEFAULT_RENDERER,
    FlamegraphRenderer,
    Renderer,
    aggregate,
)
from memgraph.config import MemgraphConfig, config_from_args
from memgraph.errors import (
    AggregationError,
    ConnectError,
    DiscoveryError,
    NoTargetsFound,
    PersistenceError,
)
from memgraph.sampler import HeapSampler
from memgraph.session import DEFAULT_DISCOVERY_URL, connect, discover
from memgraph.snapshots import DEFAULT_SNAPSHOT_DIR, SnapshotStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="memgraph",
        description="Sample the heap of a program under the DevTools protocol "
        "and render the samples as one flame graph on Ctrl-C",
    )
    parser.add_argument(
        "--debugger-url",
        default=DEFAULT_DISCOVERY_URL,
        help="JSON endpoint of the debugger (default: %(default)s)",
    )
    parser.add_argument(
        "-f", "--frequency",
        type=_positive_int,
        default=1000,
        help="Frequency to sample heap, in ms (default: %(default)s)",
    )
    parser.add_argument(
        "-d", "--delay",
        type=_non_negative_int,
        default=0,
        help="Initial delay before sampling, in ms (default: %(default)s)",
    )
    parser.add_argument(
        "-t", "--temp-dir",
        default=str(DEFAULT_SNAPSHOT_DIR),
        help="Directory to store snapshots in (default: %(default)s)",
    )
    parser.add_argument(
        "-o", "--output",
        default=str(DEFAULT_OUTPUT),
        help="Flame graph output path (default: %(default)s)",
    )
    parser.add_argument(
        "--renderer",
        default=DEFAULT_RENDERER,
        help="Flame graph command (default: %(default)s)",
    )
    parser.add_argument("--title", default="Memory Flame Graph", help="Flame graph title")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    return parser


def configure_logging(level: str) -> None:
    """Send log records to stderr at the given level."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level.upper())

    # Silence per-request httpx logs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def install_signal_handlers(shutdown: threading.Event) -> None:
    """
    Set shutdown on SIGINT/SIGTERM; a second signal interrupts immediately.

    The handler runs on the main thread, which may hold the event's internal
    lock inside shutdown.wait(), so the event is set from a helper thread.
    """
    received = False

    def request_shutdown(name: str) -> None:
        logger.info("Received %s, finishing up", name)
        shutdown.set()

    def handle(signum: int, frame) -> None:
        nonlocal received
        if received:
            raise KeyboardInterrupt
        received = True
        threading.Thread(
            target=request_shutdown,
            args=(signal.Signals(signum).name,),
            name="ShutdownRequest",
            daemon=True,
        ).start()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def run(
    config: MemgraphConfig,
    shutdown: threading.Event,
    renderer: Renderer | None = None,
) -> int:
    """
    Sample until shutdown is set, then render the flame graph.

    Returns the process exit status.
    """
    try:
        target = discover(config.discovery_url)
    except NoTargetsFound:
        logger.error("No debuggers could be found")
        return 0
    except DiscoveryError as e:
        logger.error("%s", e)
        return 1

    try:
        session = connect(target)
    except ConnectError as e:
        logger.error("%s", e)
        return 1

    store = SnapshotStore(config.snapshot_dir)
    with session:
        try:
            store.reset()
        except PersistenceError as e:
            logger.error("%s", e)
            return 1

        sampler = HeapSampler(session, store, config.interval, config.initial_delay)
        try:
            sampler.run(shutdown)
        except ConnectError as e:
            logger.error("%s; snapshots kept in %s", e, store.directory)
            return 1

        store.seal()
        renderer = renderer or FlamegraphRenderer(config.renderer, title=config.title)
        try:
            aggregate(store, config.output, renderer)
        except AggregationError as e:
            logger.error("Could not produce flame graph: %s", e)
            return 1

    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point for the memgraph application."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    shutdown = threading.Event()
    install_signal_handlers(shutdown)
    sys.exit(run(config_from_args(args), shutdown))


if __name__ == "__main__":
    main()
