"""Resolved runtime configuration."""

import argparse
from dataclasses import dataclass
from pathlib import Path

from memgraph.aggregator import DEFAULT_OUTPUT, DEFAULT_RENDERER
from memgraph.session import DEFAULT_DISCOVERY_URL
from memgraph.snapshots import DEFAULT_SNAPSHOT_DIR


@dataclass(slots=True, frozen=True)
class MemgraphConfig:
    """Settings for one sampling run."""

    discovery_url: str = DEFAULT_DISCOVERY_URL
    interval: float = 1.0  # Seconds
    initial_delay: float = 0.0  # Seconds
    snapshot_dir: Path = DEFAULT_SNAPSHOT_DIR
    output: Path = DEFAULT_OUTPUT
    renderer: str = DEFAULT_RENDERER
    title: str = "Memory Flame Graph"


def config_from_args(args: argparse.Namespace) -> MemgraphConfig:
    """Convert parsed command line arguments (milliseconds) into a config."""
    return MemgraphConfig(
        discovery_url=args.debugger_url,
        interval=args.frequency / 1000,
        initial_delay=args.delay / 1000,
        snapshot_dir=Path(args.temp_dir),
        output=Path(args.output),
        renderer=args.renderer,
        title=args.title,
    )
