"""Merging of persisted snapshots into one flame graph."""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from memgraph.errors import AggregationError
from memgraph.snapshots import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = Path("memgraph.svg")
DEFAULT_RENDERER = "inferno-flamegraph"


class Renderer(Protocol):
    """Anything that turns folded-stack files into an image."""

    def render(self, paths: Sequence[Path], output: Path) -> None: ...


class FlamegraphRenderer:
    """
    Renders with an external flame graph command.

    The command must accept ``flamegraph.pl`` style options and write SVG to
    stdout; ``inferno-flamegraph`` and ``flamegraph.pl`` both qualify. Stacks
    with identical paths across input files are merged by the command.
    """

    def __init__(
        self,
        command: str = DEFAULT_RENDERER,
        title: str = "Memory Flame Graph",
        count_name: str = "bytes",
    ) -> None:
        self.command = command
        self.title = title
        self.count_name = count_name

    def build_command(self, paths: Sequence[Path]) -> list[str]:
        """Build the argument vector for the renderer."""
        return [
            self.command,
            "--title",
            self.title,
            "--countname",
            self.count_name,
            "--colors",
            "js",
            "--bgcolors",
            "blue",
            *(str(p) for p in paths),
        ]

    def render(self, paths: Sequence[Path], output: Path) -> None:
        """
        Render paths into output.

        The graph is written next to output first and only replaces it once
        the command succeeds, so a failed render keeps any earlier graph.

        Raises:
            AggregationError: The command is missing or failed.
        """
        cmd = self.build_command(paths)
        partial = output.with_name(f".{output.name}.partial")
        try:
            with partial.open("wb") as f:
                result = subprocess.run(cmd, stdout=f, stderr=subprocess.PIPE, check=False)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise AggregationError(f"could not run {self.command}: {e}") from e

        if result.returncode != 0:
            partial.unlink(missing_ok=True)
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise AggregationError(
                f"{self.command} exited with status {result.returncode}: {stderr}"
            )

        try:
            partial.replace(output)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise AggregationError(f"could not write {output}: {e}") from e


def aggregate(
    store: SnapshotStore,
    output: Path = DEFAULT_OUTPUT,
    renderer: Renderer | None = None,
) -> Path | None:
    """
    Render every stored snapshot into one flame graph and remove the snapshots.

    Returns the artifact path, or None when there were no snapshots.

    Raises:
        AggregationError: Rendering or cleanup failed. Snapshots are kept when
            rendering fails.
    """
    paths = store.list_files()
    if not paths:
        logger.info("No snapshots in %s, nothing to render", store.directory)
        return None

    renderer = renderer or FlamegraphRenderer()
    output = Path(output)
    logger.info("Rendering %d snapshot(s) into %s", len(paths), output)
    renderer.render(paths, output)

    store.remove()
    logger.info("Flame graph written to %s", output)
    return output
