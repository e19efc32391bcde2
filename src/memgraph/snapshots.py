"""On-disk storage of folded-stack snapshots."""

import logging
import shutil
import threading
import time
from collections.abc import Iterable
from pathlib import Path

from memgraph.errors import AggregationError, PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_DIR = Path("./.memgraphs")


class SnapshotStore:
    """
    Directory of snapshot files named by capture time in epoch milliseconds.

    Files are only ever created, never rewritten, so a failed write cannot
    damage earlier snapshots. Once sealed the store refuses further writes,
    which lets the directory be read while the receive thread is still alive.
    """

    def __init__(self, directory: Path | str = DEFAULT_SNAPSHOT_DIR) -> None:
        self._directory = Path(directory)
        self._last_stamp = 0
        self._sealed = False
        self._write_lock = threading.Lock()

    @property
    def directory(self) -> Path:
        """Get the snapshot directory."""
        return self._directory

    @property
    def sealed(self) -> bool:
        """Check if the store still accepts snapshots."""
        return self._sealed

    def reset(self) -> None:
        """
        Remove leftovers from earlier runs and recreate the directory.

        Raises:
            PersistenceError: The directory could not be prepared.
        """
        try:
            if self._directory.exists():
                logger.info("Clearing old snapshots in %s", self._directory)
                shutil.rmtree(self._directory)
            self._directory.mkdir(parents=True)
        except OSError as e:
            raise PersistenceError(f"could not prepare {self._directory}: {e}") from e

    def seal(self) -> None:
        """Stop accepting snapshots, waiting for a write in progress."""
        with self._write_lock:
            self._sealed = True

    def _next_stamp(self) -> int:
        # Snapshots in the same millisecond take the next free one
        stamp = max(time.time_ns() // 1_000_000, self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    def write(self, lines: Iterable[str]) -> Path:
        """
        Persist one snapshot as a new file.

        Raises:
            PersistenceError: The store is sealed or the file could not be
                created or written.
        """
        with self._write_lock:
            if self._sealed:
                raise PersistenceError("snapshot store is sealed")

            path = self._directory / str(self._next_stamp())
            try:
                with path.open("x", encoding="utf-8") as f:
                    for line in lines:
                        f.write(line)
                        f.write("\n")
            except FileExistsError as e:
                raise PersistenceError(f"snapshot {path} already exists") from e
            except OSError as e:
                path.unlink(missing_ok=True)
                raise PersistenceError(f"could not write snapshot {path}: {e}") from e

        logger.debug("Wrote snapshot %s", path)
        return path

    def list_files(self) -> list[Path]:
        """List snapshot files in capture order."""
        if not self._directory.is_dir():
            return []
        files = [p for p in self._directory.iterdir() if p.is_file() and p.name.isdigit()]
        return sorted(files, key=lambda p: int(p.name))

    def remove(self) -> None:
        """
        Delete the snapshot directory.

        Raises:
            AggregationError: The directory could not be removed.
        """
        try:
            shutil.rmtree(self._directory)
        except FileNotFoundError:
            return
        except OSError as e:
            raise AggregationError(f"could not remove {self._directory}: {e}") from e
