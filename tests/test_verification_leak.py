"""Verification Test: Memory Leak Check.

Sampling runs for as long as the operator lets it, so handling a profile must
not retain anything once its snapshot is on disk. Repeatedly decode, flatten
and persist the same profile and ensure RSS stays flat.
"""

import gc
import json

import psutil

from conftest import node
from memgraph.codec import decode
from memgraph.flatten import flatten
from memgraph.snapshots import SnapshotStore


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    process = psutil.Process()
    return process.memory_info().rss / (1024 * 1024)


def wide_profile(width: int, depth: int) -> bytes:
    """Build a profile response with width branches of depth frames each."""
    branches = []
    for b in range(width):
        child = node(f"leaf{b}", f"file:///src/{b}.js", 128)
        for level in range(depth):
            child = node(f"fn{b}_{level}", f"file:///src/{b}.js", 16, [child])
        branches.append(child)
    head = node("(root)", "", 0, branches)
    return json.dumps({"id": 1, "result": {"profile": {"head": head, "samples": []}}}).encode()


class TestMemoryLeakCheck:
    """Memory leak verification suite tests."""

    def test_snapshot_cycle_memory_stability(self, tmp_path):
        """
        Test that handling many snapshots doesn't grow memory.

        Each cycle runs a ~400 node profile through decode, flatten and the
        snapshot store, as the receive loop does.
        """
        message = wide_profile(width=20, depth=20)
        store = SnapshotStore(tmp_path / ".memgraphs")
        store.reset()

        # Warm up allocator pools and caches
        for _ in range(20):
            store.write(flatten(decode(message).head))
        gc.collect()
        initial_memory = get_current_memory_mb()

        for _ in range(200):
            store.write(flatten(decode(message).head))

        gc.collect()
        final_memory = get_current_memory_mb()
        memory_delta = final_memory - initial_memory

        print(f"\nMemory: {initial_memory:.2f}MB -> {final_memory:.2f}MB (delta: {memory_delta:.2f}MB)")

        assert len(store.list_files()) == 220
        assert memory_delta < 20.0, f"Memory grew by {memory_delta:.2f}MB over 200 snapshots"
