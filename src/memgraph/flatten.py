"""Conversion of allocation call trees into folded-stack lines."""

from memgraph.models import CallFrame, ProfileNode

# Paths are shared between siblings as (token, parent) links and only joined
# into a string when a line is emitted.
_Path = tuple[str, "_Path"] | None


def format_frame(frame: CallFrame) -> str:
    """Format a call frame as a single folded-stack token."""
    return f"{frame.function_name} {frame.url}"


def _join_path(path: _Path) -> str:
    tokens: list[str] = []
    while path is not None:
        token, path = path
        tokens.append(token)
    tokens.append("")  # synthetic root
    tokens.reverse()
    return ";".join(tokens)


def flatten(root: ProfileNode) -> list[str]:
    """
    Flatten a call tree into folded-stack lines.

    Every node extends its parent's path with ``"functionName url"``. A line
    ``"<path> <selfSize>"`` is emitted for each node with a function name;
    nodes without one still contribute their segment to their descendants'
    paths. Lines come out in pre-order, children in source order.

    The traversal keeps its own work list, so tree depth is limited only by
    available memory.
    """
    lines: list[str] = []
    # Children are pushed reversed so the first child is popped first.
    stack: list[tuple[ProfileNode, _Path]] = [(root, None)]

    while stack:
        node, parent = stack.pop()
        path: _Path = (format_frame(node.call_frame), parent)

        if node.call_frame.function_name:
            lines.append(f"{_join_path(path)} {node.self_size}")

        for child in reversed(node.children):
            stack.append((child, path))

    return lines
