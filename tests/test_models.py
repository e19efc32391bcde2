"""Tests for memgraph data models."""

from memgraph.models import (
    Acknowledgement,
    CallFrame,
    DebuggerTarget,
    ProfileNode,
    ProfilePayload,
    SamplerState,
)


def test_debugger_target_creation():
    """Test DebuggerTarget dataclass creation with optional fields defaulted."""
    target = DebuggerTarget(
        title="server.js",
        url="file:///srv/server.js",
        websocket_debugger_url="ws://127.0.0.1:9229/abc",
    )

    assert target.title == "server.js"
    assert target.url == "file:///srv/server.js"
    assert target.websocket_debugger_url == "ws://127.0.0.1:9229/abc"
    assert target.id == ""
    assert target.type == ""
    assert target.description == ""


def test_debugger_target_is_frozen():
    """Test that DebuggerTarget is immutable (frozen)."""
    target = DebuggerTarget(title="a", url="b", websocket_debugger_url="ws://c")

    try:
        target.title = "other"
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_call_frame_is_frozen():
    """Test that CallFrame is immutable (frozen)."""
    frame = CallFrame(function_name="foo", url="f.js")

    try:
        frame.url = "g.js"
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass


def test_profile_node_children_default_empty():
    """Test ProfileNode children default to a fresh empty list."""
    first = ProfileNode(CallFrame("a", ""), 1)
    second = ProfileNode(CallFrame("b", ""), 2)

    first.children.append(second)

    assert first.children == [second]
    assert second.children == []


def test_models_use_slots():
    """Test that models use __slots__ for memory efficiency."""
    frame = CallFrame(function_name="", url="")
    node = ProfileNode(frame, 0)

    # Slots-based dataclasses don't have __dict__
    assert not hasattr(frame, "__dict__")
    assert not hasattr(node, "__dict__")
    assert not hasattr(ProfilePayload(head=node), "__dict__")
    assert not hasattr(Acknowledgement(id=0), "__dict__")


def test_sampler_state_values():
    """Test SamplerState enum has the lifecycle states in order."""
    assert [state.value for state in SamplerState] == [
        "idle",
        "awaiting-target-resume",
        "sampling",
        "terminating",
    ]
