"""Data models for memgraph."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(slots=True, frozen=True)
class DebuggerTarget:
    """One debuggable process advertised by the discovery endpoint."""

    title: str
    url: str
    websocket_debugger_url: str
    id: str = ""
    type: str = ""  # 'node', 'page', ...
    description: str = ""


@dataclass(slots=True, frozen=True)
class CallFrame:
    """Source location of a sampled allocation site."""

    function_name: str  # Empty for anonymous and native frames
    url: str


@dataclass(slots=True)
class ProfileNode:
    """One node of a sampled allocation call tree."""

    call_frame: CallFrame
    self_size: int  # Bytes
    children: list["ProfileNode"] = field(default_factory=list)


@dataclass(slots=True)
class ProfilePayload:
    """Response carrying a sampling profile."""

    head: ProfileNode


@dataclass(slots=True, frozen=True)
class Acknowledgement:
    """Any other well-formed command response."""

    id: int


class SamplerState(Enum):
    """Lifecycle states of the heap sampler."""

    IDLE = "idle"
    AWAITING_TARGET_RESUME = "awaiting-target-resume"
    SAMPLING = "sampling"
    TERMINATING = "terminating"
