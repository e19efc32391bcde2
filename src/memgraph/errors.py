"""Exceptions raised by memgraph."""


class MemgraphError(Exception):
    """Base class for all memgraph errors."""


class DiscoveryError(MemgraphError):
    """The discovery endpoint could not be queried or its answer parsed."""


class NoTargetsFound(MemgraphError):
    """The discovery endpoint answered with no debuggable targets."""


class ConnectError(MemgraphError):
    """The WebSocket channel to the target could not be opened or was lost."""


class DecodeError(MemgraphError):
    """A protocol message was malformed or had an unexpected shape."""


class PersistenceError(MemgraphError):
    """A snapshot file could not be written."""


class AggregationError(MemgraphError):
    """Rendering the flame graph or cleaning up snapshots failed."""
