"""Exceptions raised by the smoke-test engine."""


class SmokeError(Exception):
    """Base class for clustersmoke errors."""


class TunnelError(SmokeError):
    """Raised when a port-forward tunnel cannot be brought up."""


class TunnelSpawnFailure(TunnelError):
    """Raised when the forwarding process could not be started."""


class TunnelTimeout(TunnelError):
    """Raised when the local port never became bound within the attempt budget."""


class SignalGuardError(SmokeError):
    """Raised when signal handlers cannot be installed for a run."""
