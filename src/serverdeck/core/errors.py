"""
Error taxonomy for the persistence boundary.

Gateways raise these; the inventory store catches them, logs them and keeps
its in-memory state untouched.
"""


class GatewayError(Exception):
    """Base class for persistence gateway failures."""


class ValidationError(GatewayError):
    """Raised when a record draft or patch violates field constraints."""


class NotFoundError(GatewayError):
    """Raised when an operation references an id the backend does not know."""


class TransportError(GatewayError):
    """Raised when the backend is unreachable, times out or answers garbage."""
