"""SQLAlchemy ORM models."""

from serverdeck.models.server import Server
from serverdeck.models.server_history import ServerHistory

__all__ = [
    "Server",
    "ServerHistory",
]
