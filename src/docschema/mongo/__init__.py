"""MongoDB backend built on pymongo."""

from __future__ import annotations

from ..config import MongoConfig
from ..session import Session
from .driver import MongoConnection, MongoDriver


def session(database: str, config: MongoConfig | None = None) -> Session:
    """Create an unopened Session on ``database`` of a MongoDB server."""
    return Session(database, MongoDriver(config))


__all__ = [
    "MongoConfig",
    "MongoConnection",
    "MongoDriver",
    "session",
]
