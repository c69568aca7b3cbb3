"""Driver contract consumed by sessions."""

from .base import Connection, Driver

__all__ = [
    "Connection",
    "Driver",
]
