from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any


class Connection(ABC):
    """An open handle to one database of a document store."""

    @abstractmethod
    def insert_document(self, collection: str, document: Mapping[str, Any]) -> Any:
        """Store a document and return its identifier."""
        pass

    @abstractmethod
    def query(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        projection: Mapping[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Return an iterator over the raw documents matching a native filter."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection."""
        pass


class Driver(ABC):
    """Abstract base class for document store drivers."""

    @abstractmethod
    def connect(self, database: str) -> Connection:
        """Open a connection to the named database."""
        pass
