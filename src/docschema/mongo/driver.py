"""pymongo implementation of the driver contract."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..base.backends import Connection, Driver
from ..config import MongoConfig
from ..errors import ConnectionError, QueryError, WriteError

logger = logging.getLogger(__name__)


class MongoConnection(Connection):
    """One client bound to one database."""

    def __init__(self, client: MongoClient[dict[str, Any]], database: Database[dict[str, Any]]) -> None:
        self.client = client
        self.database = database

    def insert_document(self, collection: str, document: Mapping[str, Any]) -> Any:
        try:
            result = self.database[collection].insert_one(dict(document))
        except DuplicateKeyError as exc:
            raise WriteError(f"Duplicate key in {collection}: {exc}") from exc
        except PyMongoError as exc:
            raise WriteError(f"Insert into {collection} failed: {exc}") from exc
        return result.inserted_id

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
        try:
            cursor = self.database[collection].find(dict(filter), projection)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit is not None:
                cursor = cursor.limit(limit)
        except PyMongoError as exc:
            raise QueryError(f"Query on {collection} failed: {exc}") from exc
        return self._iterate(collection, cursor)

    def _iterate(self, collection: str, cursor: Any) -> Iterator[dict[str, Any]]:
        # The server is only contacted once the cursor is advanced.
        try:
            yield from cursor
        except PyMongoError as exc:
            raise QueryError(f"Query on {collection} failed: {exc}") from exc
        finally:
            cursor.close()

    def close(self) -> None:
        try:
            self.client.close()
        except PyMongoError as exc:
            raise ConnectionError(f"Closing connection failed: {exc}") from exc


class MongoDriver(Driver):
    """Opens MongoConnections from a MongoConfig."""

    def __init__(self, config: MongoConfig | None = None) -> None:
        self.config = config or MongoConfig()

    def connect(self, database: str) -> MongoConnection:
        client: MongoClient[dict[str, Any]] | None = None
        try:
            # Invalid URIs and options are rejected while the client is built.
            client = MongoClient(
                self.config.connection_string,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
                appname=self.config.app_name,
            )
            client.admin.command("ping")
        except PyMongoError as exc:
            if client is not None:
                client.close()
            raise ConnectionError(f"Cannot connect to MongoDB: {exc}") from exc
        logger.debug("Connected to MongoDB database %s", database)
        return MongoConnection(client, client[database])
