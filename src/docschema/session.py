"""Database sessions: scoped access to one database through a driver."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING, Any, Self

from .base import codec
from .base.manager import CollectionManager
from .base.query import Query
from .errors import ConnectionError, DeclarationError, QueryError

if TYPE_CHECKING:
    from .base.backends import Connection, Driver
    from .base.fields import CompoundExpression, Node, QueryExpression
    from .base.schema import Schema

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class Session:
    """
    Scoped handle to a named database.

    A session moves from UNOPENED to OPEN to CLOSED and never back.
    ``insert`` and ``filter`` are only valid while it is open; used as a
    context manager it is opened on entry and always closed on exit.

    Example:
        >>> with Session("test", MongoDriver()) as db:
        ...     db.insert(albums, album)
        ...     for product in db.filter(products, products.sku == "00e8da9b"):
        ...         print(product)

    Sessions hold no locks; share one between threads only with external
    synchronization.
    """

    def __init__(self, database: str, driver: Driver) -> None:
        self.database = database
        self.driver = driver
        self._connection: Connection | None = None
        self._state = SessionState.UNOPENED

    @property
    def state(self) -> SessionState:
        return self._state

    def open(self) -> Self:
        if self._state is not SessionState.UNOPENED:
            raise ConnectionError(f"Session on '{self.database}' is {self._state.value}")
        self._connection = self.driver.connect(self.database)
        self._state = SessionState.OPEN
        logger.info("Session opened on database %s", self.database)
        return self

    def close(self) -> None:
        """Release the connection. Closing twice is a no-op."""
        if self._state is SessionState.CLOSED:
            return
        connection, self._connection = self._connection, None
        self._state = SessionState.CLOSED
        if connection is not None:
            connection.close()
            logger.info("Session closed on database %s", self.database)

    def insert(self, schema: Schema, entity: Any) -> Any:
        """Encode ``entity``, store it and return its identifier."""
        connection = self._require_open()
        self._check_schema(schema)
        document = codec.encode_entity(schema, entity)
        inserted_id = connection.insert_document(schema.collection, document)
        logger.debug("Inserted %s into %s", inserted_id, schema.collection)
        return schema.primary_key.decode(inserted_id)

    def filter(self, schema: Schema, *expressions: QueryExpression | CompoundExpression) -> Query[Any]:
        """Return a lazy query for entities of ``schema`` matching all ``expressions``."""
        self._require_open()
        self._check_schema(schema)
        return Query(self, schema, expressions)

    def select(
        self,
        schema: Schema,
        *nodes: Node,
        where: QueryExpression | CompoundExpression | None = None,
    ) -> Query[tuple[Any, ...]]:
        """Return a lazy query yielding tuples of the values of ``nodes``."""
        self._require_open()
        self._check_schema(schema)
        if not nodes:
            raise QueryError("select() needs at least one field")
        return Query(self, schema, [where] if where is not None else [], projection=nodes)

    def collection(self, schema: Schema) -> CollectionManager[Any]:
        self._check_schema(schema)
        return CollectionManager(self, schema)

    __getitem__ = collection

    def _execute(self, query: Query[Any]) -> Iterator[dict[str, Any]]:
        connection = self._require_open()
        native_filter = query.to_filter()
        logger.debug("Querying %s with %s", query.schema.collection, native_filter)
        return connection.query(
            query.schema.collection,
            native_filter,
            projection=query.to_projection(),
            sort=query.sort_fields or None,
            skip=query.skip_value,
            limit=query.limit_value,
        )

    def _require_open(self) -> Connection:
        if self._state is not SessionState.OPEN or self._connection is None:
            raise ConnectionError(f"Session on '{self.database}' is {self._state.value}")
        return self._connection

    def _check_schema(self, schema: Schema) -> None:
        if not schema.frozen:
            raise DeclarationError(f"{schema!r} is still open for declaration")

    def __enter__(self) -> Self:
        return self.open()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.close()
            return
        # Keep the body's exception; a failing close is only logged.
        try:
            self.close()
        except ConnectionError:
            logger.exception("Closing session on database %s failed", self.database)

    def __repr__(self) -> str:
        return f"Session({self.database!r}, state={self._state.value})"
