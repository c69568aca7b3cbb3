from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..errors import QueryError
from .fields import CompoundExpression, Node, QueryExpression

if TYPE_CHECKING:
    from ..session import Session
    from .query import Query
    from .schema import Schema

T = TypeVar("T")


class CollectionManager(Generic[T]):
    """A schema bound to an open session."""

    def __init__(self, session: Session, schema: Schema) -> None:
        self.session = session
        self.schema = schema

    def insert(self, entity: T) -> Any:
        """Insert an entity and return its identifier."""
        return self.session.insert(self.schema, entity)

    def filter(
        self,
        *expressions: QueryExpression | CompoundExpression,
        **equals: Any,
    ) -> Query[T]:
        """Create a query with the given expressions and attribute equalities."""
        return self.session.filter(
            self.schema, *expressions, *self._create_field_expressions(**equals)
        )

    def all(self) -> Query[T]:
        """Return a query for all documents."""
        return self.session.filter(self.schema)

    def select(
        self,
        *nodes: Node,
        where: QueryExpression | CompoundExpression | None = None,
    ) -> Query[tuple[Any, ...]]:
        return self.session.select(self.schema, *nodes, where=where)

    def _create_field_expressions(self, **kwargs: Any) -> list[QueryExpression]:
        """Helper to create equality expressions from top-level attribute names."""
        expressions = []
        for attribute, value in kwargs.items():
            try:
                node = self.schema.lookup(attribute)
            except KeyError:
                raise QueryError(f"Unknown field: {attribute}") from None
            expressions.append(node.eq(value))
        return expressions
