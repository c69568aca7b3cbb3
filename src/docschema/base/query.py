from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    Self,
    TypeVar,
)

from ..errors import ForeignFieldError, QueryError
from . import codec
from .fields import CompoundExpression, Node, QueryExpression

if TYPE_CHECKING:
    from ..session import Session
    from .schema import Schema

T = TypeVar("T")

Expression = QueryExpression | CompoundExpression


class Query(Generic[T]):
    """Lazy sequence of results for one schema.

    Nothing is sent to the store until the first ``next()``. The results
    can be consumed once; iterating again after exhaustion yields nothing.
    Refinements (filter, sort, skip, limit) are only allowed before that.
    """

    def __init__(
        self,
        session: Session,
        schema: Schema,
        expressions: Sequence[Expression],
        projection: Sequence[Node] | None = None,
    ) -> None:
        self.session = session
        self.schema = schema
        self.expressions: list[Expression] = []
        self.projection = list(projection) if projection is not None else None
        self._limit_value: int | None = None
        self._skip_value: int = 0
        self._sort_fields: list[tuple[str, int]] = []
        self._results: Iterator[dict[str, Any]] | None = None

        if self.projection is not None:
            self._check_owned(self.projection)
        self.filter(*expressions)

    @property
    def started(self) -> bool:
        return self._results is not None

    def filter(self, *expressions: Expression) -> Self:
        """Add additional filter expressions."""
        self._check_pending()
        for expression in expressions:
            if not isinstance(expression, QueryExpression | CompoundExpression):
                raise QueryError(f"Not a filter expression: {expression!r}")
            self._check_owned(expression.nodes())
        self.expressions.extend(expressions)
        return self

    def limit(self, n: int) -> Self:
        """Limit the number of results."""
        self._check_pending()
        if n < 0:
            raise QueryError(f"Limit must not be negative, got {n}")
        self._limit_value = n
        return self

    def skip(self, n: int) -> Self:
        """Skip the first n results."""
        self._check_pending()
        if n < 0:
            raise QueryError(f"Skip must not be negative, got {n}")
        self._skip_value = n
        return self

    def sort(self, *fields: Node | str | tuple[Node | str, int]) -> Self:
        """Sort results by field(s); a leading '-' on a path sorts descending."""
        self._check_pending()
        self._sort_fields.extend(self._parse_sort_fields(*fields))
        return self

    def to_filter(self) -> dict[str, Any]:
        rendered = [expression.to_filter() for expression in self.expressions]
        if not rendered:
            return {}
        if len(rendered) == 1:
            return rendered[0]
        return {"$and": rendered}

    def to_projection(self) -> dict[str, int] | None:
        if self.projection is None:
            return None
        projection = {node.path: 1 for node in self.projection}
        # Nodes overload ==, so membership is checked by identity.
        if not any(node is self.schema.primary_key for node in self.projection):
            projection[self.schema.primary_key.name] = 0
        return projection

    @property
    def sort_fields(self) -> list[tuple[str, int]]:
        return list(self._sort_fields)

    @property
    def skip_value(self) -> int:
        return self._skip_value

    @property
    def limit_value(self) -> int | None:
        return self._limit_value

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> T:
        if self._results is None:
            self._results = self.session._execute(self)
        raw = next(self._results)
        if self.projection is None:
            return codec.decode_document(self.schema, raw)
        return tuple(self._extract(node, raw) for node in self.projection)  # type: ignore[return-value]

    def _extract(self, node: Node, raw: dict[str, Any]) -> Any:
        value: Any = raw
        for part in node.path.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return node.decode(value) if value is not None else None

    def _check_pending(self) -> None:
        if self._results is not None:
            raise QueryError("Query has already been executed")

    def _check_owned(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            if not self.schema.owns(node):
                raise ForeignFieldError(f"{node!r} does not belong to {self.schema!r}")

    def _parse_sort_fields(self, *fields: Node | str | tuple[Node | str, int]) -> list[tuple[str, int]]:
        """Parse sort field specifications into (path, direction) tuples."""
        parsed_fields = []
        for field in fields:
            direction = 1
            if isinstance(field, tuple):
                field, direction = field
            elif isinstance(field, str) and field.startswith("-"):
                field, direction = field[1:], -1
            if isinstance(field, str):
                try:
                    field = self.schema[field]
                except KeyError:
                    raise QueryError(f"Unknown sort field: {field}") from None
            self._check_owned([field])
            if direction not in (1, -1):
                raise QueryError(f"Sort direction must be 1 or -1, got {direction}")
            parsed_fields.append((field.path, direction))
        return parsed_fields
