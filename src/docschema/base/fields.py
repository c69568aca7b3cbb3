from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from bson import ObjectId

from ..errors import DeclarationError, DecodeError, TypeMismatchError

if TYPE_CHECKING:
    from .schema import Schema, Scope

T = TypeVar("T")

# Query operators and their native (MongoDB) spelling.
OPERATORS = {
    "eq": "$eq",
    "ne": "$ne",
    "lt": "$lt",
    "lte": "$lte",
    "gt": "$gt",
    "gte": "$gte",
    "in": "$in",
    "not_in": "$nin",
}


@dataclass(slots=True, frozen=True, eq=False)
class QueryExpression:
    """A single predicate: field, operator and an already validated operand."""

    field: Node
    operator: str
    value: Any

    def __and__(self, other: QueryExpression | CompoundExpression) -> CompoundExpression:
        return CompoundExpression("and", [self, other])

    def __or__(self, other: QueryExpression | CompoundExpression) -> CompoundExpression:
        return CompoundExpression("or", [self, other])

    def __invert__(self) -> CompoundExpression:
        return CompoundExpression("not", [self])

    @property
    def path(self) -> str:
        return self.field.path

    def nodes(self) -> Iterator[Node]:
        yield self.field

    def to_filter(self) -> dict[str, Any]:
        return {self.field.path: {OPERATORS[self.operator]: self.value}}


@dataclass(slots=True, frozen=True, eq=False)
class CompoundExpression:
    """Compound expression for combining multiple query expressions."""

    operator: str  # 'and', 'or', 'not'
    expressions: list[QueryExpression | CompoundExpression]

    def __and__(self, other: QueryExpression | CompoundExpression) -> CompoundExpression:
        return CompoundExpression("and", [self, other])

    def __or__(self, other: QueryExpression | CompoundExpression) -> CompoundExpression:
        return CompoundExpression("or", [self, other])

    def __invert__(self) -> CompoundExpression:
        return CompoundExpression("not", [self])

    def nodes(self) -> Iterator[Node]:
        for expression in self.expressions:
            yield from expression.nodes()

    def to_filter(self) -> dict[str, Any]:
        rendered = [expression.to_filter() for expression in self.expressions]
        if self.operator == "not":
            return {"$nor": rendered}
        return {f"${self.operator}": rendered}


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise DeclarationError(f"Field name must be a non-empty string, got {name!r}")
    if "." in name or name.startswith("$"):
        raise DeclarationError(f"Field name {name!r} must not contain '.' or start with '$'")


class Node:
    """Named member of a schema tree: either a leaf Field or a ColumnGroup.

    A node is declared into exactly one scope and keeps a non-owning
    reference to it, so its document path and root schema are always
    derivable.
    """

    type_name = "value"

    def __init__(
        self,
        name: str,
        *,
        attribute: str | None = None,
        required: bool = True,
    ) -> None:
        _check_name(name)
        self.name = name
        self.attribute = attribute or name
        self.required = required
        self.parent: Scope | None = None  # Set on declaration

    def bind(self, parent: Scope) -> None:
        if self.parent is not None:
            raise DeclarationError(f"{self!r} is already declared in {self.parent!r}")
        self.parent = parent

    @property
    def path(self) -> str:
        prefix = self.parent.path if self.parent is not None else ""
        return f"{prefix}.{self.name}" if prefix else self.name

    @property
    def schema(self) -> Schema | None:
        return self.parent.schema if self.parent is not None else None

    def encode(self, value: Any) -> Any:
        raise NotImplementedError

    def decode(self, raw: Any) -> Any:
        raise NotImplementedError

    def copy(self) -> Node:
        raise NotImplementedError

    def _expression(self, operator: str, value: Any) -> QueryExpression:
        return QueryExpression(self, operator, self.encode(value))

    def eq(self, value: Any) -> QueryExpression:
        return self._expression("eq", value)

    def ne(self, value: Any) -> QueryExpression:
        return self._expression("ne", value)

    def __eq__(self, other: Any) -> QueryExpression:  # type: ignore[override]
        return self.eq(other)

    def __ne__(self, other: Any) -> QueryExpression:  # type: ignore[override]
        return self.ne(other)

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"


class Field(Node, Generic[T]):
    """Leaf field descriptor with operator support for query building."""

    value_type: type[Any] = object

    def __init__(
        self,
        name: str,
        *,
        attribute: str | None = None,
        required: bool = True,
        primary_key: bool = False,
    ) -> None:
        super().__init__(name, attribute=attribute, required=required)
        self.primary_key = primary_key

    def check(self, value: Any) -> T:
        """Return ``value`` if it matches the declared type, else raise TypeMismatchError."""
        if isinstance(value, bool) and self.value_type is not bool:
            raise TypeMismatchError(self.path, self.type_name, value)
        if not isinstance(value, self.value_type):
            raise TypeMismatchError(self.path, self.type_name, value)
        return value

    def encode(self, value: Any) -> T:
        return self.check(value)

    def decode(self, raw: Any) -> T:
        try:
            return self.check(raw)
        except TypeMismatchError as exc:
            raise DecodeError(str(exc)) from exc

    def generate(self) -> T:
        """Produce a value for a primary key left empty on insert."""
        raise TypeMismatchError(self.path, self.type_name, None)

    def copy(self) -> Field[T]:
        return type(self)(
            self.name,
            attribute=self.attribute,
            required=self.required,
            primary_key=self.primary_key,
        )

    def __lt__(self, other: Any) -> QueryExpression:
        return self._expression("lt", other)

    def __le__(self, other: Any) -> QueryExpression:
        return self._expression("lte", other)

    def __gt__(self, other: Any) -> QueryExpression:
        return self._expression("gt", other)

    def __ge__(self, other: Any) -> QueryExpression:
        return self._expression("gte", other)

    def in_(self, values: Iterable[T]) -> QueryExpression:
        """Check if field value is in a list of values."""
        return QueryExpression(self, "in", [self.check(value) for value in values])

    def not_in(self, values: Iterable[T]) -> QueryExpression:
        """Check if field value is not in a list of values."""
        return QueryExpression(self, "not_in", [self.check(value) for value in values])


class StringField(Field[str]):
    """String field."""

    value_type = str
    type_name = "str"

    def decode(self, raw: Any) -> str:
        # Keys generated by the server come back as ObjectId.
        if self.primary_key and isinstance(raw, ObjectId):
            return str(raw)
        return super().decode(raw)

    def generate(self) -> str:
        return str(ObjectId())


class IntField(Field[int]):
    """Integer field."""

    value_type = int
    type_name = "int"


class PK:
    """Primary key descriptor factories."""

    @staticmethod
    def string(name: str = "_id", *, attribute: str = "id") -> StringField:
        return StringField(name, attribute=attribute, required=False, primary_key=True)

    @staticmethod
    def integer(name: str = "_id", *, attribute: str = "id") -> IntField:
        return IntField(name, attribute=attribute, required=False, primary_key=True)
