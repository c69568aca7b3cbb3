from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any, Self, TypeVar

from ..errors import DeclarationError, DuplicateFieldError, DuplicateSchemaError, SchemaFrozenError
from . import codec
from .fields import PK, Field, IntField, Node, StringField

logger = logging.getLogger(__name__)

N = TypeVar("N", bound=Node)

# Reserved identifier field of the document store.
ID_FIELD = "_id"


class Scope:
    """Declaration surface shared by Schema and ColumnGroup.

    Children are kept in declaration order and indexed both by document
    name and by entity attribute; either may only be used once per scope.
    """

    entity_type: type[Any] | None
    name: str

    def _init_scope(self) -> None:
        self._children: dict[str, Node] = {}
        self._attributes: dict[str, Node] = {}

    @property
    def path(self) -> str:
        raise NotImplementedError

    @property
    def schema(self) -> Schema | None:
        raise NotImplementedError

    def declare(self, node: N) -> N:
        """Attach ``node`` to this scope."""
        schema = self.schema
        if schema is not None and schema.frozen:
            raise SchemaFrozenError(f"Schema '{schema.name}' is frozen")
        if node.name in self._children:
            raise DuplicateFieldError(node.name, repr(self))
        if node.attribute in self._attributes:
            raise DuplicateFieldError(node.attribute, repr(self))
        node.bind(self)
        self._children[node.name] = node
        self._attributes[node.attribute] = node
        return node

    def string(self, name: str, *, attribute: str | None = None, required: bool = True) -> StringField:
        return self.declare(StringField(name, attribute=attribute, required=required))

    def integer(self, name: str, *, attribute: str | None = None, required: bool = True) -> IntField:
        return self.declare(IntField(name, attribute=attribute, required=required))

    def group(
        self,
        name: str,
        entity_type: type[Any] | None = None,
        *,
        attribute: str | None = None,
        required: bool = True,
    ) -> ColumnGroup:
        return self.declare(ColumnGroup(name, entity_type, attribute=attribute, required=required))

    def walk(self) -> Iterator[Node]:
        """Yield every node below this scope, depth first."""
        for node in self._children.values():
            yield node
            if isinstance(node, ColumnGroup):
                yield from node.walk()

    def fields(self) -> Iterator[Field[Any]]:
        return (node for node in self.walk() if isinstance(node, Field))

    def __iter__(self) -> Iterator[Node]:
        return iter(self._children.values())

    def __len__(self) -> int:
        return len(self._children)

    def __contains__(self, name: object) -> bool:
        return name in self._children

    def __getitem__(self, path: str) -> Node:
        head, _, rest = path.partition(".")
        node = self._children[head]
        if not rest:
            return node
        if not isinstance(node, ColumnGroup):
            raise KeyError(path)
        return node[rest]

    def lookup(self, attribute: str) -> Node:
        """Return the child declared under entity attribute ``attribute``."""
        return self._attributes[attribute]

    def __getattr__(self, attribute: str) -> Node:
        if attribute.startswith("_"):
            raise AttributeError(attribute)
        try:
            return self.lookup(attribute)
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__} '{self.name}' has no field '{attribute}'"
            ) from None


class ColumnGroup(Node, Scope):
    """Named group of fields stored as an embedded sub-document."""

    type_name = "document"

    def __init__(
        self,
        name: str,
        entity_type: type[Any] | None = None,
        *,
        attribute: str | None = None,
        required: bool = True,
    ) -> None:
        super().__init__(name, attribute=attribute, required=required)
        self.entity_type = entity_type
        self._init_scope()

    def encode(self, value: Any) -> dict[str, Any]:
        return codec.encode_scope(self, value)

    def decode(self, raw: Any) -> Any:
        return codec.decode_scope(self, raw)

    def copy(self) -> ColumnGroup:
        group = ColumnGroup(
            self.name, self.entity_type, attribute=self.attribute, required=self.required
        )
        for node in self:
            group.declare(node.copy())
        return group


class Schema(Scope):
    """A collection's shape: primary key, fields and column groups.

    Usable as a context manager; leaving the block without an error
    freezes the schema:

        with Schema("products", Album) as albums:
            albums.string("sku")
            pricing = albums.group("pricing", Pricing)
            pricing.integer("list")
    """

    def __init__(
        self,
        collection: str,
        entity_type: type[Any] | None = None,
        *,
        primary_key: Field[Any] | None = None,
        name: str | None = None,
    ) -> None:
        if not collection:
            raise DeclarationError("Schema needs a collection name")
        if primary_key is None:
            primary_key = PK.string()
        if not primary_key.primary_key:
            raise DeclarationError(f"{primary_key!r} is not a primary key descriptor")
        if primary_key.name != ID_FIELD:
            raise DeclarationError(
                f"Primary key must be stored as '{ID_FIELD}', got '{primary_key.name}'; "
                "use attribute= to rename it on entities"
            )

        self.collection = collection
        self.entity_type = entity_type
        self.name = name or collection
        self._frozen = False
        self._init_scope()
        self.primary_key = self.declare(primary_key)

    @property
    def path(self) -> str:
        return ""

    @property
    def schema(self) -> Schema:
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Self:
        if not self._frozen:
            self._frozen = True
            logger.debug("Schema %s frozen with %d fields", self.name, len(list(self.fields())))
        return self

    def owns(self, node: Node) -> bool:
        return node.schema is self

    def clone(self, entity_type: type[Any] | None = None, *, name: str | None = None) -> Schema:
        """Declare the same tree again into a new, open schema."""
        schema = Schema(
            self.collection,
            entity_type or self.entity_type,
            primary_key=self.primary_key.copy(),
            name=name or self.name,
        )
        for node in self:
            if node is not self.primary_key:
                schema.declare(node.copy())
        return schema

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.freeze()

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, collection={self.collection!r})"


class SchemaRegistry:
    """Frozen schemas by name, shared read-only across sessions."""

    def __init__(self) -> None:
        self._schemas: dict[str, Schema] = {}

    def register(self, schema: Schema) -> Schema:
        if schema.name in self._schemas:
            raise DuplicateSchemaError(f"Schema '{schema.name}' is already registered")
        self._schemas[schema.name] = schema.freeze()
        logger.debug("Registered schema %s (collection %s)", schema.name, schema.collection)
        return schema

    def get(self, name: str) -> Schema:
        return self._schemas[name]

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def __iter__(self) -> Iterator[Schema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)


registry = SchemaRegistry()
