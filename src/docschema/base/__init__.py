"""
Schema declaration, query building and entity encoding.

This package holds everything that does not talk to a database; sessions
and drivers live in ``docschema.session`` and ``docschema.mongo``.
"""

from .fields import PK, CompoundExpression, Field, IntField, Node, QueryExpression, StringField
from .manager import CollectionManager
from .query import Query
from .schema import ColumnGroup, Schema, SchemaRegistry, registry

__all__ = [
    "PK",
    "CollectionManager",
    "ColumnGroup",
    "CompoundExpression",
    "Field",
    "IntField",
    "Node",
    "Query",
    "QueryExpression",
    "Schema",
    "SchemaRegistry",
    "StringField",
    "registry",
]
