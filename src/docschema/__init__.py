"""
docschema - typed schema declarations and queries over MongoDB.

Usage:
    from docschema import PK, Schema, mongo

    with Schema("products", Album, primary_key=PK.string("_id")) as albums:
        sku = albums.string("sku")
        pricing = albums.group("pricing", Pricing)
        pricing.integer("list")

    with mongo.session("test") as db:
        db.insert(albums, album)
        for found in db.filter(albums, sku == "00e8da9b"):
            print(found)
"""

from .base.fields import PK, CompoundExpression, Field, IntField, QueryExpression, StringField
from .base.manager import CollectionManager
from .base.query import Query
from .base.schema import ColumnGroup, Schema, SchemaRegistry, registry
from .config import MongoConfig
from .errors import (
    ConnectionError,
    DeclarationError,
    DecodeError,
    DocSchemaError,
    DuplicateFieldError,
    DuplicateSchemaError,
    ForeignFieldError,
    QueryError,
    SchemaFrozenError,
    TypeMismatchError,
    WriteError,
)
from .session import Session, SessionState
from . import mongo

__version__ = "0.1.0"

__all__ = [
    "PK",
    "CollectionManager",
    "ColumnGroup",
    "CompoundExpression",
    "ConnectionError",
    "DeclarationError",
    "DecodeError",
    "DocSchemaError",
    "DuplicateFieldError",
    "DuplicateSchemaError",
    "Field",
    "ForeignFieldError",
    "IntField",
    "MongoConfig",
    "Query",
    "QueryError",
    "QueryExpression",
    "SchemaFrozenError",
    "Schema",
    "SchemaRegistry",
    "Session",
    "SessionState",
    "StringField",
    "TypeMismatchError",
    "WriteError",
    "mongo",
    "registry",
]
