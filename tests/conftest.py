from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from typing import Any

import pytest
from bson import ObjectId

from docschema import Schema, Session, WriteError
from docschema.base.backends import Connection, Driver
from tests.models import Album, declare_products

_MISSING = object()


def _resolve(document: Mapping[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _ordered(check):
    def compare(value: Any, operand: Any) -> bool:
        return value is not _MISSING and value is not None and check(value, operand)

    return compare


OPERATORS = {
    "$eq": lambda value, operand: value == operand,
    "$ne": lambda value, operand: value != operand,
    "$lt": _ordered(lambda value, operand: value < operand),
    "$lte": _ordered(lambda value, operand: value <= operand),
    "$gt": _ordered(lambda value, operand: value > operand),
    "$gte": _ordered(lambda value, operand: value >= operand),
    "$in": lambda value, operand: value in operand,
    "$nin": lambda value, operand: value not in operand,
}


def matches(document: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Evaluate the subset of MongoDB filter syntax docschema renders."""
    for key, condition in query.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$nor":
            if any(matches(document, sub) for sub in condition):
                return False
        else:
            value = _resolve(document, key)
            for operator, operand in condition.items():
                if not OPERATORS[operator](value, operand):
                    return False
    return True


def project(document: Mapping[str, Any], projection: Mapping[str, Any] | None) -> dict[str, Any]:
    if projection is None:
        return copy.deepcopy(dict(document))
    result: dict[str, Any] = {}
    if projection.get("_id", 1) and "_id" in document:
        result["_id"] = document["_id"]
    for path, flag in projection.items():
        if not flag or path == "_id":
            continue
        value = _resolve(document, path)
        if value is _MISSING:
            continue
        target = result
        *parents, leaf = path.split(".")
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = copy.deepcopy(value)
    return result


class InMemoryConnection(Connection):
    def __init__(self, driver: InMemoryDriver, database: str) -> None:
        self.driver = driver
        self.collections = driver.databases.setdefault(database, {})
        self.closed = False

    def insert_document(self, collection: str, document: Mapping[str, Any]) -> Any:
        documents = self.collections.setdefault(collection, [])
        stored = copy.deepcopy(dict(document))
        stored.setdefault("_id", ObjectId())
        if any(existing["_id"] == stored["_id"] for existing in documents):
            raise WriteError(f"Duplicate key {stored['_id']!r} in {collection}")
        documents.append(stored)
        return stored["_id"]

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
        self.driver.queries.append(
            {"collection": collection, "filter": filter, "projection": projection,
             "sort": sort, "skip": skip, "limit": limit}
        )
        found = [doc for doc in self.collections.get(collection, []) if matches(doc, filter)]
        for path, direction in reversed(sort or []):
            found.sort(key=lambda doc: _resolve(doc, path), reverse=direction == -1)
        found = found[skip:]
        if limit:
            found = found[:limit]
        return (project(doc, projection) for doc in found)

    def close(self) -> None:
        self.closed = True


class InMemoryDriver(Driver):
    """Driver double keeping documents in dictionaries."""

    def __init__(self) -> None:
        self.databases: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.connections: list[InMemoryConnection] = []
        self.queries: list[dict[str, Any]] = []

    def connect(self, database: str) -> InMemoryConnection:
        connection = InMemoryConnection(self, database)
        self.connections.append(connection)
        return connection


@pytest.fixture
def driver() -> InMemoryDriver:
    return InMemoryDriver()


@pytest.fixture
def session(driver: InMemoryDriver) -> Iterator[Session]:
    with Session("test", driver) as db:
        yield db


@pytest.fixture
def products() -> Schema:
    return declare_products()


@pytest.fixture
def albums() -> Schema:
    return declare_products(Album, name="albums")
