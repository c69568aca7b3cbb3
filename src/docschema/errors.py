"""Exception hierarchy for docschema."""

from __future__ import annotations

from typing import Any


class DocSchemaError(Exception):
    """Base class for all docschema errors."""


class DeclarationError(DocSchemaError):
    """Invalid schema declaration."""


class DuplicateFieldError(DeclarationError):
    """Two nodes with the same name were declared in one scope."""

    def __init__(self, name: str, scope: str) -> None:
        super().__init__(f"Field '{name}' is already declared in {scope}")
        self.name = name
        self.scope = scope


class SchemaFrozenError(DeclarationError):
    """Declaration attempted on a schema that is no longer open."""


class DuplicateSchemaError(DeclarationError):
    """A schema with the same name is already registered."""


class TypeMismatchError(DocSchemaError):
    """A value does not match the declared type of its field."""

    def __init__(self, path: str, expected: str, value: Any) -> None:
        super().__init__(
            f"Field '{path}' expects {expected}, got {type(value).__name__} ({value!r})"
        )
        self.path = path
        self.expected = expected
        self.value = value


class WriteError(DocSchemaError):
    """The document store rejected a write."""


class QueryError(DocSchemaError):
    """A query was malformed or rejected by the document store."""


class ForeignFieldError(QueryError):
    """A query references a field declared by another schema."""


class DecodeError(QueryError):
    """A stored document could not be decoded into an entity."""


class ConnectionError(DocSchemaError):  # noqa: A001
    """Session is not open, or the driver failed to connect or disconnect."""
