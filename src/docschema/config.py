"""MongoDB connection settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Self
from urllib.parse import quote_plus

ENV_PREFIX = "DOCSCHEMA_MONGO_"


@dataclass(slots=True, frozen=True)
class MongoConfig:
    """
    Settings used to build a pymongo client.

    Args:
        uri: Full connection string; overrides host, port and credentials
        host: MongoDB server hostname (default: localhost)
        port: MongoDB server port (default: 27017)
        username: Database username
        password: Database password
        server_selection_timeout_ms: How long connect waits for a server (default: 5000)
        app_name: Client name reported to the server

    Example:
        >>> MongoConfig(host="db", username="app", password="p@ss").connection_string
        'mongodb://app:p%40ss@db:27017'
    """

    uri: str | None = None
    host: str = "localhost"
    port: int = 27017
    username: str | None = None
    password: str | None = None
    server_selection_timeout_ms: int = 5000
    app_name: str = "docschema"

    @property
    def connection_string(self) -> str:
        if self.uri:
            return self.uri
        auth = ""
        if self.username:
            auth = quote_plus(self.username)
            if self.password:
                auth += ":" + quote_plus(self.password)
            auth += "@"
        return f"mongodb://{auth}{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        """
        Read settings from ``DOCSCHEMA_MONGO_*`` variables.

        Recognised suffixes: URI, HOST, PORT, USERNAME, PASSWORD, TIMEOUT_MS.
        Unset variables keep their defaults.

        Raises:
            ValueError: If PORT or TIMEOUT_MS is not an integer
        """
        if environ is None:
            environ = os.environ

        def get(key: str) -> str | None:
            return environ.get(ENV_PREFIX + key) or None

        kwargs: dict[str, object] = {}
        for key, attr in (("URI", "uri"), ("HOST", "host"), ("USERNAME", "username"), ("PASSWORD", "password")):
            value = get(key)
            if value is not None:
                kwargs[attr] = value
        for key, attr in (("PORT", "port"), ("TIMEOUT_MS", "server_selection_timeout_ms")):
            value = get(key)
            if value is not None:
                try:
                    kwargs[attr] = int(value)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}{key} must be an integer, got {value!r}") from None
        return cls(**kwargs)  # type: ignore[arg-type]
