"""
Connection registry.

Configurations are registered per model class with `establish`. Live adapters
are owned by a ConnectionScope: an explicit execution-context handle that
caches one adapter per configured model hierarchy. Each thread gets its own
scope, so two threads never share a live connection; `scope()` opens a fresh,
explicitly bounded one.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from datum.adapters import Adapter, connect
from datum.core.dsn import ConnectionConfig, parse_dsn
from datum.core.errors import ConnectionNotEstablished
from datum.logging import get_logger
from datum.settings import get_settings

logger = get_logger("datum.connection")


class ConnectionScope:
    """
    Owner of live adapters for one execution context.

    Adapters are keyed by the class holding the configuration they were
    opened from.
    """

    def __init__(self) -> None:
        self.owner = threading.get_ident()
        self._adapters: dict[type, Adapter] = {}

    def get(self, key: type) -> Adapter | None:
        return self._adapters.get(key)

    def set(self, key: type, adapter: Adapter) -> None:
        self._adapters[key] = adapter

    def discard(self, key: type) -> None:
        """Disconnect and forget the adapter held for key, if any."""
        adapter = self._adapters.pop(key, None)
        if adapter is not None:
            adapter.disconnect()

    def close(self) -> None:
        """Disconnect every adapter owned by this scope."""
        adapters, self._adapters = self._adapters, {}
        for adapter in adapters.values():
            adapter.disconnect()

    def __len__(self) -> int:
        return len(self._adapters)


class ConnectionRegistry:
    """
    Maps model classes to connection configurations and resolves adapters.

    A model without its own configuration uses the nearest configured class
    in its MRO, typically Record itself.
    """

    def __init__(self) -> None:
        self._configs: dict[type, ConnectionConfig] = {}
        self._scope: ContextVar[ConnectionScope | None] = ContextVar("datum_connection_scope", default=None)

    def establish(self, model: type, dsn: str | ConnectionConfig | None = None) -> ConnectionConfig:
        """
        Register a connection configuration for a model class.

        Args:
            model: Model class the configuration applies to, along with its subclasses
            dsn: DSN string or parsed configuration; defaults to settings.database_url

        Raises:
            ConnectionNotEstablished: If no DSN is given and none is configured
        """
        if dsn is None:
            dsn = get_settings().database_url
            if dsn is None:
                raise ConnectionNotEstablished(model.__name__, reason="no database URL configured")

        config = dsn if isinstance(dsn, ConnectionConfig) else parse_dsn(dsn)
        self._configs[model] = config

        # A cached adapter for the previous configuration is stale now.
        self.current_scope().discard(model)

        logger.info(
            f"Connection established for {model.__name__}",
            model=model.__name__,
            dialect=config.dialect,
            database=config.redacted(),
        )
        return config

    def config_for(self, model: type) -> tuple[type, ConnectionConfig] | None:
        """Return the configured class and its configuration for model, or None."""
        for klass in model.__mro__:
            config = self._configs.get(klass)
            if config is not None:
                return klass, config
        return None

    def is_established(self, model: type) -> bool:
        return self.config_for(model) is not None

    def current_scope(self) -> ConnectionScope:
        """Return the scope for the calling context, creating it on first use."""
        scope = self._scope.get()
        if scope is None or scope.owner != threading.get_ident():
            scope = ConnectionScope()
            self._scope.set(scope)
        return scope

    @contextmanager
    def scope(self) -> Iterator[ConnectionScope]:
        """
        Open a fresh connection scope for the duration of a block.

        Adapters opened inside the block are disconnected when it exits.

        Example:
            with registry.scope():
                User.find(1)
        """
        scope = ConnectionScope()
        token = self._scope.set(scope)
        try:
            yield scope
        finally:
            scope.close()
            self._scope.reset(token)

    def connection(self, model: type) -> Adapter:
        """
        Resolve the adapter for a model in the current scope.

        Raises:
            ConnectionNotEstablished: If neither the model nor any ancestor is configured
            UnavailableAdapter: If the configured dialect has no usable driver
        """
        found = self.config_for(model)
        if found is None:
            raise ConnectionNotEstablished(model.__name__)
        key, config = found

        scope = self.current_scope()
        adapter = scope.get(key)
        if adapter is None:
            adapter = connect(config, migrations_table=get_settings().migrations_table)
            scope.set(key, adapter)
        return adapter

    def disconnect_all(self) -> None:
        """Forget every configuration and disconnect the current scope's adapters."""
        self._configs.clear()
        self.current_scope().close()


registry = ConnectionRegistry()
