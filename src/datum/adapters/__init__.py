"""
Datum adapters.

Dialect adapters are registered by name. An adapter whose driver package is
not importable is simply left unregistered; asking for it raises
UnavailableAdapter when a connection is opened.
"""

import importlib
from typing import Any

from datum.adapters.base import Adapter
from datum.core.dsn import ConnectionConfig
from datum.core.errors import UnavailableAdapter
from datum.logging import DatumLogger, get_logger

logger = get_logger("datum.adapters")

_adapters: dict[str, type[Adapter]] = {}


def register_adapter(
    name: str,
    adapter_class: type[Adapter] | str,
    dependency: str | None = None,
) -> bool:
    """
    Register an adapter class under a dialect name.

    Args:
        name: Dialect name used in DSN schemes (e.g. "postgres")
        adapter_class: The adapter class, or a "module:Class" path imported lazily
        dependency: Driver module that must be importable for the adapter to work

    Returns:
        True if the adapter was registered
    """
    if dependency is not None:
        try:
            importlib.import_module(dependency)
        except ImportError:
            logger.debug(f"Adapter '{name}' unavailable; '{dependency}' is not installed", dialect=name)
            return False

    if isinstance(adapter_class, str):
        module_path, _, class_name = adapter_class.partition(":")
        adapter_class = getattr(importlib.import_module(module_path), class_name)

    _adapters[name] = adapter_class
    return True


def unregister_adapter(name: str) -> None:
    _adapters.pop(name, None)


def available_adapters() -> list[str]:
    """Names of every registered dialect."""
    return sorted(_adapters)


def get_adapter_class(dialect: str) -> type[Adapter]:
    adapter_class = _adapters.get(dialect)
    if adapter_class is None:
        raise UnavailableAdapter(dialect, available_adapters())
    return adapter_class


def connect(config: ConnectionConfig, logger: DatumLogger | None = None, **kwargs: Any) -> Adapter:
    """
    Open a connection for a configuration.

    Raises:
        UnavailableAdapter: If no adapter is registered for the dialect
    """
    return get_adapter_class(config.dialect)(config, logger, **kwargs)


register_adapter("sqlite", "datum.adapters.sqlite:SqliteAdapter", "sqlite3")
register_adapter("postgres", "datum.adapters.postgres:PostgresAdapter", "psycopg")
register_adapter("mysql", "datum.adapters.mysql:MySqlAdapter", "mysql.connector")

__all__ = [
    "Adapter",
    "register_adapter",
    "unregister_adapter",
    "available_adapters",
    "get_adapter_class",
    "connect",
]
