"""Storage adapters - Durable key/value implementations for the credential slot."""

from .file import JsonFileKeyValueStore
from .memory import InMemoryKeyValueStore
from .postgres import PostgresKeyValueStore, run_migrations

__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "PostgresKeyValueStore",
    "run_migrations",
]
