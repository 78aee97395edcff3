"""
In-memory key/value store - Implements KeyValueStore protocol.

Non-durable; used for tests and throwaway development sessions.
"""


class InMemoryKeyValueStore:
    """Implements KeyValueStore protocol with a plain dict."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
