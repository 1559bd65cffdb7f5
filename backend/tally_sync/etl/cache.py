"""Injectable memoisation used by the tenant and reference resolvers."""
from __future__ import annotations

from typing import Any, Hashable, Optional, Protocol


class LookupCache(Protocol):
    def get(self, key: Hashable) -> Optional[Any]:
        ...

    def set(self, key: Hashable, value: Any) -> None:
        ...

    def clear(self) -> None:
        ...


class MemoryLookupCache:
    """Process-local dict cache. Lives for one sync run; not safe for concurrent writers."""

    def __init__(self) -> None:
        self._data: dict[Hashable, Any] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data
