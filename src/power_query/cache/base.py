"""Credential cache abstractions."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from ..errors import CredentialNotFound, InvalidArgument

Clock = Callable[[], float]


class CredentialCache(ABC):
    """Interface for storing serialized session credentials with an expiry."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the stored value or raise ``CredentialNotFound`` when absent or expired."""

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds, replacing any existing entry."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the entry for ``key`` if present."""

    def close(self) -> None:
        """Release resources held by the backing store."""


def validate_entry(key: str, value: bytes) -> None:
    if not key or not value:
        raise InvalidArgument("cache key and value cannot be empty")


class InMemoryCredentialCache(CredentialCache):
    """Process-local cache useful for testing and ephemeral deployments."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or time.time
        self._entries: Dict[str, Tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise CredentialNotFound(key)
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                raise CredentialNotFound(key)
            return value

    def set(self, key: str, value: bytes, ttl: float) -> None:
        validate_entry(key, value)
        with self._lock:
            self._entries[key] = (bytes(value), self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
