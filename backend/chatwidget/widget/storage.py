"""Tenant-scoped key/value storage for the widget engine.

Stands in for the browser's local storage. Every window of the same visitor
shares one store, writes are last-writer-wins and no locking is done.
"""
import logging
from typing import Dict, Optional

import redis

from .errors import StorageError

logger = logging.getLogger(__name__)

KEY_PREFIX = "botsy"


def scoped_key(name: str, tenant_id: str) -> str:
    return f"{KEY_PREFIX}_{name}_{tenant_id}"


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class RedisKeyValueStore(KeyValueStore):
    """Store backed by Redis so several processes see the same visitor state."""

    def __init__(self, client: redis.Redis, namespace: str = "widget-storage"):
        self.client = client
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key):
        try:
            value = self.client.get(self._key(key))
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value

    def set(self, key, value):
        try:
            self.client.set(self._key(key), value)
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc

    def remove(self, key):
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc
