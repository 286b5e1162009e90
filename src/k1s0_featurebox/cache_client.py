"""CacheClient 抽象基底クラスとインメモリ実装"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable


class CacheClient(ABC):
    """キャッシュバックエンド抽象基底クラス。

    失敗時は FeatureBoxError(CACHE_ERROR) を送出する。
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """キーに対応する値を取得する。存在しなければ None。"""
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl: float | None = None) -> None:
        """キーと値を保存する。ttl 指定時は有効期限付き（秒）。"""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """キーを削除する。削除できたら True。"""
        ...


class _CacheEntry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: str, expires_at: float | None) -> None:
        self.value = value
        self.expires_at = expires_at


class InMemoryCacheClient(CacheClient):
    """プロセス内インメモリキャッシュクライアント。"""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and self._clock() >= entry.expires_at:
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl: float | None = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._store[key] = _CacheEntry(value, expires_at)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def keys(self) -> list[str]:
        """期限切れを含む現在のキー一覧。"""
        with self._lock:
            return list(self._store)
