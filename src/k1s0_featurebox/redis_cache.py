"""RedisCacheClient 実装"""

from __future__ import annotations

from typing import Any

import redis

from .cache_client import CacheClient
from .exceptions import FeatureBoxError, FeatureBoxErrorCodes


class RedisCacheClient(CacheClient):
    """redis-py を使ったキャッシュクライアント。"""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisCacheClient:
        kwargs.setdefault("decode_responses", True)
        kwargs.setdefault("socket_connect_timeout", 5)
        kwargs.setdefault("socket_timeout", 5)
        return cls(redis.Redis.from_url(url, **kwargs))

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            raise _cache_error("get", key, e) from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: float | None = None) -> None:
        px = max(1, int(ttl * 1000)) if ttl is not None else None
        try:
            self._client.set(key, value, px=px)
        except redis.RedisError as e:
            raise _cache_error("set", key, e) from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self._client.delete(key))
        except redis.RedisError as e:
            raise _cache_error("delete", key, e) from e


def _cache_error(op: str, key: str, e: Exception) -> FeatureBoxError:
    return FeatureBoxError(
        code=FeatureBoxErrorCodes.CACHE_ERROR,
        message=f"Redis {op} failed for {key}: {e}",
        cause=e,
    )
