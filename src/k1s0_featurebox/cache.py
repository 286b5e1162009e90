"""FlagCache — FlagStore 前段のリードスルーキャッシュ"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from .cache_client import CacheClient
from .exceptions import FeatureBoxError

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS: float = 300.0
DEFAULT_KEY_PREFIX = "featurebox"
_ALL_SUFFIX = "all"


class FlagCache:
    """フラグ単位のキーと全件キーを持つリードスルーキャッシュ。

    値は JSON テキストとして保存する。ストアの派生状態であり、
    書き込み側は invalidate / invalidate_all で必ず破棄すること。
    """

    def __init__(
        self,
        client: CacheClient,
        ttl: float = DEFAULT_TTL_SECONDS,
        prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._client = client
        self._ttl = ttl
        self._prefix = prefix

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def all_key(self) -> str:
        return f"{self._prefix}.{_ALL_SUFFIX}"

    def flag_key(self, name: str) -> str:
        return f"{self._prefix}.{name}"

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """キャッシュから値を取得し、無ければ loader の結果を保存して返す。

        loader は JSON 互換の値を返すこと。None は保存しない。
        キャッシュ側の障害時は loader を直接呼ぶ。
        """
        try:
            cached = self._client.get(key)
        except FeatureBoxError as e:
            logger.warning("cache_get_failed", key=key, error=str(e))
            return loader()
        if cached is not None:
            try:
                return json.loads(cached)
            except ValueError:
                logger.warning("cache_entry_corrupt", key=key)
        value = loader()
        if value is not None:
            try:
                self._client.set(key, json.dumps(value), ttl=self._ttl)
            except FeatureBoxError as e:
                logger.warning("cache_set_failed", key=key, error=str(e))
        return value

    def get_flag(self, name: str, loader: Callable[[], Any]) -> Any:
        """フラグ単位のキーで get_or_load する。

        "all" という名前のフラグは全件キーと衝突するためキャッシュしない。
        """
        if name == _ALL_SUFFIX:
            return loader()
        return self.get_or_load(self.flag_key(name), loader)

    def get_all(self, loader: Callable[[], Any]) -> Any:
        return self.get_or_load(self.all_key, loader)

    def invalidate(self, key: str) -> None:
        """キーを破棄する。

        Raises:
            FeatureBoxError: キャッシュバックエンドの削除に失敗した場合
        """
        self._client.delete(key)
        logger.debug("cache_invalidated", key=key)

    def invalidate_all(self, names: Iterable[str]) -> None:
        """全件キーと、指定された全フラグのキーを破棄する。"""
        self.invalidate(self.all_key)
        for name in dict.fromkeys(names):
            if name != _ALL_SUFFIX:
                self.invalidate(self.flag_key(name))
