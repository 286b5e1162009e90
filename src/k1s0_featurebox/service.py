"""FeatureBox — フィーチャーフラグ判定サービス"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from .cache import FlagCache
from .cache_client import CacheClient, InMemoryCacheClient
from .conditions import ConditionSet
from .config import FeatureBoxConfig
from .evaluator import evaluate
from .exceptions import FeatureBoxError
from .models import FlagRecord, RequestContext
from .sql_store import SqlFlagStore
from .store import FlagStore

logger = structlog.get_logger(__name__)


class FeatureBox:
    """フラグの読み込み・判定・有効化/無効化を行うサービス。

    プロセス起動時に一度生成し、呼び出し側へ明示的に渡して使う。
    ストアやキャッシュの障害は例外として外に出さず、
    無効（False）・None・空リストに縮退する。
    """

    def __init__(
        self,
        store: FlagStore,
        cache: FlagCache | None = None,
        environment: str = "production",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._cache = cache or FlagCache(InMemoryCacheClient())
        self._environment = environment
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_config(cls, config: FeatureBoxConfig) -> FeatureBox:
        """設定からストアとキャッシュを組み立てる。"""
        store = SqlFlagStore.from_url(config.database.url)
        if config.database.create_schema:
            store.create_schema()

        client: CacheClient
        if config.cache.backend == "redis":
            from .redis_cache import RedisCacheClient

            client = RedisCacheClient.from_url(config.cache.redis_url)
        else:
            client = InMemoryCacheClient()

        cache = FlagCache(client, ttl=config.cache.ttl_seconds, prefix=config.cache.key_prefix)
        return cls(store, cache, environment=config.app.environment)

    @property
    def environment(self) -> str:
        return self._environment

    def is_enabled(
        self, name: str, context: RequestContext | Mapping[str, Any] | None = None
    ) -> bool:
        """フラグが有効かどうかを判定する。存在しないフラグは無効。"""
        record = self.get(name)
        if record is None or not record.enabled:
            return False
        if not record.conditions:
            return True
        return evaluate(
            record.conditions,
            RequestContext.coerce(context),
            now=self._clock(),
            environment=self._environment,
        )

    def is_disabled(
        self, name: str, context: RequestContext | Mapping[str, Any] | None = None
    ) -> bool:
        return not self.is_enabled(name, context)

    def enable(
        self, name: str, conditions: ConditionSet | Mapping[str, Any] | None = None
    ) -> bool:
        """フラグを有効化する（存在しなければ作成）。

        Returns:
            保存とキャッシュ破棄の両方に成功したら True
        """
        if not name:
            logger.warning("flag_name_empty")
            return False
        try:
            condition_set = (
                conditions
                if isinstance(conditions, ConditionSet)
                else ConditionSet.from_mapping(conditions)
            )
        except FeatureBoxError as e:
            logger.warning("flag_conditions_invalid", flag=name, error=str(e))
            return False
        if not self._store.upsert(name, True, condition_set):
            return False
        logger.info("flag_enabled", flag=name, conditions=condition_set.to_dict())
        return self._invalidate(name)

    def disable(self, name: str) -> bool:
        """フラグを無効化する。存在しないフラグに対しては何もせず True。"""
        if not name:
            logger.warning("flag_name_empty")
            return False
        if not self._store.set_enabled(name, False):
            return False
        logger.info("flag_disabled", flag=name)
        return self._invalidate(name)

    def get(self, name: str) -> FlagRecord | None:
        """フラグを取得する。存在しない、または読み込みに失敗したら None。"""
        if not name:
            return None
        try:
            data = self._cache.get_flag(name, lambda: _dump(self._store.read(name)))
        except FeatureBoxError as e:
            logger.error("flag_read_failed", flag=name, error=str(e))
            return None
        if data is None:
            return None
        try:
            return FlagRecord.from_dict(data)
        except (KeyError, TypeError, ValueError, FeatureBoxError) as e:
            self._discard(self._cache.flag_key(name), e)
        try:
            return self._store.read(name)
        except FeatureBoxError as e:
            logger.error("flag_read_failed", flag=name, error=str(e))
            return None

    def all(self) -> list[FlagRecord]:
        """全フラグを取得する。読み込みに失敗したら空リスト。"""
        try:
            data = self._cache.get_all(
                lambda: [record.to_dict() for record in self._store.read_all()]
            )
        except FeatureBoxError as e:
            logger.error("flag_read_all_failed", error=str(e))
            return []
        try:
            return [FlagRecord.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, FeatureBoxError) as e:
            self._discard(self._cache.all_key, e)
        try:
            return self._store.read_all()
        except FeatureBoxError as e:
            logger.error("flag_read_all_failed", error=str(e))
            return []

    def _discard(self, key: str, error: Exception) -> None:
        """形の合わないキャッシュ値を破棄する。次の読み込みでストアから作り直される。"""
        logger.warning("cache_entry_malformed", key=key, error=repr(error))
        try:
            self._cache.invalidate(key)
        except FeatureBoxError as e:
            logger.warning("cache_invalidation_failed", key=key, error=str(e))

    def _invalidate(self, name: str) -> bool:
        """書き込み後のキャッシュ破棄。全件キーと書き込んだフラグのキーは必須。"""
        try:
            names = self._store.names()
        except FeatureBoxError as e:
            logger.warning("flag_names_unavailable", error=str(e))
            names = []
        try:
            self._cache.invalidate_all([name, *names])
        except FeatureBoxError as e:
            logger.error("cache_invalidation_failed", flag=name, error=str(e))
            return False
        return True


def _dump(record: FlagRecord | None) -> dict[str, Any] | None:
    return record.to_dict() if record is not None else None
