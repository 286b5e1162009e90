"""featurebox テスト共通フィクスチャ"""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest
from k1s0_featurebox import (
    CacheClient,
    ConditionSet,
    FeatureBoxError,
    FeatureBoxErrorCodes,
    FlagRecord,
    InMemoryFlagStore,
)
from k1s0_featurebox.config import ENV_OVERRIDES


class FakeClock:
    """手動で進める時計。"""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """手動で進める単調増加時計。"""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FailingCacheClient(CacheClient):
    """全操作が失敗するキャッシュクライアント。"""

    def get(self, key: str) -> str | None:
        raise FeatureBoxError(FeatureBoxErrorCodes.CACHE_ERROR, "down")

    def set(self, key: str, value: str, ttl: float | None = None) -> None:
        raise FeatureBoxError(FeatureBoxErrorCodes.CACHE_ERROR, "down")

    def delete(self, key: str) -> bool:
        raise FeatureBoxError(FeatureBoxErrorCodes.CACHE_ERROR, "down")


class BrokenStore(InMemoryFlagStore):
    """読み書きが失敗するストア。"""

    def upsert(self, name: str, enabled: bool, conditions: ConditionSet) -> bool:
        return False

    def set_enabled(self, name: str, enabled: bool) -> bool:
        return False

    def read(self, name: str) -> FlagRecord | None:
        raise FeatureBoxError(FeatureBoxErrorCodes.STORAGE_ERROR, "db down")

    def read_all(self) -> list[FlagRecord]:
        raise FeatureBoxError(FeatureBoxErrorCodes.STORAGE_ERROR, "db down")

    def names(self) -> list[str]:
        raise FeatureBoxError(FeatureBoxErrorCodes.STORAGE_ERROR, "db down")


@pytest.fixture
def clock() -> Iterator[FakeClock]:
    yield FakeClock()


@pytest.fixture
def monotonic() -> Iterator[FakeMonotonic]:
    yield FakeMonotonic()


@pytest.fixture(autouse=True)
def clean_featurebox_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """実行環境の FEATUREBOX_* 変数を設定読み込みに持ち込まない。"""
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
