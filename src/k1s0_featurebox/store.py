"""FlagStore 抽象基底クラス"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .conditions import ConditionSet
from .models import FlagRecord


class FlagStore(ABC):
    """フラグ永続化ストア抽象基底クラス。

    書き込み系は失敗時に例外を送出せず False を返す。
    読み込み系は失敗時に FeatureBoxError(STORAGE_ERROR) を送出する。
    """

    @abstractmethod
    def upsert(self, name: str, enabled: bool, conditions: ConditionSet) -> bool:
        """フラグを挿入または更新する。成功したら True。"""
        ...

    @abstractmethod
    def set_enabled(self, name: str, enabled: bool) -> bool:
        """有効状態のみ更新する。存在しないフラグに対しては何もせず True。"""
        ...

    @abstractmethod
    def read(self, name: str) -> FlagRecord | None:
        """フラグを取得する。存在しなければ None。"""
        ...

    @abstractmethod
    def read_all(self) -> list[FlagRecord]:
        """全フラグを取得する。"""
        ...

    @abstractmethod
    def names(self) -> list[str]:
        """全フラグ名を取得する。"""
        ...
