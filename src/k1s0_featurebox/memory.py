"""InMemoryFlagStore 実装"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from .conditions import ConditionSet
from .models import FlagRecord
from .store import FlagStore


@dataclass
class _Row:
    enabled: bool
    conditions: str
    created_at: datetime
    updated_at: datetime


class InMemoryFlagStore(FlagStore):
    """テスト・組み込み用インメモリフラグストア。

    条件は SQL ストアと同じく JSON テキストとして保持する。
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._rows: dict[str, _Row] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(UTC))

    def upsert(self, name: str, enabled: bool, conditions: ConditionSet) -> bool:
        self.put_raw(name, enabled, conditions.to_json())
        return True

    def put_raw(self, name: str, enabled: bool, conditions: str) -> None:
        """保存形式のまま行を書き込む。"""
        now = self._clock()
        with self._lock:
            row = self._rows.get(name)
            if row is None:
                self._rows[name] = _Row(enabled, conditions, now, now)
            else:
                row.enabled = enabled
                row.conditions = conditions
                row.updated_at = now

    def set_enabled(self, name: str, enabled: bool) -> bool:
        with self._lock:
            row = self._rows.get(name)
            if row is not None:
                row.enabled = enabled
                row.updated_at = self._clock()
        return True

    def read(self, name: str) -> FlagRecord | None:
        with self._lock:
            row = self._rows.get(name)
            if row is None:
                return None
            return _to_record(name, row)

    def read_all(self) -> list[FlagRecord]:
        with self._lock:
            return [_to_record(name, row) for name, row in self._rows.items()]

    def names(self) -> list[str]:
        with self._lock:
            return list(self._rows)


def _to_record(name: str, row: _Row) -> FlagRecord:
    return FlagRecord(
        name=name,
        enabled=row.enabled,
        conditions=ConditionSet.from_json(row.conditions),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
