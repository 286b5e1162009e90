"""SqlFlagStore 実装（SQLAlchemy Core）"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from .conditions import ConditionSet
from .exceptions import FeatureBoxError, FeatureBoxErrorCodes
from .models import FlagRecord
from .store import FlagStore

logger = structlog.get_logger(__name__)

metadata = MetaData()

features_table = Table(
    "features",
    metadata,
    Column("name", String(255), primary_key=True),
    Column("is_enabled", Boolean, nullable=False, default=False),
    Column("conditions", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=True),
    Column("updated_at", DateTime(timezone=True), nullable=True),
)


class SqlFlagStore(FlagStore):
    """features テーブルに対するフラグストア。"""

    def __init__(self, engine: Engine, clock: Callable[[], datetime] | None = None) -> None:
        self._engine = engine
        self._clock = clock or (lambda: datetime.now(UTC))

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SqlFlagStore:
        """接続 URL からストアを生成する。"""
        return cls(create_engine(url, **engine_kwargs))

    def create_schema(self) -> None:
        """features テーブルが無ければ作成する。

        Raises:
            FeatureBoxError: DDL の実行に失敗した場合
        """
        try:
            metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise FeatureBoxError(
                code=FeatureBoxErrorCodes.STORAGE_ERROR,
                message=f"Failed to create features table: {e}",
                cause=e,
            ) from e

    def upsert(self, name: str, enabled: bool, conditions: ConditionSet) -> bool:
        now = self._clock()
        payload = conditions.to_json()
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    update(features_table)
                    .where(features_table.c.name == name)
                    .values(is_enabled=enabled, conditions=payload, updated_at=now)
                )
                if result.rowcount == 0:
                    conn.execute(
                        insert(features_table).values(
                            name=name,
                            is_enabled=enabled,
                            conditions=payload,
                            created_at=now,
                            updated_at=now,
                        )
                    )
        except SQLAlchemyError as e:
            logger.error("flag_upsert_failed", flag=name, error=str(e))
            return False
        return True

    def set_enabled(self, name: str, enabled: bool) -> bool:
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    update(features_table)
                    .where(features_table.c.name == name)
                    .values(is_enabled=enabled, updated_at=self._clock())
                )
        except SQLAlchemyError as e:
            logger.error("flag_update_failed", flag=name, error=str(e))
            return False
        return True

    def read(self, name: str) -> FlagRecord | None:
        stmt = select(features_table).where(features_table.c.name == name)
        try:
            with self._engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise _read_error(e) from e
        return _to_record(row) if row is not None else None

    def read_all(self) -> list[FlagRecord]:
        stmt = select(features_table).order_by(features_table.c.name)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise _read_error(e) from e
        return [_to_record(row) for row in rows]

    def names(self) -> list[str]:
        try:
            with self._engine.connect() as conn:
                return list(conn.execute(select(features_table.c.name)).scalars())
        except SQLAlchemyError as e:
            raise _read_error(e) from e


def _read_error(e: SQLAlchemyError) -> FeatureBoxError:
    return FeatureBoxError(
        code=FeatureBoxErrorCodes.STORAGE_ERROR,
        message=f"Failed to read features: {e}",
        cause=e,
    )


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite はタイムゾーン情報を保持しない
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _to_record(row: Row[Any]) -> FlagRecord:
    return FlagRecord(
        name=row.name,
        enabled=bool(row.is_enabled),
        conditions=ConditionSet.from_json(row.conditions),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )
