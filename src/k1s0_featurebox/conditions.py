"""条件セットの型定義とパース

保存形式は JSON オブジェクト（条件種別 → ペイロード）。
読み込み時に種別ごとの型付きバリアントへ変換する。
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import structlog

from .exceptions import FeatureBoxError, FeatureBoxErrorCodes

logger = structlog.get_logger(__name__)

ENVIRONMENTS = "environments"
USER_ROLES = "user_roles"
USER_IDS = "user_ids"
START_DATE = "start_date"
END_DATE = "end_date"
CUSTOM = "custom"

# 評価順序。
KNOWN_KINDS: tuple[str, ...] = (
    ENVIRONMENTS,
    USER_ROLES,
    USER_IDS,
    START_DATE,
    END_DATE,
    CUSTOM,
)


@dataclass(frozen=True)
class EnvironmentsCondition:
    """現在の環境名がリストに含まれること。"""

    environments: tuple[str, ...]


@dataclass(frozen=True)
class UserRolesCondition:
    """user_id があり、かつプリンシパルのロールがリストに含まれること。"""

    roles: tuple[str, ...]


@dataclass(frozen=True)
class UserIdsCondition:
    """user_id があり、かつその値がリストに含まれること。"""

    user_ids: tuple[Any, ...]


@dataclass(frozen=True)
class StartDateCondition:
    """現在時刻が開始日時以降であること。"""

    start: datetime


@dataclass(frozen=True)
class EndDateCondition:
    """現在時刻が終了日時以前であること。"""

    end: datetime


@dataclass(frozen=True)
class CustomCondition:
    """コンテキストの各キーが期待値と厳密に一致すること。"""

    expected: Mapping[str, Any]


@dataclass(frozen=True)
class UnknownCondition:
    """未対応の条件種別。評価時は無視される。"""

    kind: str
    payload: Any


@dataclass(frozen=True)
class InvalidCondition:
    """既知の種別だがペイロードが不正なもの。評価時は常に不成立。"""

    kind: str
    payload: Any
    reason: str


Condition = (
    EnvironmentsCondition
    | UserRolesCondition
    | UserIdsCondition
    | StartDateCondition
    | EndDateCondition
    | CustomCondition
    | UnknownCondition
    | InvalidCondition
)


def parse_datetime(value: Any) -> datetime:
    """日付・日時を UTC の aware datetime に変換する。

    タイムゾーンなしの値は UTC とみなす。日付のみの場合はその日の 00:00 UTC。

    Raises:
        ValueError: 解釈できない値の場合
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"unsupported date value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _as_tuple(kind: str, payload: Any) -> tuple[Any, ...]:
    if isinstance(payload, (list, tuple)):
        return tuple(payload)
    raise ValueError(f"{kind} must be a list, got {type(payload).__name__}")


def parse_condition(kind: str, payload: Any) -> Condition:
    """単一の条件種別とペイロードをバリアントに変換する。"""
    try:
        if kind == ENVIRONMENTS:
            return EnvironmentsCondition(_as_tuple(kind, payload))
        if kind == USER_ROLES:
            return UserRolesCondition(_as_tuple(kind, payload))
        if kind == USER_IDS:
            return UserIdsCondition(_as_tuple(kind, payload))
        if kind == START_DATE:
            return StartDateCondition(parse_datetime(payload))
        if kind == END_DATE:
            return EndDateCondition(parse_datetime(payload))
        if kind == CUSTOM:
            if not isinstance(payload, Mapping):
                raise ValueError(f"custom must be an object, got {type(payload).__name__}")
            return CustomCondition(dict(payload))
    except ValueError as e:
        logger.warning("invalid_condition", kind=kind, payload=payload, error=str(e))
        return InvalidCondition(kind=kind, payload=payload, reason=str(e))
    return UnknownCondition(kind=kind, payload=payload)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass(frozen=True)
class ConditionSet:
    """フラグに紐づく条件セット。

    raw は保存されている JSON 互換の辞書そのもの、conditions はそれを
    評価順に並べた型付きバリアント。null のペイロードは未指定として扱う。
    """

    raw: Mapping[str, Any] = field(default_factory=dict)
    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> ConditionSet:
        """辞書から条件セットを生成する。

        Raises:
            FeatureBoxError: 辞書でない、または JSON に変換できない場合
        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise FeatureBoxError(
                code=FeatureBoxErrorCodes.INVALID_CONDITIONS,
                message=f"conditions must be an object, got {type(raw).__name__}",
            )
        try:
            normalized = json.loads(json.dumps(dict(raw), default=_json_default))
        except (TypeError, ValueError) as e:
            raise FeatureBoxError(
                code=FeatureBoxErrorCodes.INVALID_CONDITIONS,
                message=f"conditions are not JSON serializable: {e}",
                cause=e,
            ) from e
        return cls(raw=normalized, conditions=_parse_all(normalized))

    @classmethod
    def from_json(cls, text: str | None) -> ConditionSet:
        """保存済み JSON テキストから条件セットを生成する。

        壊れたデータは空の条件セットとして扱う。
        """
        if not text:
            return cls()
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.warning("malformed_conditions", error=str(e))
            return cls()
        if not isinstance(data, dict):
            logger.warning("malformed_conditions", error="conditions payload is not an object")
            return cls()
        return cls(raw=data, conditions=_parse_all(data))

    def to_json(self) -> str:
        return json.dumps(dict(self.raw), default=_json_default)

    def to_dict(self) -> dict[str, Any]:
        return json.loads(self.to_json())

    def __bool__(self) -> bool:
        return bool(self.raw)


def _parse_all(raw: Mapping[str, Any]) -> tuple[Condition, ...]:
    known = [parse_condition(k, raw[k]) for k in KNOWN_KINDS if raw.get(k) is not None]
    unknown = [
        UnknownCondition(kind=k, payload=v) for k, v in raw.items() if k not in KNOWN_KINDS
    ]
    return tuple(known + unknown)
