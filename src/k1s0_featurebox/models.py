"""featurebox データモデル"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .conditions import ConditionSet

DEFAULT_ROLE = "user"


@dataclass
class FlagRecord:
    """永続化されたフィーチャーフラグ。"""

    name: str
    enabled: bool = False
    conditions: ConditionSet = field(default_factory=ConditionSet)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        """キャッシュ・表示用の JSON 互換辞書に変換する。"""
        return {
            "name": self.name,
            "is_enabled": self.enabled,
            "conditions": self.conditions.to_dict(),
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FlagRecord:
        return cls(
            name=data["name"],
            enabled=bool(data.get("is_enabled", False)),
            conditions=ConditionSet.from_mapping(data.get("conditions") or {}),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
        )


@dataclass
class RequestContext:
    """フラグ評価コンテキスト。

    attributes: 呼び出し元が渡す任意のキー・値（user_id, plan, region など）
    role: 認証済みプリンシパルのロール。未設定なら "user" とみなす。
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    role: str | None = None

    @property
    def user_id(self) -> Any:
        return self.attributes.get("user_id")

    @property
    def effective_role(self) -> str:
        return self.role or DEFAULT_ROLE

    @classmethod
    def coerce(cls, context: RequestContext | Mapping[str, Any] | None) -> RequestContext:
        """辞書または None を RequestContext に変換する。辞書の "role" はロールとして扱う。"""
        if context is None:
            return cls()
        if isinstance(context, RequestContext):
            return context
        return cls(attributes=dict(context), role=context.get("role"))


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
