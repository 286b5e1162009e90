"""条件評価エンジン

副作用のない純粋関数。全ての条件が成立した場合のみ True（AND）。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, assert_never

from .conditions import (
    Condition,
    ConditionSet,
    CustomCondition,
    EndDateCondition,
    EnvironmentsCondition,
    InvalidCondition,
    StartDateCondition,
    UnknownCondition,
    UserIdsCondition,
    UserRolesCondition,
)
from .models import RequestContext


def evaluate(
    conditions: ConditionSet,
    context: RequestContext,
    *,
    now: datetime,
    environment: str,
) -> bool:
    """条件セットをコンテキストに対して評価する。

    Args:
        conditions: 評価する条件セット
        context: リクエストコンテキスト（属性とプリンシパルのロール）
        now: 現在時刻。タイムゾーンなしの場合は UTC とみなす
        environment: 現在のデプロイ環境名

    Returns:
        全条件が成立すれば True
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return all(
        check_condition(condition, context, now=now, environment=environment)
        for condition in conditions.conditions
    )


def check_condition(
    condition: Condition,
    context: RequestContext,
    *,
    now: datetime,
    environment: str,
) -> bool:
    """単一条件を評価する。"""
    match condition:
        case EnvironmentsCondition(environments=environments):
            return environment in environments
        case UserRolesCondition(roles=roles):
            return context.user_id is not None and context.effective_role in roles
        case UserIdsCondition(user_ids=user_ids):
            user_id = context.user_id
            return user_id is not None and any(strict_equals(user_id, uid) for uid in user_ids)
        case StartDateCondition(start=start):
            return now >= start
        case EndDateCondition(end=end):
            return now <= end
        case CustomCondition(expected=expected):
            return _matches_custom(expected, context.attributes)
        case UnknownCondition():
            return True
        case InvalidCondition():
            return False
        case _:
            assert_never(condition)


def _matches_custom(expected: Mapping[str, Any], attributes: Mapping[str, Any]) -> bool:
    for key, value in expected.items():
        actual = attributes.get(key)
        if actual is None or not strict_equals(actual, value):
            return False
    return True


def strict_equals(actual: Any, expected: Any) -> bool:
    """型と値の両方が一致するか判定する（1 と True、1 と 1.0 は不一致）。"""
    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping) or actual.keys() != expected.keys():
            return False
        return all(strict_equals(actual[k], expected[k]) for k in expected)
    if isinstance(expected, Sequence) and not isinstance(expected, str):
        if (
            not isinstance(actual, Sequence)
            or isinstance(actual, str)
            or len(actual) != len(expected)
        ):
            return False
        return all(strict_equals(a, e) for a, e in zip(actual, expected))
    return type(actual) is type(expected) and actual == expected
