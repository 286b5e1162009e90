"""設定型定義と設定ファイル読み込み"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import FeatureBoxError, FeatureBoxErrorCodes


class AppSection(BaseModel):
    """アプリケーション基本設定。"""

    environment: str = "production"


class DatabaseSection(BaseModel):
    """フラグストアの接続設定。"""

    url: str = "sqlite:///featurebox.db"
    create_schema: bool = True


class CacheSection(BaseModel):
    """キャッシュ設定。"""

    backend: Literal["memory", "redis"] = "memory"
    ttl_seconds: float = Field(default=300.0, gt=0)
    key_prefix: str = Field(default="featurebox", min_length=1)
    redis_url: str = "redis://localhost:6379/0"


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class FeatureBoxConfig(BaseModel):
    """featurebox 設定全体。"""

    app: AppSection = Field(default_factory=AppSection)
    database: DatabaseSection = Field(default_factory=DatabaseSection)
    cache: CacheSection = Field(default_factory=CacheSection)
    log: LogSection = Field(default_factory=LogSection)


# 環境変数 → (セクション, キー)。ファイルの値より優先する。
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "FEATUREBOX_ENV": ("app", "environment"),
    "FEATUREBOX_DATABASE_URL": ("database", "url"),
    "FEATUREBOX_REDIS_URL": ("cache", "redis_url"),
}


def load_config(
    base_path: Path | None = None,
    env_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> FeatureBoxConfig:
    """featurebox 設定を読み込む。

    優先順位は 環境変数 > env_path > base_path > デフォルト。
    env_path は存在する場合のみ読み、セクション単位でキーを上書きする。
    environ を省略した場合は os.environ を参照する。
    """
    sections: dict[str, Any] = {}
    paths = [base_path] if base_path is not None else []
    if env_path is not None and env_path.exists():
        paths.append(env_path)
    for path in paths:
        for name, values in _read_sections(path).items():
            current = sections.get(name)
            if isinstance(current, dict) and isinstance(values, dict):
                sections[name] = {**current, **values}
            else:
                sections[name] = values

    env = os.environ if environ is None else environ
    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        target = sections.setdefault(section, {})
        if value and isinstance(target, dict):
            target[key] = value

    try:
        return FeatureBoxConfig.model_validate(sections)
    except ValidationError as e:
        raise FeatureBoxError(
            code=FeatureBoxErrorCodes.CONFIG_VALIDATION,
            message=f"Invalid featurebox config: {e}",
            cause=e,
        ) from e


def _read_sections(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise FeatureBoxError(
            code=FeatureBoxErrorCodes.CONFIG_READ_FILE,
            message=f"Cannot read featurebox config {path}",
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise FeatureBoxError(
            code=FeatureBoxErrorCodes.CONFIG_PARSE_YAML,
            message=f"Invalid YAML in featurebox config {path}",
            cause=e,
        ) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FeatureBoxError(
            code=FeatureBoxErrorCodes.CONFIG_PARSE_YAML,
            message=f"featurebox config {path} must contain sections, got {type(data).__name__}",
        )
    return data
