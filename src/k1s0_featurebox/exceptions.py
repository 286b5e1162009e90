"""featurebox ライブラリの例外型定義"""

from __future__ import annotations


class FeatureBoxError(Exception):
    """featurebox ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FeatureBoxErrorCodes:
    """FeatureBoxError のエラーコード定数。"""

    STORAGE_ERROR: str = "STORAGE_ERROR"
    CACHE_ERROR: str = "CACHE_ERROR"
    INVALID_CONDITIONS: str = "INVALID_CONDITIONS"
    CONFIG_READ_FILE: str = "CONFIG_READ_FILE_ERROR"
    CONFIG_PARSE_YAML: str = "CONFIG_PARSE_YAML_ERROR"
    CONFIG_VALIDATION: str = "CONFIG_VALIDATION_ERROR"
