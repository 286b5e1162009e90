"""k1s0 featurebox library."""

from .cache import DEFAULT_TTL_SECONDS, FlagCache
from .cache_client import CacheClient, InMemoryCacheClient
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
from .config import FeatureBoxConfig, load_config
from .evaluator import evaluate
from .exceptions import FeatureBoxError, FeatureBoxErrorCodes
from .logger import new_logger
from .memory import InMemoryFlagStore
from .models import FlagRecord, RequestContext
from .service import FeatureBox
from .sql_store import SqlFlagStore
from .store import FlagStore

__all__ = [
    "CacheClient",
    "Condition",
    "ConditionSet",
    "CustomCondition",
    "DEFAULT_TTL_SECONDS",
    "EndDateCondition",
    "EnvironmentsCondition",
    "FeatureBox",
    "FeatureBoxConfig",
    "FeatureBoxError",
    "FeatureBoxErrorCodes",
    "FlagCache",
    "FlagRecord",
    "FlagStore",
    "InMemoryCacheClient",
    "InMemoryFlagStore",
    "InvalidCondition",
    "RequestContext",
    "SqlFlagStore",
    "StartDateCondition",
    "UnknownCondition",
    "UserIdsCondition",
    "UserRolesCondition",
    "evaluate",
    "load_config",
    "new_logger",
]
