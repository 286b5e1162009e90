"""featurebox のログ出力設定"""

from __future__ import annotations

import logging
import sys

import structlog

LIBRARY_NAME = "featurebox"


def new_logger(
    level: str = "INFO", format: str = "json", environment: str | None = None
) -> structlog.stdlib.BoundLogger:
    """structlog を設定し、library と environment を束縛したロガーを返す。

    ログは CLI の表示と混ざらないよう stderr に出す。
    format が "json" 以外ならコンソール向けに整形する。
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
            if format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    log = structlog.stdlib.get_logger("k1s0_featurebox").bind(library=LIBRARY_NAME)
    if environment is not None:
        log = log.bind(environment=environment)
    return log
