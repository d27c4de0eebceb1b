"""
Logging setup for holdkv.

This module configures loguru as the single logging backend
and routes stdlib logging (aiosqlite, asyncio) through it.
Library code only binds named loggers; sinks are installed by the
application through setup_logging_dev().
"""

from __future__ import annotations
import logging
import sys
from typing import Any, Optional
from loguru import logger

DEFAULT_NAME = "holdkv"

# ---- stdlib logging → loguru ----
class InterceptHandler(logging.Handler):
    """stdlib 로그 레코드를 loguru로 전달하는 핸들러"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(name=record.name).opt(
            depth=6, exception=record.exc_info
        ).log(level, record.getMessage())

def _hook_stdlib_logging(quiet_level: int = logging.WARNING) -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # aiosqlite는 커서 단위로 debug 로그를 남긴다
    for name in ("aiosqlite", "asyncio"):
        std = logging.getLogger(name)
        std.handlers = [InterceptHandler()]
        std.setLevel(quiet_level)
        std.propagate = False

# ---- 콘솔 포맷 ----
DEV_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<cyan>{extra[name]}</cyan> | "
    "<level>{message}</level>"
)

def setup_logging_dev(log_level: str = "INFO", sink: Optional[Any] = None,
                      serialize: bool = False) -> int:
    """
    loguru sink를 하나 설치하고 stdlib logging을 흡수합니다.

    Args:
        log_level: 최소 로그 레벨
        sink: 출력 대상 (None이면 stderr)
        serialize: True면 JSON 한 줄 형식으로 출력

    Returns:
        설치된 sink id
    """
    logger.remove()
    logger.configure(extra={"name": DEFAULT_NAME})
    sink_id = logger.add(
        sys.stderr if sink is None else sink,
        format=DEV_FORMAT,
        colorize=sink is None and not serialize,
        serialize=serialize,
        backtrace=True,
        diagnose=False,
        level=log_level.upper(),
    )
    _hook_stdlib_logging()
    return sink_id

def get_logger(name: str = DEFAULT_NAME, **ctx):
    """이름과 컨텍스트를 바인딩한 logger 반환."""
    return logger.bind(name=name, **ctx)

def with_context(**ctx):
    """블록 안의 모든 로그에 컨텍스트(topic 등)를 붙입니다."""
    return logger.contextualize(**ctx)
