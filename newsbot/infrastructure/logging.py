"""日志配置模块"""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..config_loader import LoggingConfig

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    配置日志系统：控制台 + 按天轮转的日志文件
    """
    config = config or LoggingConfig()

    logger.remove()
    logger.add(sys.stderr, level=config.level)

    if not config.to_file:
        return

    logs_dir = Path(config.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # 主日志文件（所有日志），每天午夜轮转，保留30天
    logger.add(
        logs_dir / "app_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        level=config.level,
        format=_FILE_FORMAT,
        enqueue=True,
    )

    # 错误日志文件（只记录 ERROR 及以上级别）
    logger.add(
        logs_dir / "error_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="90 days",
        compression="zip",
        encoding="utf-8",
        level="ERROR",
        format=_FILE_FORMAT,
        enqueue=True,
    )

    # 流水线专用日志：只记录带 event 字段的结构化事件
    def pipeline_filter(record):
        return "event" in record["extra"]

    logger.add(
        logs_dir / "pipeline_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="90 days",
        compression="zip",
        encoding="utf-8",
        level="INFO",
        filter=pipeline_filter,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
        enqueue=True,
    )

    logger.info(f"日志系统已配置，日志文件保存在 {logs_dir}/ 目录")


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return repr(value) if " " in value or not value else value
    return str(value)


def log_event(event: str, level: str = "INFO", **fields: Any) -> None:
    """
    输出一条结构化事件。

    ``record["extra"]`` 中包含 ``event`` 以及所有字段，消息正文为
    ``"<event> key=value ..."``。
    """
    parts = [event]
    parts.extend(f"{key}={_format_value(value)}" for key, value in fields.items())
    # depth=1: 记录调用方的位置而不是本函数
    logger.bind(event=event, **fields).opt(depth=1).log(level, " ".join(parts))
