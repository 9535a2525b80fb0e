"""启动时间戳：主机启动时只由启动序列执行一次任务，而不是各个定时任务并行执行"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

BOOT_STAMP_FILENAME = "news-bot.boot.stamp"
BOOT_STAMP_WINDOW_SECONDS = 30.0


class BootStamp:
    """启动时间戳文件"""

    def __init__(self, directory: Optional[str], window_seconds: float = BOOT_STAMP_WINDOW_SECONDS):
        self.directory = Path(directory) if directory else None
        self.window_seconds = window_seconds

    @property
    def path(self) -> Optional[Path]:
        if self.directory is None:
            return None
        return self.directory / BOOT_STAMP_FILENAME

    def write(self) -> None:
        path = self.path
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(datetime.now(timezone.utc).isoformat(), encoding="utf-8")
        logger.info(f"[启动序列] 已写入启动时间戳: {path}")

    def age_seconds(self) -> Optional[float]:
        path = self.path
        if path is None:
            return None
        try:
            return time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return None

    def should_run_on_start(self) -> bool:
        """时间戳在窗口期内说明启动序列刚刚执行过，跳过首次执行"""
        age = self.age_seconds()
        if age is not None and age < self.window_seconds:
            logger.info(f"[启动序列] 启动时间戳仅 {age:.1f}s，跳过本次启动执行")
            return False
        return True
