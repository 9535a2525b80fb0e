"""调度器管理模块"""

from typing import Any, Callable, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger


class SchedulerManager:
    """进程内定时任务（默认关闭，由 SCHEDULER_ENABLED 开启）"""

    def __init__(self, timezone: str = "Asia/Jerusalem"):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = timezone

    def create_scheduler(self) -> AsyncIOScheduler:
        if self.scheduler is not None and self.scheduler.running:
            logger.warning("[调度器] 检测到已有调度器在运行，正在关闭...")
            self.scheduler.shutdown(wait=False)

        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        logger.info("[调度器] 调度器实例已创建")
        return self.scheduler

    def add_job(
        self,
        func: Callable,
        trigger: Union[str, CronTrigger],
        job_id: str,
        **kwargs: Any,
    ) -> None:
        """
        添加定时任务

        Args:
            func: 要执行的协程函数
            trigger: cron 表达式（5 段）或 CronTrigger
            job_id: 任务ID
        """
        if self.scheduler is None:
            raise RuntimeError("调度器未初始化，请先调用 create_scheduler()")

        if isinstance(trigger, str):
            trigger = CronTrigger.from_crontab(trigger, timezone=self.timezone)

        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **kwargs,
        )
        logger.info(f"[调度器] 已添加任务: {job_id}")

    def start(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("调度器未初始化，请先调用 create_scheduler()")

        self.scheduler.start()
        all_jobs = self.scheduler.get_jobs()
        logger.info(f"[调度器] 调度器已启动，当前共有 {len(all_jobs)} 个定时任务")
        for job in all_jobs:
            next_run = getattr(job, "next_run_time", None)
            logger.info(f"[调度器]   - {job.id}: 下次执行时间 = {next_run}")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler is None:
            return
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=wait)
                logger.info("[调度器] 调度器已关闭")
        finally:
            self.scheduler = None

    def get_job(self, job_id: str) -> Optional[Any]:
        if self.scheduler is None:
            return None
        return self.scheduler.get_job(job_id)

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running
