"""HTTP 入口"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

# Playwright 在 Windows 上需要支持子进程的事件循环
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from fastapi import FastAPI
from loguru import logger

from . import __version__
from .config_loader import AppConfig, load_app_config, load_env_files
from .infrastructure import SchedulerManager, setup_logging
from .presentation.routes import api
from .services.container import Container, build_container


def register_jobs(scheduler_manager: SchedulerManager, container: Container) -> None:
    """注册抓取与发布两个定时任务"""
    config = container.config
    scheduler_manager.add_job(
        container.ingest.run,
        trigger=config.ingest.cron_schedule,
        job_id="news_ingest",
    )
    scheduler_manager.add_job(
        container.publishing.run,
        trigger=config.publishing.cron_schedule,
        job_id="digest_publishing",
    )


def create_app(config: Optional[AppConfig] = None, container: Optional[Container] = None) -> FastAPI:
    """
    创建FastAPI应用实例

    未传入 ``container`` 时在启动阶段根据环境变量构建；关闭时总会释放数据库连接。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container is None:
            load_env_files()
            app_config = config or load_app_config()
            setup_logging(app_config.logging)
            active = build_container(app_config)
        else:
            active = container

        await active.init()
        logger.info("[数据库] 数据库初始化完成")
        app.state.container = active

        scheduler_manager: Optional[SchedulerManager] = None
        if active.config.scheduler.enabled:
            scheduler_manager = SchedulerManager(timezone=active.config.scheduler.timezone)
            scheduler_manager.create_scheduler()
            register_jobs(scheduler_manager, active)
            scheduler_manager.start()
        else:
            logger.info("[调度器] SCHEDULER_ENABLED 未开启，由外部调度器触发任务")

        yield

        if scheduler_manager is not None:
            scheduler_manager.shutdown(wait=True)
        await active.close()

    app = FastAPI(
        title="News Digest Bot",
        description="新闻抓取、摘要生成与发布",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        """健康检查接口"""
        return await app.state.container.health.get_status()

    app.include_router(api.router, prefix="/api", tags=["api"])
    return app


app = create_app()
