"""
News digest bot CLI

Usage:
    newsbot ingest [--dry-run] [--headful] [--slowmo-ms N]
    newsbot publish
    newsbot boot
    newsbot health
    newsbot serve [--host HOST] [--port PORT]

每个命令以 JSON 输出结果；操作抛出异常时记录日志并以非零状态码退出。
boot 命令总是以 0 退出，并报告每一步的状态。
"""

import asyncio
import json
import sys
from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional

import click
from fastapi.encoders import jsonable_encoder
from loguru import logger

from .config_loader import AppConfig, load_app_config, load_env_files
from .infrastructure import setup_logging
from .services.container import Container, build_container


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(jsonable_encoder(value), ensure_ascii=False, indent=2))


async def _with_container(config: AppConfig, action: Callable[[Container], Awaitable[Any]]) -> Any:
    container = build_container(config)
    await container.init()
    try:
        return await action(container)
    finally:
        await container.close()


def _run(ctx: click.Context, action: Callable[[Container], Awaitable[Any]], name: str) -> None:
    config: AppConfig = ctx.obj["config"]
    try:
        result = asyncio.run(_with_container(config, action))
    except Exception as e:  # noqa: BLE001
        logger.exception(f"[{name}] 执行失败: {e}")
        sys.exit(1)
    _echo_json(result)


@click.group()
@click.pass_context
def cli(ctx):
    """News digest bot command line interface"""
    ctx.ensure_object(dict)
    load_env_files()
    config = load_app_config()
    setup_logging(config.logging)
    ctx.obj["config"] = config


@cli.command()
@click.option("--dry-run", is_flag=True, help="只统计，不写入数据库")
@click.option("--headful", is_flag=True, help="显示浏览器窗口（调试用）")
@click.option("--slowmo-ms", type=float, default=None, help="Playwright 操作间隔（毫秒）")
@click.option("--respect-boot-stamp", is_flag=True, help="启动序列刚执行过时跳过本次执行")
@click.pass_context
def ingest(ctx, dry_run: bool, headful: bool, slowmo_ms: Optional[float], respect_boot_stamp: bool):
    """抓取最新新闻并入库"""
    config: AppConfig = ctx.obj["config"]
    if headful or slowmo_ms is not None:
        scraper_config = replace(
            config.ingest.scraper,
            headless=False if headful else config.ingest.scraper.headless,
            slow_mo_ms=slowmo_ms if slowmo_ms is not None else config.ingest.scraper.slow_mo_ms,
        )
        ctx.obj["config"] = replace(config, ingest=replace(config.ingest, scraper=scraper_config))

    async def action(container: Container):
        if respect_boot_stamp and not container.boot_stamp.should_run_on_start():
            return {"skipped": True, "reason": "boot_stamp"}
        return await container.ingest.run(dry_run=dry_run)

    _run(ctx, action, "抓取")


@cli.command()
@click.option("--respect-boot-stamp", is_flag=True, help="启动序列刚执行过时跳过本次执行")
@click.pass_context
def publish(ctx, respect_boot_stamp: bool):
    """生成并发布摘要"""

    async def action(container: Container):
        if respect_boot_stamp and not container.boot_stamp.should_run_on_start():
            return {"skipped": True, "reason": "boot_stamp"}
        return await container.publishing.run()

    _run(ctx, action, "发布")


@cli.command()
@click.pass_context
def boot(ctx):
    """按顺序执行 存活检查 -> 抓取 -> 发布，单步失败不影响后续步骤"""

    async def action(container: Container):
        container.boot_stamp.write()
        return await container.boot_sequence().run()

    _run(ctx, action, "启动序列")


@cli.command()
@click.pass_context
def health(ctx):
    """存活检查"""

    async def action(container: Container):
        return await container.health.get_status()

    _run(ctx, action, "健康检查")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.pass_context
def serve(ctx, host: str, port: int):
    """启动 HTTP 服务"""
    import uvicorn

    from .main import create_app

    uvicorn.run(create_app(ctx.obj["config"]), host=host, port=port)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
