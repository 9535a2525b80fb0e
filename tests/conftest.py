"""测试公共夹具"""
from typing import List

import pytest
import pytest_asyncio
from loguru import logger

from newsbot.config_loader import DatabaseConfig
from newsbot.infrastructure.db import (
    Database,
    SqlDigestRepository,
    SqlFilterRepository,
    SqlLlmCatalogRepository,
    SqlLlmConfigRepository,
    SqlNewsRepository,
)


@pytest_asyncio.fixture
async def database(tmp_path):
    """每个测试一个独立的 SQLite 文件"""
    db = Database(DatabaseConfig(sqlite_path=str(tmp_path / "news-bot.sqlite")))
    await db.init_db()
    yield db
    await db.dispose()


@pytest.fixture
def news_repo(database):
    return SqlNewsRepository(database)


@pytest.fixture
def digest_repo(database):
    return SqlDigestRepository(database)


@pytest.fixture
def filter_repo(database):
    return SqlFilterRepository(database)


@pytest.fixture
def llm_config_repo(database):
    return SqlLlmConfigRepository(database)


@pytest.fixture
def llm_catalog_repo(database):
    return SqlLlmCatalogRepository(database)


@pytest.fixture
def events():
    """捕获 log_event 输出的结构化事件（record["extra"]）"""
    captured: List[dict] = []
    handler_id = logger.add(
        lambda message: captured.append(dict(message.record["extra"])),
        level="DEBUG",
        filter=lambda record: "event" in record["extra"],
    )
    yield captured
    logger.remove(handler_id)
