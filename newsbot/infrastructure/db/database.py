"""数据库连接和会话管理"""
from pathlib import Path
from typing import Dict

from loguru import logger
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ...config_loader import DatabaseConfig
from .models import Base

# 旧数据库文件缺少的列：列名 -> DDL 类型
_NEWS_ITEM_MIGRATIONS: Dict[str, str] = {
    "processed": "BOOLEAN NOT NULL DEFAULT 0",
    "filtered": "BOOLEAN NOT NULL DEFAULT 0",
    "filter_ids": "JSON",
    "media_type": "VARCHAR(20)",
    "media_url": "TEXT",
}


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class Database:
    """
    Async engine + session factory for one database URL.

    文件型 SQLite 启用 WAL 和 busy_timeout，多进程同时写入时等待而不是直接失败。
    """

    def __init__(self, config: DatabaseConfig):
        self.url = config.database_url
        self._is_file_sqlite = self.url.startswith("sqlite") and ":memory:" not in self.url

        if self._is_file_sqlite and config.sqlite_path and not config.url:
            Path(config.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine: AsyncEngine = create_async_engine(self.url, echo=False, future=True)
        if self._is_file_sqlite:
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_db(self) -> None:
        """建表，并为旧数据库补齐新增的列"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            if not self.url.startswith("sqlite"):
                return

            result = await conn.execute(text("PRAGMA table_info(news_items)"))
            existing = {row[1] for row in result.fetchall()}
            for column, ddl in _NEWS_ITEM_MIGRATIONS.items():
                if column not in existing:
                    await conn.execute(text(f"ALTER TABLE news_items ADD COLUMN {column} {ddl}"))
                    logger.info(f"[数据库] news_items 新增列: {column}")

    async def dispose(self) -> None:
        await self.engine.dispose()
