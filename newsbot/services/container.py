"""依赖组装：由入口根据 AppConfig 构建一次，之后按引用传递"""

from dataclasses import dataclass
from typing import Optional

from ..config_loader import AppConfig
from ..domain.digest.models import LlmCatalogSeed
from ..domain.digest.render import TelegramMarkdownV2Assembler
from ..domain.news.published_at import PublishedAtResolver
from ..domain.ports import DigestPublisher, NewsScraper, TextGenerator
from ..infrastructure.boot_stamp import BootStamp
from ..infrastructure.crawlers.mako import MakoScraper
from ..infrastructure.db import (
    Database,
    SqlDigestRepository,
    SqlFilterRepository,
    SqlLlmCatalogRepository,
    SqlLlmConfigRepository,
    SqlNewsRepository,
)
from ..infrastructure.llm.gemini import GeminiTextGenerator
from ..infrastructure.notifiers.telegram import TelegramPublisher
from .boot_sequence import BootSequence
from .digest_service import PublishDigestService
from .health_service import HealthService
from .ingest_service import NewsIngestService
from .news_query_service import GetNewsItemsByIds


@dataclass
class Container:
    config: AppConfig
    db: Database
    news: SqlNewsRepository
    digests: SqlDigestRepository
    filters: SqlFilterRepository
    llm_config: SqlLlmConfigRepository
    llm_catalog: SqlLlmCatalogRepository
    ingest: NewsIngestService
    publishing: PublishDigestService
    health: HealthService
    news_query: GetNewsItemsByIds
    boot_stamp: BootStamp

    def boot_sequence(self) -> BootSequence:
        """存活检查 -> 抓取 -> 发布"""
        return BootSequence(
            [
                ("health", self.health.get_status),
                ("ingest", self.ingest.run),
                ("publishing", self.publishing.run),
            ]
        )

    async def init(self) -> None:
        await self.db.init_db()
        await self.llm_catalog.seed_defaults(
            [LlmCatalogSeed(llm_name="gemini", llm_alias="Gemini", model_name=self.config.publishing.llm_model)]
        )

    async def close(self) -> None:
        await self.db.dispose()


def build_container(
    config: AppConfig,
    scraper: Optional[NewsScraper] = None,
    generator: Optional[TextGenerator] = None,
    publisher: Optional[DigestPublisher] = None,
) -> Container:
    """未传入的外部端口使用默认适配器（Mako / Gemini / Telegram）"""
    db = Database(config.database)
    news = SqlNewsRepository(db)
    digests = SqlDigestRepository(db)
    filters = SqlFilterRepository(db)
    llm_config = SqlLlmConfigRepository(db)

    ingest = NewsIngestService(
        scraper=scraper or MakoScraper(config.ingest.scraper, max_items=config.ingest.max_items),
        store=news,
        resolver=PublishedAtResolver(config.ingest.timezone),
        source=config.ingest.source,
    )
    publishing = PublishDigestService(
        news_store=news,
        digest_store=digests,
        generator=generator or GeminiTextGenerator(config.publishing.gemini),
        publisher=publisher or TelegramPublisher(config.publishing.telegram),
        assembler=TelegramMarkdownV2Assembler(),
        default_model=config.publishing.llm_model,
        filter_store=filters,
        llm_config_store=llm_config,
    )

    return Container(
        config=config,
        db=db,
        news=news,
        digests=digests,
        filters=filters,
        llm_config=llm_config,
        llm_catalog=SqlLlmCatalogRepository(db),
        ingest=ingest,
        publishing=publishing,
        health=HealthService(),
        news_query=GetNewsItemsByIds(news),
        boot_stamp=BootStamp(config.boot_stamp_dir),
    )
