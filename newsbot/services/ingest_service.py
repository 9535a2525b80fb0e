"""新闻抓取入库服务"""

import time
from typing import Dict, List, Optional

from ..domain.news.hashing import Sha256Hasher, canonicalize_hash_input
from ..domain.news.models import IngestResult, NewNewsItem, NewsItemHashInput, ScrapedNewsItem
from ..domain.news.normalize import format_utc_iso, normalize_published_at, normalize_raw_text
from ..domain.news.published_at import PublishedAtResolver
from ..domain.ports import NewsScraper, NewsStore
from ..infrastructure.logging import log_event


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class NewsIngestService:
    """
    抓取 -> 归一化 -> 计算指纹 -> 去重 -> 写入。

    抓取、存储、哈希中的任何异常都直接抛给调用方，不做重试。
    """

    def __init__(
        self,
        scraper: NewsScraper,
        store: NewsStore,
        resolver: PublishedAtResolver,
        source: str,
        hasher: Optional[Sha256Hasher] = None,
    ):
        self.scraper = scraper
        self.store = store
        self.resolver = resolver
        self.source = source
        self.hasher = hasher or Sha256Hasher()

    def _prepare(self, scraped: List[ScrapedNewsItem]) -> List[NewNewsItem]:
        """归一化并计算指纹；丢弃空文本，同一批次内的重复项只保留第一条"""
        prepared: Dict[str, NewNewsItem] = {}
        for item in scraped:
            raw_text = normalize_raw_text(item.text or "")
            if not raw_text:
                continue

            if item.published_at is not None:
                published_at = normalize_published_at(item.published_at)
            else:
                published_at = self.resolver.resolve(item.published_at_text)

            hash_input = NewsItemHashInput(
                source=self.source,
                raw_text=raw_text,
                published_at=format_utc_iso(published_at) if published_at is not None else None,
            )
            fingerprint = self.hasher.hash(hash_input)
            if fingerprint in prepared:
                continue

            prepared[fingerprint] = NewNewsItem(
                source=self.source,
                fingerprint=fingerprint,
                raw_text=raw_text,
                published_at=published_at,
                payload_json=canonicalize_hash_input(hash_input),
                media_type=item.media_type,
                media_url=item.media_url,
            )
        return list(prepared.values())

    async def run(self, dry_run: bool = False) -> IngestResult:
        started = time.monotonic()
        log_event("ingestion:news:start", source=self.source, dry_run=dry_run, duration_ms=0)

        try:
            scraped = await self.scraper.scrape_latest(self.source)
            log_event(
                "ingestion:news:scraped",
                source=self.source,
                scraped_count=len(scraped),
                duration_ms=_elapsed_ms(started),
            )

            candidates = self._prepare(scraped)
            existing = await self.store.find_existing_fingerprints([c.fingerprint for c in candidates])
            new_items = [c for c in candidates if c.fingerprint not in existing]
            log_event(
                "ingestion:news:filtered",
                source=self.source,
                candidate_count=len(candidates),
                existing_count=len(existing),
                new_items_count=len(new_items),
                duration_ms=_elapsed_ms(started),
            )

            if not new_items:
                result = IngestResult(
                    source=self.source,
                    dry_run=dry_run,
                    scraped_count=len(scraped),
                    new_items_count=0,
                    stored_count=0,
                    duration_ms=_elapsed_ms(started),
                )
                log_event("ingestion:news:no_new_items", **vars(result))
                return result

            stored_count = 0
            if not dry_run:
                stored_count = await self.store.insert_many_ignore_duplicates(new_items)

            result = IngestResult(
                source=self.source,
                dry_run=dry_run,
                scraped_count=len(scraped),
                new_items_count=len(new_items),
                stored_count=stored_count,
                duration_ms=_elapsed_ms(started),
            )
            log_event("ingestion:news:done", **vars(result))
            return result
        except Exception as exc:
            log_event(
                "ingestion:news:error",
                level="ERROR",
                source=self.source,
                error=str(exc),
                duration_ms=_elapsed_ms(started),
            )
            raise
