from typing import Dict, List, Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from ...domain.news.models import NewNewsItem, NewsItemRecord, SelectedNewsItem
from ...domain.ports import NewsStore
from .database import Database
from .models import NewsItem, utc_now


def _to_record(row: NewsItem) -> NewsItemRecord:
    return NewsItemRecord(
        id=row.id,
        source=row.source,
        raw_text=row.raw_text,
        published_at=row.published_at,
        scraped_at=row.scraped_at,
        processed=bool(row.processed),
        filtered=bool(row.filtered),
        filter_ids=list(row.filter_ids or []),
        media_type=row.media_type,
        media_url=row.media_url,
    )


class SqlNewsRepository(NewsStore):
    """新闻表的读写"""

    def __init__(self, db: Database):
        self.db = db

    async def find_existing_fingerprints(self, fingerprints: Sequence[str]) -> set:
        if not fingerprints:
            return set()
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(NewsItem.fingerprint).where(NewsItem.fingerprint.in_(list(fingerprints)))
            )
            return set(result.scalars().all())

    async def insert_many_ignore_duplicates(self, items: Sequence[NewNewsItem]) -> int:
        """
        Insert items in one transaction, silently skipping fingerprint conflicts.

        返回实际写入的行数；并发进程抢先写入的重复项不会报错，只是不计数。
        """
        if not items:
            return 0

        scraped_at = utc_now()
        inserted = 0
        async with self.db.session_factory() as session:
            async with session.begin():
                for item in items:
                    stmt = (
                        sqlite_insert(NewsItem)
                        .values(
                            source=item.source,
                            fingerprint=item.fingerprint,
                            raw_text=item.raw_text,
                            payload_json=item.payload_json,
                            published_at=item.published_at,
                            scraped_at=scraped_at,
                            processed=False,
                            filtered=False,
                            media_type=item.media_type,
                            media_url=item.media_url,
                        )
                        .on_conflict_do_nothing(index_elements=["fingerprint"])
                    )
                    result = await session.execute(stmt)
                    inserted += max(result.rowcount or 0, 0)
        return inserted

    async def select_unprocessed(self) -> List[SelectedNewsItem]:
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(NewsItem.id, NewsItem.raw_text)
                .where(NewsItem.processed.is_(False))
                .order_by(NewsItem.id)
            )
            return [SelectedNewsItem(id=row.id, raw_text=row.raw_text) for row in result]

    async def find_by_ids(self, ids: Sequence[int]) -> List[NewsItemRecord]:
        if not ids:
            return []
        async with self.db.session_factory() as session:
            result = await session.execute(select(NewsItem).where(NewsItem.id.in_(list(ids))))
            return [_to_record(row) for row in result.scalars().all()]

    async def mark_filtered_and_processed(self, matches: Dict[int, List[int]]) -> int:
        """被过滤的新闻一次性标记为 filtered + processed"""
        if not matches:
            return 0
        updated = 0
        async with self.db.session_factory() as session:
            async with session.begin():
                for news_id, filter_ids in matches.items():
                    result = await session.execute(
                        update(NewsItem)
                        .where(NewsItem.id == news_id)
                        .values(filtered=True, processed=True, filter_ids=sorted(set(filter_ids)))
                    )
                    updated += result.rowcount or 0
        return updated
