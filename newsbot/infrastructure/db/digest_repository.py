from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.digest.models import DigestRecord, PendingDigest
from ...domain.ports import DigestStore
from ...errors import ConflictError, NotFoundError, ValidationError
from .database import Database
from .models import Digest, NewsItem, utc_now


def _to_record(row: Digest) -> DigestRecord:
    return DigestRecord(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        digest_text=row.digest_text,
        is_published=bool(row.is_published),
        source_item_ids=list(row.source_item_ids or []),
        source_news_texts=list(row.source_news_texts or []),
        llm_model=row.llm_model,
        published_at=row.published_at,
        publisher_external_id=row.publisher_external_id,
    )


class SqlDigestRepository(DigestStore):
    """摘要表的读写"""

    def __init__(self, db: Database):
        self.db = db

    async def create_pending_digest(self, digest: PendingDigest) -> int:
        """
        Persist a pending digest and flip ``processed`` on its source items atomically.

        任一步失败整个事务回滚：不会出现没有摘要却已标记处理的新闻。
        """
        if not digest.source_item_ids:
            raise ValidationError("Digest must reference at least one news item")

        async with self.db.session_factory() as session:
            async with session.begin():
                row = Digest(
                    digest_text=digest.digest_text,
                    is_published=False,
                    source_item_ids=list(digest.source_item_ids),
                    source_items_count=len(digest.source_item_ids),
                    source_news_texts=list(digest.source_news_texts),
                    llm_model=digest.llm_model,
                )
                session.add(row)
                await session.flush()
                await self._mark_processed(session, digest.source_item_ids)
                return row.id

    async def _mark_processed(self, session: AsyncSession, ids: Sequence[int]) -> None:
        """只翻转仍未处理的行；数量不符说明有 id 不存在或已被其他进程处理"""
        unique_ids = sorted(set(ids))
        result = await session.execute(
            update(NewsItem)
            .where(NewsItem.id.in_(unique_ids), NewsItem.processed.is_(False))
            .values(processed=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(unique_ids):
            raise ConflictError(
                f"Expected to mark {len(unique_ids)} news items processed, marked {result.rowcount}: "
                f"some ids are missing or already processed"
            )

    async def mark_published(
        self,
        digest_id: int,
        external_id: Optional[str] = None,
        digest_text: Optional[str] = None,
    ) -> None:
        now = utc_now()
        values = {
            "is_published": True,
            "published_at": now,
            "publisher_external_id": external_id,
            "updated_at": now,
        }
        if digest_text is not None:
            values["digest_text"] = digest_text

        async with self.db.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Digest).where(Digest.id == digest_id).values(**values)
                )
                if not result.rowcount:
                    raise NotFoundError(f"Digest {digest_id} not found")

    async def list_digests(self, limit: int = 50) -> List[DigestRecord]:
        async with self.db.session_factory() as session:
            result = await session.execute(
                select(Digest).order_by(Digest.id.desc()).limit(limit)
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def get_digest(self, digest_id: int) -> Optional[DigestRecord]:
        async with self.db.session_factory() as session:
            row = await session.get(Digest, digest_id)
            return _to_record(row) if row is not None else None
