from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ...domain.digest.filters import compile_pattern
from ...domain.digest.models import ContentFilter
from ...domain.ports import FilterStore
from ...errors import NotFoundError, ValidationError
from .database import Database
from .models import Filter, utc_now


def _to_filter(row: Filter) -> ContentFilter:
    return ContentFilter(
        id=row.id,
        name=row.name,
        pattern=row.pattern,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _validate(name: str, pattern: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Filter name must not be empty")
    compile_pattern(pattern)
    return name


class SqlFilterRepository(FilterStore):
    """正则过滤器 CRUD"""

    def __init__(self, db: Database):
        self.db = db

    async def list_filters(self) -> List[ContentFilter]:
        async with self.db.session_factory() as session:
            result = await session.execute(select(Filter).order_by(Filter.id))
            return [_to_filter(row) for row in result.scalars().all()]

    async def create_filter(self, name: str, pattern: str) -> ContentFilter:
        name = _validate(name, pattern)
        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    row = Filter(name=name, pattern=pattern)
                    session.add(row)
                    await session.flush()
                    return _to_filter(row)
        except IntegrityError as exc:
            raise ValidationError(f"Filter name {name!r} already exists") from exc

    async def update_filter(self, filter_id: int, name: str, pattern: str) -> ContentFilter:
        name = _validate(name, pattern)
        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    row = await session.get(Filter, filter_id)
                    if row is None:
                        raise NotFoundError(f"Filter {filter_id} not found")
                    row.name = name
                    row.pattern = pattern
                    row.updated_at = utc_now()
                    await session.flush()
                    return _to_filter(row)
        except IntegrityError as exc:
            raise ValidationError(f"Filter name {name!r} already exists") from exc

    async def delete_filter(self, filter_id: int) -> None:
        async with self.db.session_factory() as session:
            async with session.begin():
                row = await session.get(Filter, filter_id)
                if row is None:
                    raise NotFoundError(f"Filter {filter_id} not found")
                await session.delete(row)
