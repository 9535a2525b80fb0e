from typing import Any, List, Optional, Sequence

from ..domain.news.models import NewsItemRecord
from ..domain.ports import NewsStore
from ..errors import ValidationError


def validate_ids(ids: Sequence[Any]) -> List[int]:
    """每个 id 必须是正整数（bool 不算）"""
    validated: List[int] = []
    for raw in ids:
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise ValidationError(f"Invalid news item id: {raw!r}")
        validated.append(raw)
    return validated


class GetNewsItemsByIds:
    """按给定顺序返回新闻，缺失的 id 对应 None，结果长度与输入一致"""

    def __init__(self, store: NewsStore):
        self.store = store

    async def execute(self, ids: Sequence[Any]) -> List[Optional[NewsItemRecord]]:
        validated = validate_ids(ids)
        if not validated:
            return []
        found = {record.id: record for record in await self.store.find_by_ids(sorted(set(validated)))}
        return [found.get(news_id) for news_id in validated]
