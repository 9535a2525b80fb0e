"""正则内容过滤"""

import re
from dataclasses import dataclass
from typing import Dict, List, Pattern, Sequence, Tuple

from ...errors import ValidationError
from ..news.models import SelectedNewsItem
from .models import ContentFilter

_FLAGS = re.IGNORECASE | re.UNICODE


def compile_pattern(pattern: str) -> Pattern[str]:
    """编译过滤表达式，非法时抛出 ValidationError"""
    if not pattern or not pattern.strip():
        raise ValidationError("Filter pattern must not be empty")
    try:
        return re.compile(pattern, _FLAGS)
    except re.error as exc:
        raise ValidationError(f"Invalid filter pattern {pattern!r}: {exc}") from exc


@dataclass
class FilterOutcome:
    kept: List[SelectedNewsItem]
    # news id -> 命中的过滤器 id（升序去重）
    matched: Dict[int, List[int]]


def apply_filters(items: Sequence[SelectedNewsItem], filters: Sequence[ContentFilter]) -> FilterOutcome:
    """拆分为保留项与被过滤项，保留项顺序不变"""
    compiled: List[Tuple[int, Pattern[str]]] = [(f.id, compile_pattern(f.pattern)) for f in filters]

    kept: List[SelectedNewsItem] = []
    matched: Dict[int, List[int]] = {}
    for item in items:
        hits = sorted({filter_id for filter_id, regex in compiled if regex.search(item.raw_text)})
        if hits:
            matched[item.id] = hits
        else:
            kept.append(item)
    return FilterOutcome(kept=kept, matched=matched)
