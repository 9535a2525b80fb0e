from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class ScrapedNewsItem:
    """
    抓取器返回的一条候选新闻（尚未归一化、未计算指纹）。

    ``published_at`` 为绝对时间；若来源只给出 ``HH:mm`` 之类的片段，
    则放在 ``published_at_text`` 中，由抓取流程统一解析。
    """

    text: str
    published_at: Optional[datetime] = None
    published_at_text: Optional[str] = None
    media_type: Optional[str] = None  # video / image
    media_url: Optional[str] = None


@dataclass(frozen=True)
class NewsItemHashInput:
    """计算指纹用的规范化三元组"""

    source: str
    raw_text: str
    published_at: Optional[str]  # UTC ISO 字符串，未知时为 None


@dataclass
class NewNewsItem:
    """待写入的新闻（scraped_at 由存储层在写入时设置）"""

    source: str
    fingerprint: str
    raw_text: str
    published_at: Optional[datetime]
    payload_json: str
    media_type: Optional[str] = None
    media_url: Optional[str] = None


@dataclass
class NewsItemRecord:
    id: int
    source: str
    raw_text: str
    published_at: Optional[datetime]
    scraped_at: datetime
    processed: bool
    filtered: bool = False
    filter_ids: List[int] = field(default_factory=list)
    media_type: Optional[str] = None
    media_url: Optional[str] = None


@dataclass(frozen=True)
class SelectedNewsItem:
    """待生成摘要的未处理新闻"""

    id: int
    raw_text: str


@dataclass
class IngestResult:
    source: str
    dry_run: bool
    scraped_count: int
    new_items_count: int
    stored_count: int
    duration_ms: int
