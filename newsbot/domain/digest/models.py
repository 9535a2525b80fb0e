from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class DigestRecord:
    """已持久化的摘要帖子"""

    id: int
    created_at: datetime
    updated_at: datetime
    digest_text: str
    is_published: bool
    source_item_ids: List[int] = field(default_factory=list)
    source_news_texts: List[str] = field(default_factory=list)
    llm_model: Optional[str] = None
    published_at: Optional[datetime] = None
    publisher_external_id: Optional[str] = None


@dataclass
class PendingDigest:
    """待写入的摘要（is_published 固定为 False）"""

    digest_text: str
    source_item_ids: List[int]
    source_news_texts: List[str]
    llm_model: Optional[str] = None


@dataclass(frozen=True)
class GeneratedText:
    text: str
    model: Optional[str] = None


@dataclass(frozen=True)
class PublishReceipt:
    """
    发布结果。

    ``external_id`` 可能缺失（例如对方返回体中没有消息 ID）；
    ``sent_text`` 为实际发出的文本，与组装文本不同时会回写到摘要。
    """

    external_id: Optional[str] = None
    sent_text: Optional[str] = None


@dataclass
class PublishDigestResult:
    selected_news_count: int
    digest_id: Optional[int]
    is_published: bool
    duration_ms: int
    filtered_count: int = 0


@dataclass
class ContentFilter:
    """正则内容过滤器"""

    id: int
    name: str
    pattern: str
    created_at: datetime
    updated_at: datetime


@dataclass
class LlmSettings:
    """数据库中的单行模型配置"""

    model: str
    instructions: str
    updated_at: Optional[datetime] = None


@dataclass
class LlmProvider:
    """模型目录中的提供方（name 唯一，alias 用于展示）"""

    id: int
    name: str
    alias: str


@dataclass
class LlmModelEntry:
    id: int
    llm_id: int
    name: str


@dataclass(frozen=True)
class LlmCatalogSeed:
    """启动时幂等写入的目录条目"""

    llm_name: str
    llm_alias: str
    model_name: str
