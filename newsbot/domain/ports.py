"""
Ports used by the pipelines.

每个端口只有一种能力，由 infrastructure 中的适配器实现，
服务层只依赖这里的抽象类型。
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from .digest.models import (
    ContentFilter,
    DigestRecord,
    GeneratedText,
    LlmCatalogSeed,
    LlmModelEntry,
    LlmProvider,
    LlmSettings,
    PendingDigest,
    PublishReceipt,
)
from .news.models import NewNewsItem, NewsItemRecord, ScrapedNewsItem, SelectedNewsItem


class NewsScraper(ABC):
    @abstractmethod
    async def scrape_latest(self, source: str) -> List[ScrapedNewsItem]:
        """按页面顺序返回候选新闻，不做哈希和持久化"""


class TextGenerator(ABC):
    @abstractmethod
    async def generate(self, prompt: str, model: str) -> GeneratedText:
        ...


class DigestPublisher(ABC):
    @abstractmethod
    async def publish(self, text: str) -> PublishReceipt:
        ...


class DigestPostAssembler(ABC):
    @abstractmethod
    def assemble(self, items: Sequence[str]) -> str:
        ...


class NewsStore(ABC):
    @abstractmethod
    async def find_existing_fingerprints(self, fingerprints: Sequence[str]) -> set:
        ...

    @abstractmethod
    async def insert_many_ignore_duplicates(self, items: Sequence[NewNewsItem]) -> int:
        """返回实际写入的行数"""

    @abstractmethod
    async def select_unprocessed(self) -> List[SelectedNewsItem]:
        ...

    @abstractmethod
    async def find_by_ids(self, ids: Sequence[int]) -> List[NewsItemRecord]:
        ...

    @abstractmethod
    async def mark_filtered_and_processed(self, matches: Dict[int, List[int]]) -> int:
        ...


class DigestStore(ABC):
    @abstractmethod
    async def create_pending_digest(self, digest: PendingDigest) -> int:
        """写入摘要并把来源新闻标记为已处理（同一事务）"""

    @abstractmethod
    async def mark_published(
        self,
        digest_id: int,
        external_id: Optional[str] = None,
        digest_text: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    async def list_digests(self, limit: int = 50) -> List[DigestRecord]:
        ...

    @abstractmethod
    async def get_digest(self, digest_id: int) -> Optional[DigestRecord]:
        ...


class FilterStore(ABC):
    @abstractmethod
    async def list_filters(self) -> List[ContentFilter]:
        ...

    @abstractmethod
    async def create_filter(self, name: str, pattern: str) -> ContentFilter:
        ...

    @abstractmethod
    async def update_filter(self, filter_id: int, name: str, pattern: str) -> ContentFilter:
        ...

    @abstractmethod
    async def delete_filter(self, filter_id: int) -> None:
        ...


class LlmConfigStore(ABC):
    @abstractmethod
    async def get(self) -> Optional[LlmSettings]:
        ...

    @abstractmethod
    async def upsert(self, model: str, instructions: str) -> LlmSettings:
        ...


class LlmCatalogStore(ABC):
    """模型提供方与模型目录"""

    @abstractmethod
    async def seed_defaults(self, seeds: Sequence[LlmCatalogSeed]) -> None:
        ...

    @abstractmethod
    async def list_llms(self) -> List[LlmProvider]:
        ...

    @abstractmethod
    async def list_models(self, llm_id: int) -> List[LlmModelEntry]:
        ...

    @abstractmethod
    async def create_llm(self, name: str, alias: str) -> LlmProvider:
        ...

    @abstractmethod
    async def update_llm(self, llm_id: int, name: Optional[str] = None, alias: Optional[str] = None) -> LlmProvider:
        ...

    @abstractmethod
    async def delete_llm(self, llm_id: int) -> None:
        ...

    @abstractmethod
    async def create_model(self, llm_id: int, name: str) -> LlmModelEntry:
        ...

    @abstractmethod
    async def update_model(
        self,
        model_id: int,
        llm_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> LlmModelEntry:
        ...

    @abstractmethod
    async def delete_model(self, model_id: int) -> None:
        ...
