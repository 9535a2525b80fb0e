"""摘要生成与发布服务"""

import time
from typing import List, Optional, Tuple

from ..domain.digest.filters import apply_filters
from ..domain.digest.models import PendingDigest, PublishDigestResult
from ..domain.digest.parser import parse_digest_items
from ..domain.digest.prompt import DEFAULT_DIGEST_INSTRUCTIONS, build_digest_prompt
from ..domain.digest.render import normalize_digest_text
from ..domain.news.models import SelectedNewsItem
from ..domain.ports import (
    DigestPostAssembler,
    DigestPublisher,
    DigestStore,
    FilterStore,
    LlmConfigStore,
    NewsStore,
    TextGenerator,
)
from ..infrastructure.logging import log_event


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class PublishDigestService:
    """
    Select unprocessed news, summarize them through the language model and publish the post.

    流程（严格按顺序）：

    1. 读取所有未处理新闻（按 id 升序）
    2. 应用正则过滤器，命中的新闻标记为 filtered + processed 并从提示词中排除
    3. 构造提示词，调用一次模型（不重试）
    4. 解析模型输出，组装帖子
    5. 在同一事务中写入待发布摘要并标记来源新闻为已处理
    6. 摘要条目为空时到此结束（合法终态）；否则发布并标记为已发布

    任何异常都会记录 ``publishing:digest:error`` 事件后继续抛出。
    第 5 步之后发布失败，会留下一条可追溯、未发布的摘要。
    """

    def __init__(
        self,
        news_store: NewsStore,
        digest_store: DigestStore,
        generator: TextGenerator,
        publisher: DigestPublisher,
        assembler: DigestPostAssembler,
        default_model: str,
        filter_store: Optional[FilterStore] = None,
        llm_config_store: Optional[LlmConfigStore] = None,
        default_instructions: str = DEFAULT_DIGEST_INSTRUCTIONS,
    ):
        self.news_store = news_store
        self.digest_store = digest_store
        self.generator = generator
        self.publisher = publisher
        self.assembler = assembler
        self.default_model = default_model
        self.filter_store = filter_store
        self.llm_config_store = llm_config_store
        self.default_instructions = default_instructions

    async def _resolve_settings(self) -> Tuple[str, str]:
        """数据库中的配置优先于进程配置"""
        if self.llm_config_store is not None:
            settings = await self.llm_config_store.get()
            if settings is not None:
                return settings.model, settings.instructions
        return self.default_model, self.default_instructions

    async def _apply_filters(self, selected: List[SelectedNewsItem]) -> Tuple[List[SelectedNewsItem], int]:
        if self.filter_store is None:
            return selected, 0

        filters = await self.filter_store.list_filters()
        if not filters:
            return selected, 0

        outcome = apply_filters(selected, filters)
        if outcome.matched:
            await self.news_store.mark_filtered_and_processed(outcome.matched)
            log_event(
                "publishing:digest:filtered",
                filtered_count=len(outcome.matched),
                kept_count=len(outcome.kept),
            )
        return outcome.kept, len(outcome.matched)

    async def run(self) -> PublishDigestResult:
        started = time.monotonic()
        log_event("publishing:digest:start", duration_ms=0)

        try:
            selected = await self.news_store.select_unprocessed()
            selected_count = len(selected)
            if not selected:
                result = PublishDigestResult(
                    selected_news_count=0,
                    digest_id=None,
                    is_published=False,
                    duration_ms=_elapsed_ms(started),
                )
                log_event("publishing:digest:no_unprocessed_items", **vars(result))
                return result

            selected, filtered_count = await self._apply_filters(selected)
            if not selected:
                result = PublishDigestResult(
                    selected_news_count=selected_count,
                    digest_id=None,
                    is_published=False,
                    duration_ms=_elapsed_ms(started),
                    filtered_count=filtered_count,
                )
                log_event("publishing:digest:all_filtered", **vars(result))
                return result

            model, instructions = await self._resolve_settings()
            raw_texts = [item.raw_text for item in selected]
            prompt = build_digest_prompt(instructions, raw_texts)

            generated = await self.generator.generate(prompt, model)
            digest_items = parse_digest_items(generated.text)
            digest_text = normalize_digest_text(self.assembler.assemble(digest_items))

            digest_id = await self.digest_store.create_pending_digest(
                PendingDigest(
                    digest_text=digest_text,
                    source_item_ids=[item.id for item in selected],
                    source_news_texts=raw_texts,
                    llm_model=generated.model or model,
                )
            )

            if not digest_items:
                result = PublishDigestResult(
                    selected_news_count=selected_count,
                    digest_id=digest_id,
                    is_published=False,
                    duration_ms=_elapsed_ms(started),
                    filtered_count=filtered_count,
                )
                log_event("publishing:digest:no_digest_items", **vars(result))
                return result

            receipt = await self.publisher.publish(digest_text)
            rewritten = receipt.sent_text if receipt.sent_text and receipt.sent_text != digest_text else None
            await self.digest_store.mark_published(digest_id, receipt.external_id, rewritten)

            result = PublishDigestResult(
                selected_news_count=selected_count,
                digest_id=digest_id,
                is_published=True,
                duration_ms=_elapsed_ms(started),
                filtered_count=filtered_count,
            )
            log_event(
                "publishing:digest:done",
                digest_items_count=len(digest_items),
                external_id=receipt.external_id,
                **vars(result),
            )
            return result
        except Exception as exc:
            log_event(
                "publishing:digest:error",
                level="ERROR",
                error=str(exc),
                duration_ms=_elapsed_ms(started),
            )
            raise
