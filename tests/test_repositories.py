"""存储层与查询服务测试"""
import pytest
from sqlalchemy import text

from newsbot.config_loader import DatabaseConfig
from newsbot.domain.digest.models import LlmCatalogSeed, PendingDigest
from newsbot.domain.news.models import NewNewsItem
from newsbot.errors import ConflictError, NotFoundError, ValidationError
from newsbot.infrastructure.db import Database, SqlNewsRepository
from newsbot.services.news_query_service import GetNewsItemsByIds


def make_item(index: int, text: str = None) -> NewNewsItem:
    return NewNewsItem(
        source="mako-channel12",
        fingerprint=f"fp-{index}",
        raw_text=text or f"item {index}",
        published_at=None,
        payload_json="{}",
    )


class TestNewsRepository:
    @pytest.mark.asyncio
    async def test_insert_or_ignore(self, news_repo):
        assert await news_repo.insert_many_ignore_duplicates([make_item(1), make_item(2)]) == 2
        assert await news_repo.insert_many_ignore_duplicates([make_item(2), make_item(3)]) == 1
        assert await news_repo.find_existing_fingerprints(["fp-1", "fp-3", "fp-9"]) == {"fp-1", "fp-3"}

    @pytest.mark.asyncio
    async def test_select_unprocessed_in_id_order(self, news_repo, digest_repo):
        await news_repo.insert_many_ignore_duplicates([make_item(i) for i in range(1, 4)])
        await digest_repo.create_pending_digest(
            PendingDigest(digest_text="d", source_item_ids=[2], source_news_texts=["item 2"])
        )
        selected = await news_repo.select_unprocessed()
        assert [(s.id, s.raw_text) for s in selected] == [(1, "item 1"), (3, "item 3")]


class TestGetNewsItemsByIds:
    @pytest.mark.asyncio
    async def test_preserves_order_and_length(self, news_repo):
        await news_repo.insert_many_ignore_duplicates([make_item(1), make_item(2), make_item(3)])

        result = await GetNewsItemsByIds(news_repo).execute([3, 99, 1])

        assert [r.id if r else None for r in result] == [3, None, 1]
        assert result[0].raw_text == "item 3"

    @pytest.mark.asyncio
    async def test_duplicate_ids(self, news_repo):
        await news_repo.insert_many_ignore_duplicates([make_item(1)])
        result = await GetNewsItemsByIds(news_repo).execute([1, 1])
        assert [r.id for r in result] == [1, 1]

    @pytest.mark.asyncio
    async def test_empty_input(self, news_repo):
        assert await GetNewsItemsByIds(news_repo).execute([]) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ids", [[0], [-1], [1, "2"], [True], [1.5]])
    async def test_invalid_ids(self, news_repo, ids):
        with pytest.raises(ValidationError):
            await GetNewsItemsByIds(news_repo).execute(ids)


class TestDigestRepository:
    @pytest.mark.asyncio
    async def test_requires_source_items(self, digest_repo):
        with pytest.raises(ValidationError):
            await digest_repo.create_pending_digest(
                PendingDigest(digest_text="d", source_item_ids=[], source_news_texts=[])
            )

    @pytest.mark.asyncio
    async def test_missing_source_item_rolls_back(self, news_repo, digest_repo):
        """引用不存在的新闻时整个事务回滚"""
        await news_repo.insert_many_ignore_duplicates([make_item(1)])

        with pytest.raises(ConflictError):
            await digest_repo.create_pending_digest(PendingDigest("d", [1, 999], ["item 1", "?"]))

        assert [s.id for s in await news_repo.select_unprocessed()] == [1]
        assert await digest_repo.list_digests() == []

    @pytest.mark.asyncio
    async def test_already_processed_items_conflict(self, news_repo, digest_repo):
        """同一批新闻不能生成第二份摘要"""
        await news_repo.insert_many_ignore_duplicates([make_item(1), make_item(2)])
        first = await digest_repo.create_pending_digest(PendingDigest("a", [1], ["item 1"]))

        with pytest.raises(ConflictError):
            await digest_repo.create_pending_digest(PendingDigest("b", [1, 2], ["item 1", "item 2"]))

        assert [d.id for d in await digest_repo.list_digests()] == [first]
        assert [s.id for s in await news_repo.select_unprocessed()] == [2]

    @pytest.mark.asyncio
    async def test_mark_published(self, news_repo, digest_repo):
        await news_repo.insert_many_ignore_duplicates([make_item(1)])
        digest_id = await digest_repo.create_pending_digest(
            PendingDigest(digest_text="d", source_item_ids=[1], source_news_texts=["item 1"], llm_model="m")
        )
        pending = await digest_repo.get_digest(digest_id)
        assert pending.is_published is False
        assert pending.published_at is None
        assert pending.created_at.tzinfo is not None

        await digest_repo.mark_published(digest_id, external_id="7", digest_text="sent")

        published = await digest_repo.get_digest(digest_id)
        assert published.is_published is True
        assert published.publisher_external_id == "7"
        assert published.digest_text == "sent"
        assert published.source_item_ids == [1]

    @pytest.mark.asyncio
    async def test_mark_published_missing(self, digest_repo):
        with pytest.raises(NotFoundError):
            await digest_repo.mark_published(404)

    @pytest.mark.asyncio
    async def test_list_newest_first(self, news_repo, digest_repo):
        await news_repo.insert_many_ignore_duplicates([make_item(1), make_item(2)])
        first = await digest_repo.create_pending_digest(PendingDigest("a", [1], ["item 1"]))
        second = await digest_repo.create_pending_digest(PendingDigest("b", [2], ["item 2"]))
        assert [d.id for d in await digest_repo.list_digests()] == [second, first]
        assert await digest_repo.get_digest(999) is None


class TestFilterRepository:
    @pytest.mark.asyncio
    async def test_crud(self, filter_repo):
        created = await filter_repo.create_filter(" ads ", "פרסומת")
        assert created.name == "ads"

        updated = await filter_repo.update_filter(created.id, "ads", "פרסומת|sponsored")
        assert updated.pattern == "פרסומת|sponsored"
        assert [f.id for f in await filter_repo.list_filters()] == [created.id]

        await filter_repo.delete_filter(created.id)
        assert await filter_repo.list_filters() == []

    @pytest.mark.asyncio
    async def test_validation(self, filter_repo):
        await filter_repo.create_filter("ads", "x")
        with pytest.raises(ValidationError):
            await filter_repo.create_filter("ads", "y")
        with pytest.raises(ValidationError):
            await filter_repo.create_filter("", "y")
        with pytest.raises(ValidationError):
            await filter_repo.create_filter("broken", "(")

    @pytest.mark.asyncio
    async def test_missing_filter(self, filter_repo):
        with pytest.raises(NotFoundError):
            await filter_repo.update_filter(5, "a", "b")
        with pytest.raises(NotFoundError):
            await filter_repo.delete_filter(5)


class TestLlmConfigRepository:
    @pytest.mark.asyncio
    async def test_upsert_single_row(self, llm_config_repo):
        assert await llm_config_repo.get() is None

        await llm_config_repo.upsert("m1", "i1")
        await llm_config_repo.upsert("m2", "i2")

        settings = await llm_config_repo.get()
        assert (settings.model, settings.instructions) == ("m2", "i2")

    @pytest.mark.asyncio
    async def test_rejects_empty(self, llm_config_repo):
        with pytest.raises(ValidationError):
            await llm_config_repo.upsert(" ", "i")
        with pytest.raises(ValidationError):
            await llm_config_repo.upsert("m", "")


class TestLlmCatalogRepository:
    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, llm_catalog_repo):
        seed = LlmCatalogSeed(llm_name="gemini", llm_alias="Gemini", model_name="gemini-2.0-flash-lite")
        await llm_catalog_repo.seed_defaults([seed])
        await llm_catalog_repo.seed_defaults([seed])

        [provider] = await llm_catalog_repo.list_llms()
        assert (provider.name, provider.alias) == ("gemini", "Gemini")
        assert [m.name for m in await llm_catalog_repo.list_models(provider.id)] == ["gemini-2.0-flash-lite"]

    @pytest.mark.asyncio
    async def test_seed_updates_alias_and_moves_model(self, llm_catalog_repo):
        await llm_catalog_repo.seed_defaults([LlmCatalogSeed("gemini", "Gemini", "shared-model")])
        await llm_catalog_repo.seed_defaults(
            [LlmCatalogSeed("gemini", "Google Gemini", "g-1"), LlmCatalogSeed("other", "Other", "shared-model")]
        )

        gemini, other = await llm_catalog_repo.list_llms()
        assert gemini.alias == "Google Gemini"
        assert [m.name for m in await llm_catalog_repo.list_models(gemini.id)] == ["g-1"]
        assert [m.name for m in await llm_catalog_repo.list_models(other.id)] == ["shared-model"]

    @pytest.mark.asyncio
    async def test_llm_crud(self, llm_catalog_repo):
        created = await llm_catalog_repo.create_llm(" openai ", "OpenAI")
        assert created.name == "openai"

        updated = await llm_catalog_repo.update_llm(created.id, alias="Open AI")
        assert (updated.name, updated.alias) == ("openai", "Open AI")

        model = await llm_catalog_repo.create_model(created.id, "gpt-4o-mini")
        await llm_catalog_repo.delete_llm(created.id)

        assert await llm_catalog_repo.list_llms() == []
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.update_model(model.id, name="x")

    @pytest.mark.asyncio
    async def test_model_crud(self, llm_catalog_repo):
        first = await llm_catalog_repo.create_llm("a", "A")
        second = await llm_catalog_repo.create_llm("b", "B")
        model = await llm_catalog_repo.create_model(first.id, "m1")

        moved = await llm_catalog_repo.update_model(model.id, llm_id=second.id, name="m2")
        assert (moved.llm_id, moved.name) == (second.id, "m2")
        assert await llm_catalog_repo.list_models(first.id) == []

        await llm_catalog_repo.delete_model(model.id)
        assert await llm_catalog_repo.list_models(second.id) == []

    @pytest.mark.asyncio
    async def test_validation(self, llm_catalog_repo):
        llm = await llm_catalog_repo.create_llm("a", "A")
        await llm_catalog_repo.create_model(llm.id, "m")

        with pytest.raises(ValidationError):
            await llm_catalog_repo.create_llm("a", "again")
        with pytest.raises(ValidationError):
            await llm_catalog_repo.create_llm("b", " ")
        with pytest.raises(ValidationError):
            await llm_catalog_repo.update_llm(llm.id)
        with pytest.raises(ValidationError):
            await llm_catalog_repo.create_model(llm.id, "m")
        with pytest.raises(ValidationError):
            await llm_catalog_repo.list_models(0)

    @pytest.mark.asyncio
    async def test_missing_rows(self, llm_catalog_repo):
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.list_models(7)
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.create_model(7, "m")
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.update_llm(7, name="x")
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.delete_llm(7)
        with pytest.raises(NotFoundError):
            await llm_catalog_repo.delete_model(7)

    @pytest.mark.asyncio
    async def test_configured_model_cannot_be_deleted(self, llm_catalog_repo, llm_config_repo):
        """llm_config 正在使用的模型及其提供方不可删除"""
        llm = await llm_catalog_repo.create_llm("gemini", "Gemini")
        model = await llm_catalog_repo.create_model(llm.id, "gemini-pro")
        await llm_config_repo.upsert("gemini-pro", "Be brief.")

        with pytest.raises(ConflictError):
            await llm_catalog_repo.delete_model(model.id)
        with pytest.raises(ConflictError):
            await llm_catalog_repo.delete_llm(llm.id)

        assert [m.id for m in await llm_catalog_repo.list_models(llm.id)] == [model.id]


class TestDatabaseMigrations:
    @pytest.mark.asyncio
    async def test_adds_missing_columns(self, tmp_path):
        db = Database(DatabaseConfig(sqlite_path=str(tmp_path / "old.sqlite")))
        async with db.engine.begin() as conn:
            await conn.execute(
                text(
                    "CREATE TABLE news_items ("
                    "id INTEGER PRIMARY KEY AUTOINCREMENT, source VARCHAR(200) NOT NULL, "
                    "fingerprint VARCHAR(64) NOT NULL UNIQUE, raw_text TEXT NOT NULL, "
                    "payload_json TEXT NOT NULL, published_at DATETIME, scraped_at DATETIME NOT NULL)"
                )
            )

        await db.init_db()
        repo = SqlNewsRepository(db)
        assert await repo.insert_many_ignore_duplicates([make_item(1)]) == 1
        [record] = await repo.find_by_ids([1])
        assert record.processed is False
        assert record.filter_ids == []
        await db.dispose()
