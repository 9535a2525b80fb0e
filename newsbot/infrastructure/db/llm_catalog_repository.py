from typing import List, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.digest.models import LlmCatalogSeed, LlmModelEntry, LlmProvider
from ...domain.ports import LlmCatalogStore
from ...errors import ConflictError, NotFoundError, ValidationError
from .database import Database
from .models import Llm, LlmConfig, LlmModel

_CONFIG_ROW_ID = 1


def _to_provider(row: Llm) -> LlmProvider:
    return LlmProvider(id=row.id, name=row.name, alias=row.alias)


def _to_model(row: LlmModel) -> LlmModelEntry:
    return LlmModelEntry(id=row.id, llm_id=row.llm_id, name=row.name)


def _positive_id(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{label} must be a positive integer")
    return value


def _required_text(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} must be a non-empty string")
    return value


def _optional_text(value: Optional[str], label: str) -> Optional[str]:
    return None if value is None else _required_text(value, label)


async def _configured_model(session: AsyncSession) -> Optional[str]:
    row = await session.get(LlmConfig, _CONFIG_ROW_ID)
    return row.model if row is not None else None


class SqlLlmCatalogRepository(LlmCatalogStore):
    """
    模型提供方（llms）与模型（llm_models）目录。

    当前 llm_config 使用的模型及其提供方不允许删除。
    """

    def __init__(self, db: Database):
        self.db = db

    async def seed_defaults(self, seeds: Sequence[LlmCatalogSeed]) -> None:
        """按名称 upsert，可在每次启动时重复执行"""
        async with self.db.session_factory() as session:
            async with session.begin():
                for seed in seeds:
                    llm_name = _required_text(seed.llm_name, "Seed llm_name")
                    llm_alias = _required_text(seed.llm_alias, "Seed llm_alias")
                    model_name = _required_text(seed.model_name, "Seed model_name")

                    llm_stmt = sqlite_insert(Llm).values(name=llm_name, alias=llm_alias)
                    await session.execute(
                        llm_stmt.on_conflict_do_update(
                            index_elements=["name"], set_={"alias": llm_stmt.excluded.alias}
                        )
                    )
                    llm_id = (await session.execute(select(Llm.id).where(Llm.name == llm_name))).scalar_one()

                    model_stmt = sqlite_insert(LlmModel).values(llm_id=llm_id, name=model_name)
                    await session.execute(
                        model_stmt.on_conflict_do_update(
                            index_elements=["name"], set_={"llm_id": model_stmt.excluded.llm_id}
                        )
                    )
        logger.info(f"[模型目录] 已写入默认条目: {len(seeds)} 个")

    async def list_llms(self) -> List[LlmProvider]:
        async with self.db.session_factory() as session:
            result = await session.execute(select(Llm).order_by(Llm.id))
            return [_to_provider(row) for row in result.scalars().all()]

    async def list_models(self, llm_id: int) -> List[LlmModelEntry]:
        llm_id = _positive_id(llm_id, "llm_id")
        async with self.db.session_factory() as session:
            if await session.get(Llm, llm_id) is None:
                raise NotFoundError(f"LLM {llm_id} not found")
            result = await session.execute(
                select(LlmModel).where(LlmModel.llm_id == llm_id).order_by(LlmModel.id)
            )
            return [_to_model(row) for row in result.scalars().all()]

    async def create_llm(self, name: str, alias: str) -> LlmProvider:
        name = _required_text(name, "name")
        alias = _required_text(alias, "alias")
        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    row = Llm(name=name, alias=alias)
                    session.add(row)
                    await session.flush()
                    return _to_provider(row)
        except IntegrityError as exc:
            raise ValidationError(f"LLM name {name!r} already exists") from exc

    async def update_llm(self, llm_id: int, name: Optional[str] = None, alias: Optional[str] = None) -> LlmProvider:
        llm_id = _positive_id(llm_id, "llm_id")
        name = _optional_text(name, "name")
        alias = _optional_text(alias, "alias")
        if name is None and alias is None:
            raise ValidationError("At least one of name or alias must be provided")

        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    row = await session.get(Llm, llm_id)
                    if row is None:
                        raise NotFoundError(f"LLM {llm_id} not found")
                    if name is not None:
                        row.name = name
                    if alias is not None:
                        row.alias = alias
                    await session.flush()
                    return _to_provider(row)
        except IntegrityError as exc:
            raise ValidationError(f"LLM name {name!r} already exists") from exc

    async def delete_llm(self, llm_id: int) -> None:
        """连同其下的模型一起删除"""
        llm_id = _positive_id(llm_id, "llm_id")
        async with self.db.session_factory() as session:
            async with session.begin():
                row = await session.get(Llm, llm_id)
                if row is None:
                    raise NotFoundError(f"LLM {llm_id} not found")

                configured = await _configured_model(session)
                if configured is not None:
                    in_use = await session.execute(
                        select(LlmModel.id).where(LlmModel.llm_id == llm_id, LlmModel.name == configured)
                    )
                    if in_use.first() is not None:
                        raise ConflictError(f"LLM {llm_id} has a model currently used by llm_config")

                await session.execute(delete(LlmModel).where(LlmModel.llm_id == llm_id))
                await session.delete(row)

    async def create_model(self, llm_id: int, name: str) -> LlmModelEntry:
        llm_id = _positive_id(llm_id, "llm_id")
        name = _required_text(name, "name")
        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    if await session.get(Llm, llm_id) is None:
                        raise NotFoundError(f"LLM {llm_id} not found")
                    row = LlmModel(llm_id=llm_id, name=name)
                    session.add(row)
                    await session.flush()
                    return _to_model(row)
        except IntegrityError as exc:
            raise ValidationError(f"Model name {name!r} already exists") from exc

    async def update_model(
        self,
        model_id: int,
        llm_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> LlmModelEntry:
        model_id = _positive_id(model_id, "model_id")
        if llm_id is not None:
            llm_id = _positive_id(llm_id, "llm_id")
        name = _optional_text(name, "name")
        if llm_id is None and name is None:
            raise ValidationError("At least one of llm_id or name must be provided")

        try:
            async with self.db.session_factory() as session:
                async with session.begin():
                    row = await session.get(LlmModel, model_id)
                    if row is None:
                        raise NotFoundError(f"Model {model_id} not found")
                    if llm_id is not None:
                        if await session.get(Llm, llm_id) is None:
                            raise NotFoundError(f"LLM {llm_id} not found")
                        row.llm_id = llm_id
                    if name is not None:
                        row.name = name
                    await session.flush()
                    return _to_model(row)
        except IntegrityError as exc:
            raise ValidationError(f"Model name {name!r} already exists") from exc

    async def delete_model(self, model_id: int) -> None:
        model_id = _positive_id(model_id, "model_id")
        async with self.db.session_factory() as session:
            async with session.begin():
                row = await session.get(LlmModel, model_id)
                if row is None:
                    raise NotFoundError(f"Model {model_id} not found")
                if row.name == await _configured_model(session):
                    raise ConflictError(f"Model {model_id} is currently used by llm_config")
                await session.delete(row)
