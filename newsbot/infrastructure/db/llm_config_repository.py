from typing import Optional

from ...domain.digest.models import LlmSettings
from ...domain.ports import LlmConfigStore
from ...errors import ValidationError
from .database import Database
from .models import LlmConfig, utc_now

_ROW_ID = 1


class SqlLlmConfigRepository(LlmConfigStore):
    """单行模型配置"""

    def __init__(self, db: Database):
        self.db = db

    async def get(self) -> Optional[LlmSettings]:
        async with self.db.session_factory() as session:
            row = await session.get(LlmConfig, _ROW_ID)
            if row is None:
                return None
            return LlmSettings(model=row.model, instructions=row.instructions, updated_at=row.updated_at)

    async def upsert(self, model: str, instructions: str) -> LlmSettings:
        model = (model or "").strip()
        if not model:
            raise ValidationError("Model must not be empty")
        if not instructions or not instructions.strip():
            raise ValidationError("Instructions must not be empty")

        async with self.db.session_factory() as session:
            async with session.begin():
                row = await session.get(LlmConfig, _ROW_ID)
                if row is None:
                    row = LlmConfig(id=_ROW_ID)
                    session.add(row)
                row.model = model
                row.instructions = instructions
                row.updated_at = utc_now()
                await session.flush()
                return LlmSettings(model=row.model, instructions=row.instructions, updated_at=row.updated_at)
