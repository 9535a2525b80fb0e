"""数据库模型"""
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UtcDateTime(TypeDecorator):
    """以 UTC 存储，读取时总是返回带时区的 datetime"""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class NewsItem(Base):
    """新闻表"""
    __tablename__ = "news_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(200), nullable=False, index=True)
    fingerprint = Column(String(64), unique=True, nullable=False, index=True)
    raw_text = Column(Text, nullable=False)
    payload_json = Column(Text, nullable=False)  # 参与哈希的三元组快照
    published_at = Column(UtcDateTime)
    scraped_at = Column(UtcDateTime, nullable=False, default=utc_now)
    processed = Column(Boolean, nullable=False, default=False, index=True)
    filtered = Column(Boolean, nullable=False, default=False)
    filter_ids = Column(JSON)  # 命中的过滤器 id 列表
    media_type = Column(String(20))
    media_url = Column(Text)


class Digest(Base):
    """摘要表"""
    __tablename__ = "digests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(UtcDateTime, nullable=False, default=utc_now)
    updated_at = Column(UtcDateTime, nullable=False, default=utc_now, onupdate=utc_now)
    digest_text = Column(Text, nullable=False)
    is_published = Column(Boolean, nullable=False, default=False)
    source_item_ids = Column(JSON, nullable=False)
    source_items_count = Column(Integer, nullable=False, default=0)
    source_news_texts = Column(JSON, nullable=False)
    llm_model = Column(String(200))
    published_at = Column(UtcDateTime)
    publisher_external_id = Column(String(200))


class Filter(Base):
    """内容过滤器表"""
    __tablename__ = "filters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(UtcDateTime, nullable=False, default=utc_now)
    updated_at = Column(UtcDateTime, nullable=False, default=utc_now, onupdate=utc_now)
    name = Column(String(200), unique=True, nullable=False)
    pattern = Column(Text, nullable=False)


class LlmConfig(Base):
    """模型配置表（只有 id=1 一行）"""
    __tablename__ = "llm_config"
    __table_args__ = (CheckConstraint("id = 1", name="llm_config_single_row"),)

    id = Column(Integer, primary_key=True)
    model = Column(String(200), nullable=False)
    instructions = Column(Text, nullable=False)
    updated_at = Column(UtcDateTime, nullable=False, default=utc_now, onupdate=utc_now)


class Llm(Base):
    """模型提供方"""
    __tablename__ = "llms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False)
    alias = Column(String(200), nullable=False)


class LlmModel(Base):
    """提供方下的模型（模型名全局唯一）"""
    __tablename__ = "llm_models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    llm_id = Column(Integer, ForeignKey("llms.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), unique=True, nullable=False)
