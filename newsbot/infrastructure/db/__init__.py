"""数据库模块"""
from .database import Database
from .digest_repository import SqlDigestRepository
from .filter_repository import SqlFilterRepository
from .llm_catalog_repository import SqlLlmCatalogRepository
from .llm_config_repository import SqlLlmConfigRepository
from .models import Digest, Filter, Llm, LlmConfig, LlmModel, NewsItem
from .news_repository import SqlNewsRepository

__all__ = [
    "Database",
    "SqlNewsRepository",
    "SqlDigestRepository",
    "SqlFilterRepository",
    "SqlLlmConfigRepository",
    "SqlLlmCatalogRepository",
    "NewsItem",
    "Digest",
    "Filter",
    "LlmConfig",
    "Llm",
    "LlmModel",
]
