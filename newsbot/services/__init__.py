"""服务层：编排领域逻辑与端口"""

from .boot_sequence import BootSequence, BootSequenceResult, StepResult
from .container import Container, build_container
from .digest_service import PublishDigestService
from .health_service import HealthService
from .ingest_service import NewsIngestService
from .news_query_service import GetNewsItemsByIds

__all__ = [
    "BootSequence",
    "BootSequenceResult",
    "StepResult",
    "Container",
    "build_container",
    "PublishDigestService",
    "HealthService",
    "NewsIngestService",
    "GetNewsItemsByIds",
]
