"""异常定义"""


class NewsBotError(Exception):
    """所有业务异常的基类"""


class ValidationError(NewsBotError, ValueError):
    """输入校验失败（在任何 I/O 之前抛出）"""


class ConfigError(NewsBotError):
    """配置缺失或非法"""


class NotFoundError(NewsBotError):
    """查询的记录不存在"""


class ConflictError(NewsBotError):
    """写入与当前数据状态冲突（例如新闻已被其他进程处理）"""


class DigestParseError(NewsBotError):
    """LLM 返回内容不是可接受的格式"""


class ExternalServiceError(NewsBotError):
    """外部依赖（抓取、生成、发布）调用失败"""


class ScrapeError(ExternalServiceError):
    """页面抓取失败"""


class TextGenerationError(ExternalServiceError):
    """LLM 文本生成失败"""


class PublishError(ExternalServiceError):
    """消息发布失败"""
