"""新闻文本与时间的最小归一化（在计算指纹之前执行）"""

import re
from datetime import datetime, timezone
from typing import Optional, Union

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_raw_text(value: str) -> str:
    """去掉首尾空白，并把内部连续空白折叠为单个空格"""
    return _WHITESPACE_RE.sub(" ", value.strip())


def to_utc(value: datetime) -> datetime:
    """无时区的时间按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_published_at(value: Union[datetime, str, None]) -> Optional[datetime]:
    """转换为 UTC 绝对时间，无法解析时返回 None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)

    trimmed = value.strip()
    if not trimmed:
        return None
    if trimmed.endswith("Z"):
        trimmed = trimmed[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(trimmed))
    except ValueError:
        return None


def format_utc_iso(value: datetime) -> str:
    """
    Canonical UTC ISO form with millisecond precision, e.g. ``2024-01-10T21:55:00.000Z``.

    指纹依赖这个格式，修改会导致已存储的新闻无法去重。
    """
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
