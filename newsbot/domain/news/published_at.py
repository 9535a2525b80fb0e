import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PublishedAtResolver:
    """
    把 ``HH:mm`` 片段解析为绝对时间（UTC）。

    以配置时区的“今天 HH:mm”为候选时间；若片段为 23 点而当前本地时间为 0 点，
    则认为是昨天 23 点的新闻，候选时间回退一天。
    """

    def __init__(self, tz_name: str, now: Optional[Callable[[], datetime]] = None):
        self.tz = ZoneInfo(tz_name)
        self._now = now or _utc_now

    def resolve(self, raw: Optional[str]) -> Optional[datetime]:
        if not raw:
            return None

        match = _TIME_RE.search(raw)
        if match is None:
            return None

        hour, minute = int(match.group(1)), int(match.group(2))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None

        now_local = self._now().astimezone(self.tz)
        candidate = now_local.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if hour == 23 and now_local.hour == 0:
            # aware datetime 加减 timedelta 按墙上时间计算
            candidate = candidate - timedelta(days=1)

        # 重新绑定时区，修正跨 DST 时的偏移
        candidate = candidate.replace(tzinfo=None).replace(tzinfo=self.tz)
        return candidate.astimezone(timezone.utc)
