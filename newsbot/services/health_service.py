from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from ..domain.news.normalize import format_utc_iso


class HealthService:
    """存活检查"""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_status(self) -> Dict[str, str]:
        return {"status": "ok", "time": format_utc_iso(self._clock())}
