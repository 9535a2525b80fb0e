"""基础设施层：日志、数据库、调度器与外部服务适配器"""

from .boot_stamp import BootStamp
from .logging import log_event, setup_logging
from .scheduler import SchedulerManager

__all__ = ["setup_logging", "log_event", "BootStamp", "SchedulerManager"]
