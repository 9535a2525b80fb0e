"""配置加载：进程启动时从环境变量构建一次 AppConfig，之后按引用传给各组件"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from loguru import logger

from .errors import ConfigError

DEFAULT_SOURCE = "mako-channel12"
DEFAULT_TIMEZONE = "Asia/Jerusalem"
DEFAULT_LOCALE = "he-IL"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_LLM_MODEL = "gemini-2.0-flash-lite"
DEFAULT_SQLITE_PATH = "./data/news-bot.sqlite"

TELEGRAM_PARSE_MODES = ("MarkdownV2", "Markdown", "HTML")
CHROMIUM_CHANNELS = ("chrome", "msedge")

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass
class DatabaseConfig:
    """
    数据库配置。

    - ``url`` 优先（完整 SQLAlchemy URL）
    - 否则使用 ``sqlite_path``，支持 ``:memory:``
    """

    sqlite_path: str = DEFAULT_SQLITE_PATH
    url: Optional[str] = None

    @property
    def database_url(self) -> str:
        if self.url:
            return self.url
        if self.sqlite_path == ":memory:":
            return "sqlite+aiosqlite:///:memory:"
        return f"sqlite+aiosqlite:///{self.sqlite_path}"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_dir: str = "logs"
    to_file: bool = True


@dataclass
class ScraperConfig:
    """Playwright 浏览器参数"""

    headless: bool = True
    slow_mo_ms: Optional[float] = None
    user_data_dir: Optional[str] = None
    chromium_channel: Optional[str] = None  # chrome / msedge
    user_agent: str = DEFAULT_USER_AGENT
    locale: str = DEFAULT_LOCALE
    timezone: str = DEFAULT_TIMEZONE


@dataclass
class IngestConfig:
    source: str = DEFAULT_SOURCE
    max_items: int = 5
    cron_schedule: str = "*/5 * * * *"
    timezone: str = DEFAULT_TIMEZONE  # HH:mm 解析使用的时区
    scraper: ScraperConfig = field(default_factory=ScraperConfig)


@dataclass
class GeminiConfig:
    api_key: Optional[str] = None
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 60.0


@dataclass
class TelegramConfig:
    bot_token: Optional[str] = None
    chat_id: Optional[str] = None
    parse_mode: Optional[str] = None
    disable_preview: bool = False
    escape_text: bool = False
    api_base: str = "https://api.telegram.org"
    timeout: float = 15.0


@dataclass
class PublishingConfig:
    cron_schedule: str = "0,30 * * * *"
    llm_model: str = DEFAULT_LLM_MODEL
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass
class SchedulerConfig:
    enabled: bool = False
    timezone: str = DEFAULT_TIMEZONE


@dataclass
class AppConfig:
    """应用配置根节点"""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    publishing: PublishingConfig = field(default_factory=PublishingConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    data_dir: str = "./data"
    boot_stamp_dir: Optional[str] = None  # 默认使用 PM2_HOME，否则 data_dir


def load_env_files(root: Optional[Path] = None) -> None:
    """
    按顺序加载 ``.env`` 和 ``.env.local``（后者覆盖前者）。

    只应由入口（CLI / API / 定时任务）调用，业务模块不直接读环境变量。
    """
    base = root or Path.cwd()
    for name in (".env", ".env.local"):
        path = base / name
        if not path.exists():
            continue
        try:
            load_dotenv(path, override=True)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Failed to load {path}: {exc}. Continuing with environment variables...")


def parse_bool(raw: Optional[str], default: bool, name: str = "") -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning(f"Invalid boolean for {name}={raw!r}, fallback to {default}.")
    return default


def parse_int(raw: Optional[str], default: int, name: str = "") -> int:
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for {name}={raw!r}, fallback to {default}.")
        return default


def parse_float(raw: Optional[str], name: str = "") -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw.strip())
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, ignored.")
        return None


def _get_str(env: Mapping[str, str], key: str) -> Optional[str]:
    raw = env.get(key)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build the application config from an environment mapping.

    缺失的密钥（GEMINI_API_KEY / TELEGRAM_*）不会在这里报错，
    适配器在第一次使用时才抛出 ConfigError。
    """
    env = os.environ if env is None else env

    timezone = _get_str(env, "INGEST_TIMEZONE") or DEFAULT_TIMEZONE

    channel = _get_str(env, "INGEST_CHROMIUM_CHANNEL")
    if channel is not None and channel not in CHROMIUM_CHANNELS:
        logger.warning(f"Unsupported INGEST_CHROMIUM_CHANNEL={channel!r}, using bundled Chromium.")
        channel = None

    scraper = ScraperConfig(
        headless=parse_bool(env.get("INGEST_SCRAPER_HEADLESS"), True, "INGEST_SCRAPER_HEADLESS"),
        slow_mo_ms=parse_float(env.get("INGEST_SCRAPER_SLOWMO_MS"), "INGEST_SCRAPER_SLOWMO_MS"),
        user_data_dir=_get_str(env, "INGEST_USER_DATA_DIR"),
        chromium_channel=channel,
        user_agent=_get_str(env, "INGEST_USER_AGENT") or DEFAULT_USER_AGENT,
        locale=_get_str(env, "INGEST_LOCALE") or DEFAULT_LOCALE,
        timezone=timezone,
    )

    ingest = IngestConfig(
        source=_get_str(env, "INGEST_SOURCE") or DEFAULT_SOURCE,
        max_items=parse_int(env.get("INGEST_MAX_ITEMS"), 5, "INGEST_MAX_ITEMS"),
        cron_schedule=_get_str(env, "INGEST_CRON_SCHEDULE") or "*/5 * * * *",
        timezone=timezone,
        scraper=scraper,
    )

    parse_mode = _get_str(env, "TELEGRAM_PARSE_MODE")
    if parse_mode is not None and parse_mode not in TELEGRAM_PARSE_MODES:
        raise ConfigError(f"Unsupported TELEGRAM_PARSE_MODE {parse_mode!r}")

    telegram = TelegramConfig(
        bot_token=_get_str(env, "TELEGRAM_BOT_TOKEN"),
        chat_id=_get_str(env, "TELEGRAM_CHAT_ID"),
        parse_mode=parse_mode,
        disable_preview=parse_bool(env.get("TELEGRAM_DISABLE_PREVIEW"), False, "TELEGRAM_DISABLE_PREVIEW"),
        escape_text=parse_bool(env.get("TELEGRAM_ESCAPE_TEXT"), False, "TELEGRAM_ESCAPE_TEXT"),
        api_base=_get_str(env, "TELEGRAM_API_BASE") or TelegramConfig.api_base,
    )
    gemini = GeminiConfig(
        api_key=_get_str(env, "GEMINI_API_KEY"),
        api_base=_get_str(env, "GEMINI_API_BASE") or GeminiConfig.api_base,
    )
    publishing = PublishingConfig(
        cron_schedule=_get_str(env, "PUBLISHING_CRON_SCHEDULE") or "0,30 * * * *",
        llm_model=_get_str(env, "PUBLISHING_LLM_MODEL") or DEFAULT_LLM_MODEL,
        gemini=gemini,
        telegram=telegram,
    )

    sqlite_path = _get_str(env, "NEWS_BOT_SQLITE_PATH") or DEFAULT_SQLITE_PATH
    database = DatabaseConfig(sqlite_path=sqlite_path, url=_get_str(env, "NEWS_BOT_DATABASE_URL"))

    logging_config = LoggingConfig(
        level=(_get_str(env, "LOG_LEVEL") or "INFO").upper(),
        log_dir=_get_str(env, "LOG_DIR") or "logs",
        to_file=parse_bool(env.get("LOG_TO_FILE"), True, "LOG_TO_FILE"),
    )

    scheduler = SchedulerConfig(
        enabled=parse_bool(env.get("SCHEDULER_ENABLED"), False, "SCHEDULER_ENABLED"),
        timezone=_get_str(env, "SCHEDULER_TIMEZONE") or timezone,
    )

    data_dir = str(Path(sqlite_path).parent) if sqlite_path != ":memory:" else "./data"
    boot_stamp_dir = _get_str(env, "PM2_HOME") or data_dir

    return AppConfig(
        database=database,
        logging=logging_config,
        ingest=ingest,
        publishing=publishing,
        scheduler=scheduler,
        data_dir=data_dir,
        boot_stamp_dir=boot_stamp_dir,
    )
