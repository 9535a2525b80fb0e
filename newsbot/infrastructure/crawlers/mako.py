"""Mako 12 频道新闻抽屉抓取器"""
import asyncio
import copy
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from loguru import logger
from playwright.async_api import BrowserContext, Frame, Locator, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from ...config_loader import ScraperConfig
from ...domain.news.models import ScrapedNewsItem
from ...domain.ports import NewsScraper
from ...errors import ScrapeError
from ..logging import log_event

MAKO_URL = "https://www.mako.co.il/news-channel12"
SEL_DRAWER_BTN = ".mc-drawer__btn"
SEL_NEWS_CONT = ".desktop-drawer-news"
SEL_NEWS_ITEM = f"{SEL_NEWS_CONT} .mc-extendable-text__content > div > div"
SEL_TIME = ".mc-message-footer__time"

GOTO_TIMEOUT_MS = 15_000
WAIT_CONTAINER_TIMEOUT_MS = 15_000
CLICK_TIMEOUT_MS = 10_000
SCAN_INTERVAL_MS = 250
MAX_ANCESTOR_DEPTH = 8
VIEWPORT = {"width": 1280, "height": 720}


def extract_drawer_items(html: str, limit: int = 5) -> List[Dict[str, str]]:
    """
    从新闻抽屉 HTML 中提取前 ``limit`` 条新闻（保持 DOM 顺序）。

    时间元素不一定在新闻节点内部：逐级向上（最多 8 层）查找恰好包含一个
    时间元素的容器，避免取到相邻新闻的时间。

    Returns:
        ``[{"text": ..., "published_at_text": ...}]``，未找到时间时为空字符串
    """
    soup = BeautifulSoup(html, "html.parser")
    items: List[Dict[str, str]] = []

    for node in soup.select(SEL_NEWS_ITEM)[:limit]:
        time_text = ""
        cursor = node
        for _ in range(MAX_ANCESTOR_DEPTH):
            if cursor is None or not hasattr(cursor, "select"):
                break
            time_nodes = cursor.select(SEL_TIME)
            if len(time_nodes) == 1:
                time_text = time_nodes[0].get_text().strip()
                break
            cursor = cursor.parent

        clone = copy.copy(node)
        for time_node in clone.select(SEL_TIME):
            time_node.decompose()
        items.append({"text": clone.get_text().strip(), "published_at_text": time_text})

    return items


async def _find_drawer_button(frames: Sequence[Frame], timeout_ms: int) -> Tuple[Locator, str]:
    """轮询所有 frame，直到找到抽屉按钮"""
    deadline = time.monotonic() + timeout_ms / 1000
    frame_urls: List[str] = []

    while time.monotonic() < deadline:
        frame_urls = [frame.url for frame in frames]
        for frame in frames:
            try:
                count = await frame.locator(SEL_DRAWER_BTN).count()
            except Exception:  # noqa: BLE001
                # frame 可能已被销毁
                count = 0
            if count > 0:
                return frame.locator(SEL_DRAWER_BTN).first, frame.url
        await asyncio.sleep(SCAN_INTERVAL_MS / 1000)

    raise ScrapeError(
        f"Drawer button not found ({SEL_DRAWER_BTN}) within {timeout_ms}ms. Frames: {', '.join(frame_urls)}"
    )


class MakoScraper(NewsScraper):
    """
    Playwright-based scraper for the Channel 12 news drawer.

    只负责浏览器自动化与 DOM 提取，不做哈希和持久化；
    ``HH:mm`` 时间原样返回，由抓取流程解析。
    """

    def __init__(self, config: Optional[ScraperConfig] = None, max_items: int = 5, url: str = MAKO_URL):
        self.config = config or ScraperConfig()
        self.max_items = max_items
        self.url = url

    def _launch_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"headless": self.config.headless}
        if self.config.slow_mo_ms is not None:
            options["slow_mo"] = self.config.slow_mo_ms
        if self.config.chromium_channel:
            options["channel"] = self.config.chromium_channel
        return options

    def _context_options(self) -> Dict[str, Any]:
        return {
            "user_agent": self.config.user_agent,
            "locale": self.config.locale,
            "timezone_id": self.config.timezone,
            "viewport": VIEWPORT,
        }

    async def _create_context(self, playwright) -> Tuple[BrowserContext, Callable[[], Awaitable[None]]]:
        if self.config.user_data_dir:
            context = await playwright.chromium.launch_persistent_context(
                self.config.user_data_dir,
                **self._launch_options(),
                **self._context_options(),
            )
            return context, context.close

        browser = await playwright.chromium.launch(**self._launch_options())
        context = await browser.new_context(**self._context_options())

        async def close() -> None:
            await context.close()
            await browser.close()

        return context, close

    async def _extract(self, page: Page) -> List[ScrapedNewsItem]:
        html = await page.content()
        extracted = extract_drawer_items(html, self.max_items)
        log_event(
            "scraper:mako:extracted",
            count=len(extracted),
            empty_time_text_count=sum(1 for x in extracted if not x["published_at_text"]),
        )
        return [
            ScrapedNewsItem(text=x["text"], published_at_text=x["published_at_text"] or None)
            for x in extracted
            if x["text"]
        ]

    async def scrape_latest(self, source: str) -> List[ScrapedNewsItem]:
        logger.info(f"[抓取] 使用 Playwright 访问 {self.url} (source={source})")
        async with async_playwright() as p:
            context, close = await self._create_context(p)
            page = await context.new_page()
            try:
                await page.goto(self.url, wait_until="domcontentloaded", timeout=GOTO_TIMEOUT_MS)
                button, frame_url = await _find_drawer_button(page.frames, CLICK_TIMEOUT_MS)
                logger.debug(f"[抓取] 抽屉按钮位于 frame: {frame_url}")
                await button.click(timeout=CLICK_TIMEOUT_MS)
                await page.wait_for_selector(SEL_NEWS_CONT, timeout=WAIT_CONTAINER_TIMEOUT_MS)
                return await self._extract(page)
            except PlaywrightError as exc:
                raise ScrapeError(f"Mako scrape failed: {exc}") from exc
            finally:
                try:
                    await page.close()
                except Exception as e:  # noqa: BLE001
                    logger.warning(f"[抓取] 关闭页面时出错: {e}")
                try:
                    await close()
                except Exception as e:  # noqa: BLE001
                    logger.warning(f"[抓取] 关闭浏览器时出错: {e}")
