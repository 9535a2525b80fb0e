import re
from typing import List, Sequence

DEFAULT_HEADER_TITLE = "Йалла дайджест!"
DEFAULT_FOOTER_LABEL = "Йалла балаган | Новости"
DEFAULT_FOOTER_URL = "https://t.me/yalla_balagan_news"

_MARKDOWN_V2_SPECIAL_RE = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")
_TRAILING_SPACES_RE = re.compile(r"[ \t]+$", re.MULTILINE)


def escape_markdown_v2(text: str) -> str:
    """转义 Telegram MarkdownV2 的保留字符"""
    return _MARKDOWN_V2_SPECIAL_RE.sub(r"\\\1", text)


def normalize_digest_text(text: str) -> str:
    """统一换行符，去掉行尾空白以及首尾空白"""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    return _TRAILING_SPACES_RE.sub("", unified).strip()


class TelegramMarkdownV2Assembler:
    """
    Render digest items as a Telegram MarkdownV2 post.

    格式::

        <标题>

        \\- 条目一
        \\- 条目二

        [频道名](链接)

    没有条目时只输出标题、空行和页脚。
    """

    def __init__(
        self,
        header_title: str = DEFAULT_HEADER_TITLE,
        footer_label: str = DEFAULT_FOOTER_LABEL,
        footer_url: str = DEFAULT_FOOTER_URL,
    ):
        self.header_title = header_title
        self.footer_label = footer_label
        self.footer_url = footer_url

    def assemble(self, items: Sequence[str]) -> str:
        lines: List[str] = [escape_markdown_v2(self.header_title), ""]

        bullets = [f"\\- {escape_markdown_v2(item.strip())}" for item in items if item.strip()]
        if bullets:
            lines.extend(bullets)
            lines.append("")

        lines.append(f"[{escape_markdown_v2(self.footer_label)}]({self.footer_url})")
        return "\n".join(lines)
