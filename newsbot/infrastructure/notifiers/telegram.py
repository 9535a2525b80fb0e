from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ...config_loader import TelegramConfig
from ...domain.digest.models import PublishReceipt
from ...domain.digest.render import escape_markdown_v2
from ...domain.ports import DigestPublisher
from ...errors import ConfigError, PublishError

_PREVIEW_LIMIT = 300


def _redact_chat_id(chat_id: str) -> str:
    if len(chat_id) <= 4:
        return "***"
    return f"{chat_id[:2]}***{chat_id[-2:]}"


def _preview(text: str) -> str:
    return text if len(text) <= _PREVIEW_LIMIT else text[:_PREVIEW_LIMIT] + "..."


class TelegramPublisher(DigestPublisher):
    """
    Send the digest to a Telegram chat via Bot API ``sendMessage``.

    Docs: https://core.telegram.org/bots/api#sendmessage
    """

    def __init__(self, config: TelegramConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _build_payload(self, text: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chat_id": self.config.chat_id,
            "text": text,
            "disable_web_page_preview": self.config.disable_preview,
        }
        if self.config.parse_mode:
            payload["parse_mode"] = self.config.parse_mode
        return payload

    async def publish(self, text: str) -> PublishReceipt:
        if not self.config.bot_token or not self.config.chat_id:
            raise ConfigError("TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are required to publish")

        sent_text = escape_markdown_v2(text) if self.config.escape_text else text
        payload = self._build_payload(sent_text)
        url = f"{self.config.api_base.rstrip('/')}/bot{self.config.bot_token}/sendMessage"

        logger.info(
            f"[Telegram] sendMessage chat_id={_redact_chat_id(self.config.chat_id)} "
            f"parse_mode={self.config.parse_mode} text={_preview(sent_text)!r}"
        )

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise PublishError(f"Telegram request failed: {exc}") from exc

        body = resp.text
        logger.info(f"[Telegram] response status={resp.status_code} body={_preview(body)!r}")

        if resp.status_code < 200 or resp.status_code >= 300:
            raise PublishError(f"Telegram sendMessage failed with HTTP {resp.status_code}: {_preview(body)}")

        try:
            data = resp.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("ok") is False:
            raise PublishError(f"Telegram sendMessage rejected: {data.get('description', 'unknown error')}")

        external_id: Optional[str] = None
        if isinstance(data, dict):
            result = data.get("result")
            if isinstance(result, dict) and result.get("message_id") is not None:
                external_id = str(result["message_id"])

        return PublishReceipt(external_id=external_id, sent_text=sent_text)
