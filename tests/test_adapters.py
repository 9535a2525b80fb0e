"""Telegram / Gemini 适配器测试（httpx.MockTransport，不访问网络）"""
import json

import httpx
import pytest

from newsbot.config_loader import GeminiConfig, TelegramConfig
from newsbot.errors import ConfigError, PublishError, TextGenerationError
from newsbot.infrastructure.llm.gemini import GeminiTextGenerator
from newsbot.infrastructure.notifiers.telegram import TelegramPublisher


def telegram_config(**overrides) -> TelegramConfig:
    values = {"bot_token": "123:abc", "chat_id": "-100200300", "api_base": "https://tg.test"}
    values.update(overrides)
    return TelegramConfig(**values)


class TestTelegramPublisher:
    @pytest.mark.asyncio
    async def test_send_message(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": 555}})

        publisher = TelegramPublisher(
            telegram_config(parse_mode="MarkdownV2", disable_preview=True),
            transport=httpx.MockTransport(handler),
        )
        receipt = await publisher.publish("hello")

        assert receipt.external_id == "555"
        assert receipt.sent_text == "hello"
        assert str(requests[0].url) == "https://tg.test/bot123:abc/sendMessage"
        assert json.loads(requests[0].content) == {
            "chat_id": "-100200300",
            "text": "hello",
            "disable_web_page_preview": True,
            "parse_mode": "MarkdownV2",
        }

    @pytest.mark.asyncio
    async def test_escape_text(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True, "result": {}})

        publisher = TelegramPublisher(telegram_config(escape_text=True), transport=httpx.MockTransport(handler))
        receipt = await publisher.publish("a.b")

        assert receipt.sent_text == "a\\.b"
        assert receipt.external_id is None

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"ok": False, "description": "Bad Request"})
        )
        with pytest.raises(PublishError, match="HTTP 400"):
            await TelegramPublisher(telegram_config(), transport=transport).publish("x")

    @pytest.mark.asyncio
    async def test_ok_false(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"ok": False, "description": "chat not found"})
        )
        with pytest.raises(PublishError, match="chat not found"):
            await TelegramPublisher(telegram_config(), transport=transport).publish("x")

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(ConfigError):
            await TelegramPublisher(telegram_config(bot_token=None)).publish("x")


class TestGeminiTextGenerator:
    @pytest.mark.asyncio
    async def test_generate(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "candidates": [{"content": {"parts": [{"text": '["a",'}, {"text": ' "b"]'}]}}],
                    "modelVersion": "gemini-2.0-flash-lite-001",
                },
            )

        generator = GeminiTextGenerator(
            GeminiConfig(api_key="key", api_base="https://gemini.test/v1beta"),
            transport=httpx.MockTransport(handler),
        )
        generated = await generator.generate("prompt", "gemini-2.0-flash-lite")

        assert generated.text == '["a", "b"]'
        assert generated.model == "gemini-2.0-flash-lite-001"
        assert str(requests[0].url) == "https://gemini.test/v1beta/models/gemini-2.0-flash-lite:generateContent"
        assert requests[0].headers["x-goog-api-key"] == "key"
        assert json.loads(requests[0].content)["contents"][0]["parts"][0]["text"] == "prompt"

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        generator = GeminiTextGenerator(GeminiConfig(api_key="key"), transport=transport)
        with pytest.raises(TextGenerationError, match="HTTP 500"):
            await generator.generate("p", "m")

    @pytest.mark.asyncio
    async def test_empty_candidates(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
        generator = GeminiTextGenerator(GeminiConfig(api_key="key"), transport=transport)
        with pytest.raises(TextGenerationError):
            await generator.generate("p", "m")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigError):
            await GeminiTextGenerator(GeminiConfig(api_key=None)).generate("p", "m")
