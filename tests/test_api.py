"""HTTP 接口测试"""
import pytest
from fastapi.testclient import TestClient

from newsbot.config_loader import AppConfig, DatabaseConfig, LoggingConfig
from newsbot.domain.news.models import NewNewsItem
from newsbot.main import create_app
from newsbot.services.container import build_container

from .fakes import FakeGenerator, FakePublisher, FakeScraper


class TestApi:
    """API 测试类"""

    @pytest.fixture
    def container(self, tmp_path):
        config = AppConfig(
            database=DatabaseConfig(sqlite_path=str(tmp_path / "api.sqlite")),
            logging=LoggingConfig(to_file=False),
            data_dir=str(tmp_path),
        )
        return build_container(config, scraper=FakeScraper(), generator=FakeGenerator(), publisher=FakePublisher())

    @pytest.fixture
    def client(self, container):
        with TestClient(create_app(container=container)) as client:
            yield client

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["time"].endswith("Z")

    def test_news_items_by_ids(self, client, container):
        items = [
            NewNewsItem(source="s", fingerprint=f"fp-{i}", raw_text=f"item {i}", published_at=None, payload_json="{}")
            for i in (1, 2, 3)
        ]
        client.portal.call(container.news.insert_many_ignore_duplicates, items)

        response = client.get("/api/news-items", params={"ids": "3,99,1"})
        assert response.status_code == 200
        result = response.json()["items"]
        assert result[0]["id"] == 3
        assert result[1] is None
        assert result[2]["raw_text"] == "item 1"

    @pytest.mark.parametrize("ids", ["a,1", "0", "-2"])
    def test_news_items_invalid_ids(self, client, ids):
        assert client.get("/api/news-items", params={"ids": ids}).status_code == 400

    def test_digests_empty(self, client):
        response = client.get("/api/digests")
        assert response.status_code == 200
        assert response.json() == {"items": []}

    def test_filters_crud(self, client):
        created = client.post("/api/filters", json={"name": "ads", "pattern": "פרסומת"})
        assert created.status_code == 201
        filter_id = created.json()["id"]

        assert client.post("/api/filters", json={"name": "ads", "pattern": "x"}).status_code == 400
        assert client.post("/api/filters", json={"name": "bad", "pattern": "("}).status_code == 400

        updated = client.put(f"/api/filters/{filter_id}", json={"name": "ads", "pattern": "sponsored"})
        assert updated.status_code == 200
        assert updated.json()["pattern"] == "sponsored"

        listed = client.get("/api/filters").json()["items"]
        assert [f["name"] for f in listed] == ["ads"]

        assert client.delete(f"/api/filters/{filter_id}").status_code == 204
        assert client.delete(f"/api/filters/{filter_id}").status_code == 404
        assert client.put("/api/filters/999", json={"name": "x", "pattern": "y"}).status_code == 404

    def test_llm_config(self, client):
        default = client.get("/api/llm-config").json()
        assert default["is_default"] is True
        assert default["model"] == "gemini-2.0-flash-lite"

        response = client.put("/api/llm-config", json={"model": "gemini-pro", "instructions": "Be brief."})
        assert response.status_code == 200

        stored = client.get("/api/llm-config").json()
        assert stored["is_default"] is False
        assert stored["model"] == "gemini-pro"
        assert stored["instructions"] == "Be brief."

        assert client.put("/api/llm-config", json={"model": "", "instructions": "x"}).status_code == 400

    def test_llm_catalog(self, client):
        """启动时写入默认提供方，之后可增删改"""
        [seeded] = client.get("/api/llms").json()["items"]
        assert seeded["name"] == "gemini"
        models = client.get(f"/api/llms/{seeded['id']}/models").json()["items"]
        assert [m["name"] for m in models] == ["gemini-2.0-flash-lite"]

        created = client.post("/api/llms", json={"name": "openai", "alias": "OpenAI"})
        assert created.status_code == 201
        llm_id = created.json()["id"]
        assert client.post("/api/llms", json={"name": "openai", "alias": "x"}).status_code == 400
        assert client.put(f"/api/llms/{llm_id}", json={"alias": "Open AI"}).json()["alias"] == "Open AI"
        assert client.put(f"/api/llms/{llm_id}", json={}).status_code == 400

        model = client.post("/api/llm-models", json={"llm_id": llm_id, "name": "gpt-4o-mini"})
        assert model.status_code == 201
        model_id = model.json()["id"]
        assert client.post("/api/llm-models", json={"llm_id": 999, "name": "x"}).status_code == 404
        renamed = client.put(f"/api/llm-models/{model_id}", json={"name": "gpt-4o"})
        assert renamed.json()["name"] == "gpt-4o"

        assert client.delete(f"/api/llm-models/{model_id}").status_code == 204
        assert client.delete(f"/api/llms/{llm_id}").status_code == 204
        assert client.get(f"/api/llms/{llm_id}/models").status_code == 404
        assert client.get("/api/llms/0/models").status_code == 400

    def test_configured_model_delete_conflict(self, client):
        client.put("/api/llm-config", json={"model": "gemini-2.0-flash-lite", "instructions": "Be brief."})
        [seeded] = client.get("/api/llms").json()["items"]
        [model] = client.get(f"/api/llms/{seeded['id']}/models").json()["items"]

        assert client.delete(f"/api/llm-models/{model['id']}").status_code == 409
        assert client.delete(f"/api/llms/{seeded['id']}").status_code == 409
