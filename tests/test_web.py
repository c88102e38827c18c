"""
Tests for the JSON API.
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from conftest import FakeCapability, ProviderStub, chat_reply, make_image_bytes
from recipescan.config import Settings
from recipescan.db import RecipeStore
from recipescan.providers import Provider, ProviderConfig, prompt_logger
from recipescan.web import app as web_app
from recipescan.web.app import app
from recipescan.web.deps import (
    get_http_client,
    get_ocr_capability,
    get_provider_config,
    get_recipe_store,
)

SOUP_REPLY = '{"title": "Soup", "ingredients": ["water", "salt"], "instructions": "Boil."}'


@pytest.fixture
def stub() -> ProviderStub:
    return ProviderStub(body=chat_reply(SOUP_REPLY))


@pytest.fixture
def capability() -> FakeCapability:
    return FakeCapability(texts={0: "Soup", 1: "water\nsalt"})


@pytest.fixture
def client(stub, capability):
    store = RecipeStore("sqlite://")
    config = ProviderConfig(provider=Provider.OPENAI, api_key=SecretStr("o-key"))

    async def http_client():
        async with stub.client() as http:
            yield http

    app.dependency_overrides[get_recipe_store] = lambda: store
    app.dependency_overrides[get_provider_config] = lambda: config
    app.dependency_overrides[get_ocr_capability] = lambda: capability
    app.dependency_overrides[get_http_client] = http_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    store.close()


def create(client, title: str, **fields) -> dict:
    response = client.post("/api/recipes", json={"title": title, **fields})
    assert response.status_code == 201
    return response.json()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestRecipes:
    """Test recipe CRUD routes."""

    def test_create_and_get(self, client):
        created = create(client, "Soup", ingredients=["water"], instructions="Boil.")

        response = client.get(f"/api/recipes/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {
            "id": created["id"],
            "title": "Soup",
            "ingredients": ["water"],
            "instructions": "Boil.",
        }

    def test_list(self, client):
        create(client, "A")
        create(client, "B")

        response = client.get("/api/recipes")

        assert [r["title"] for r in response.json()] == ["A", "B"]

    def test_duplicate_is_conflict(self, client):
        create(client, "Soup")
        response = client.post("/api/recipes", json={"title": "Soup"})

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateTitleError"

    def test_blank_title_is_bad_request(self, client):
        response = client.post("/api/recipes", json={"title": "  "})
        assert response.status_code == 400

    def test_missing_is_not_found(self, client):
        assert client.get("/api/recipes/99").status_code == 404

    def test_update(self, client):
        created = create(client, "Soup")

        response = client.put(
            f"/api/recipes/{created['id']}",
            json={"title": "Tomato Soup", "ingredients": "water\ntomato"},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Tomato Soup"
        assert response.json()["ingredients"] == ["water", "tomato"]

    def test_update_collision_is_conflict(self, client):
        create(client, "Soup")
        stew = create(client, "Stew")

        response = client.put(f"/api/recipes/{stew['id']}", json={"title": "Soup"})

        assert response.status_code == 409

    def test_update_missing_is_not_found(self, client):
        assert client.put("/api/recipes/7", json={"title": "Ghost"}).status_code == 404

    def test_delete(self, client):
        created = create(client, "Soup")

        assert client.delete(f"/api/recipes/{created['id']}").status_code == 204
        assert client.get(f"/api/recipes/{created['id']}").status_code == 404
        # Deleting again is still fine
        assert client.delete(f"/api/recipes/{created['id']}").status_code == 204

    def test_search(self, client):
        create(client, "Cake", ingredients=["flour"])
        create(client, "Salad", ingredients=["lettuce"])

        response = client.get("/api/recipes/search", params={"q": "FLOUR"})

        assert [r["title"] for r in response.json()] == ["Cake"]

    def test_shopping_list(self, client):
        cake = create(client, "Cake", ingredients=["sugar", "flour"])
        bread = create(client, "Bread", ingredients=["flour", "yeast"])

        response = client.post("/api/shopping-list", json={"recipe_ids": [cake["id"], bread["id"], 999]})

        assert response.json() == {"items": ["flour", "sugar", "yeast"]}


class TestTransfer:
    """Test import/export routes."""

    def test_export(self, client):
        create(client, "Soup")

        document = client.get("/api/export").json()

        assert document["version"] == 1
        assert "exportedAt" in document
        assert [r["title"] for r in document["recipes"]] == ["Soup"]

    def test_import_add(self, client):
        create(client, "A")

        response = client.post("/api/import", json=[{"title": "A"}, {"title": "B"}, {"title": "A"}])

        assert response.json() == {"added_count": 1, "skipped_count": 2}

    def test_import_overwrite(self, client):
        create(client, "Old")

        response = client.post(
            "/api/import",
            params={"mode": "overwrite"},
            json={"version": 1, "recipes": [{"title": "New"}]},
        )

        assert response.status_code == 200
        assert [r["title"] for r in client.get("/api/recipes").json()] == ["New"]

    def test_import_bad_document(self, client):
        response = client.post("/api/import", json={"title": "not a list"})

        assert response.status_code == 400
        assert "Expected an array of recipes" in response.json()["detail"]

    def test_import_bad_mode(self, client):
        assert client.post("/api/import", params={"mode": "merge"}, json=[]).status_code == 422


class TestScanAndParse:
    """Test the AI-backed routes."""

    def test_parse(self, client, stub):
        response = client.post("/api/parse", json={"text": "Soup\nwater\nsalt"})

        assert response.status_code == 200
        assert response.json() == {"title": "Soup", "ingredients": ["water", "salt"], "instructions": "Boil."}
        assert len(stub.requests) == 1

    def test_parse_does_not_save(self, client):
        client.post("/api/parse", json={"text": "Soup"})
        assert client.get("/api/recipes").json() == []

    def test_scan(self, client, stub, capability):
        files = [
            ("files", ("front.png", make_image_bytes(), "image/png")),
            ("files", ("back.png", make_image_bytes(), "image/png")),
        ]

        response = client.post("/api/scan", files=files)

        assert response.status_code == 200
        body = response.json()
        assert body["raw_text"] == "Soup\n\nwater\nsalt"
        assert body["draft"]["title"] == "Soup"
        assert body["failed_images"] == []
        assert capability.release_count == 1

    def test_scan_bad_image(self, client, stub):
        files = [("files", ("bad.png", b"not an image", "image/png"))]

        response = client.post("/api/scan", files=files)

        assert response.status_code == 400
        assert response.json()["failed_images"][0]["name"] == "bad.png"
        assert stub.requests == []

    def test_scan_partial(self, client):
        files = [
            ("files", ("front.png", make_image_bytes(), "image/png")),
            ("files", ("bad.png", b"not an image", "image/png")),
        ]

        response = client.post("/api/scan", params={"allow_partial": "true"}, files=files)

        assert response.status_code == 200
        assert response.json()["failed_images"] == [
            {"index": 1, "name": "bad.png", "reason": response.json()["failed_images"][0]["reason"]}
        ]

    def test_scan_partial_with_nothing_usable(self, client, stub):
        files = [("files", ("bad.png", b"not an image", "image/png"))]

        response = client.post("/api/scan", params={"allow_partial": "true"}, files=files)

        assert response.status_code == 400
        assert response.json()["error"] == "ImageBatchError"
        assert response.json()["failed_images"][0]["name"] == "bad.png"
        assert stub.requests == []

    def test_provider_error_is_bad_gateway(self, client, stub):
        stub.status_code = 401
        stub.body = {"error": {"message": "Invalid API key"}}

        response = client.post("/api/parse", json={"text": "Soup"})

        assert response.status_code == 502
        assert "Invalid API key" in response.json()["detail"]

    def test_unparseable_reply(self, client, stub):
        stub.body = chat_reply("The card is too blurry.")

        response = client.post("/api/parse", json={"text": "???"})

        assert response.status_code == 422
        assert response.json()["error"] == "UnparseableResponseError"

    def test_missing_api_key(self, client):
        app.dependency_overrides[get_provider_config] = lambda: ProviderConfig(provider=Provider.GOOGLE)

        response = client.post("/api/parse", json={"text": "Soup"})

        assert response.status_code == 400
        assert response.json()["detail"] == "API key is required"


class TestStartup:
    """Test lifespan configuration."""

    def test_log_prompts_setting_enables_prompt_logging(self, tmp_path, monkeypatch):
        monkeypatch.setattr(prompt_logger, "LOG_DIR", tmp_path / "prompt_logs")
        monkeypatch.setattr(web_app, "settings", Settings(log_prompts=True, _env_file=None))

        try:
            with TestClient(app):
                assert prompt_logger.is_enabled()
        finally:
            prompt_logger.enable_prompt_logging(False)

        assert (tmp_path / "prompt_logs").is_dir()
