"""
Tests for the end-to-end ingestion pipeline.
"""

import asyncio

import pytest
from pydantic import SecretStr

from conftest import FakeCapability, ProviderStub, chat_reply, google_reply
from recipescan.errors import ImageBatchError, MissingApiKeyError, RecipeNotFoundError
from recipescan.images import PendingImage
from recipescan.models import RecipeDraft
from recipescan.pipeline import parse_recipe_text, save_recipe, scan_images, scan_recipe
from recipescan.providers import Provider, ProviderConfig

SOUP_REPLY = '```json\n{"title":"Soup","ingredients":["water","salt"],"instructions":"Boil."}\n```'


def openai_config(api_key: str = "o-key") -> ProviderConfig:
    return ProviderConfig(provider=Provider.OPENAI, api_key=SecretStr(api_key))


class TestScanImages:
    """Test normalize + OCR."""

    def test_text_in_image_order(self, make_image):
        capability = FakeCapability(texts={0: "Soup", 1: "water\nsalt"})
        text, failures = asyncio.run(
            scan_images([make_image(index=0), make_image(index=1)], capability)
        )
        assert text == "Soup\n\nwater\nsalt"
        assert failures == []

    def test_bad_image_fails_whole_scan(self, make_image):
        capability = FakeCapability()
        images = [make_image(index=0), PendingImage(data=b"junk", index=1, name="bad.png")]

        with pytest.raises(ImageBatchError):
            asyncio.run(scan_images(images, capability))

        assert capability.init_count == 0

    def test_allow_partial_scans_the_rest(self, make_image):
        capability = FakeCapability(texts={0: "front", 2: "back"})
        images = [
            make_image(index=0),
            PendingImage(data=b"junk", index=1, name="bad.png"),
            make_image(index=2),
        ]

        text, failures = asyncio.run(scan_images(images, capability, allow_partial=True))

        assert text == "front\n\nback"
        assert [f.index for f in failures] == [1]

    def test_allow_partial_with_nothing_usable(self):
        capability = FakeCapability()
        images = [PendingImage(data=b"junk", index=0, name="bad.png")]

        with pytest.raises(ImageBatchError) as exc_info:
            asyncio.run(scan_images(images, capability, allow_partial=True))

        assert exc_info.value.result.failed_count == 1
        assert capability.init_count == 0


class TestScanRecipe:
    """Test the full scan."""

    def test_soup_card(self, make_image):
        capability = FakeCapability(texts={0: "Soup\nwater\nsalt\nBoil."})
        stub = ProviderStub(body=chat_reply(SOUP_REPLY))

        async def run():
            async with stub.client() as http:
                return await scan_recipe([make_image()], openai_config(), capability, http_client=http)

        result = asyncio.run(run())

        assert result.raw_text == "Soup\nwater\nsalt\nBoil."
        assert result.draft == RecipeDraft(title="Soup", ingredients=["water", "salt"], instructions="Boil.")
        assert "Soup\nwater\nsalt\nBoil." in stub.last_json["messages"][1]["content"]

    def test_missing_key_fails_before_ocr(self, make_image):
        capability = FakeCapability()

        with pytest.raises(MissingApiKeyError):
            asyncio.run(scan_recipe([make_image()], openai_config(api_key=""), capability))

        assert capability.init_count == 0


class TestParseRecipeText:
    """Test structuring already-extracted text."""

    def test_missing_fields_get_defaults(self):
        stub = ProviderStub(body=google_reply('{"title": "Toast"}'))
        config = ProviderConfig(provider=Provider.GOOGLE, api_key=SecretStr("g"))

        async def run():
            async with stub.client() as http:
                return await parse_recipe_text("Toast", config, http_client=http)

        draft = asyncio.run(run())
        assert draft == RecipeDraft(title="Toast")


class TestSaveRecipe:
    """Test persisting reviewed drafts."""

    def test_new_recipe(self, store):
        recipe_id = asyncio.run(save_recipe(store, RecipeDraft(title="Soup")))
        assert asyncio.run(store.get_by_id(recipe_id)).title == "Soup"

    def test_edit_existing(self, store):
        recipe_id = asyncio.run(save_recipe(store, RecipeDraft(title="Soup")))
        recipe = asyncio.run(store.get_by_id(recipe_id))

        edited = recipe.model_copy(update={"instructions": "Boil for 10 minutes."})
        assert asyncio.run(save_recipe(store, edited, recipe_id=recipe_id)) == recipe_id
        assert asyncio.run(store.get_by_id(recipe_id)).instructions == "Boil for 10 minutes."

    def test_edit_missing(self, store):
        with pytest.raises(RecipeNotFoundError):
            asyncio.run(save_recipe(store, RecipeDraft(title="Soup"), recipe_id=5))
