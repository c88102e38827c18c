"""
Pytest configuration and fixtures for RecipeScan tests.
"""

import io
import json
import os
from collections.abc import Callable

import httpx
import pytest
from PIL import Image

# Set test environment before importing recipescan modules
os.environ["RECIPESCAN_ENV"] = "development"
os.environ.pop("RECIPESCAN_LOG_PROMPTS", None)

from recipescan.config import Settings
from recipescan.db import RecipeStore
from recipescan.images import PendingImage


# =============================================================================
# Images
# =============================================================================


def make_image_bytes(
    size: tuple[int, int] = (200, 100),
    fmt: str = "PNG",
    color: tuple[int, int, int] = (240, 240, 240),
    exif_orientation: int | None = None,
) -> bytes:
    """Encode a plain test image."""
    img = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    kwargs = {}
    if exif_orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = exif_orientation
        kwargs["exif"] = exif
    img.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


def make_noise_bytes(size: tuple[int, int], fmt: str = "JPEG") -> bytes:
    """Encode an image that compresses badly."""
    img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, quality=95)
    return buffer.getvalue()


def decoded_size(image: PendingImage) -> tuple[int, int]:
    with Image.open(io.BytesIO(image.data)) as img:
        return img.size


@pytest.fixture
def make_image() -> Callable[..., PendingImage]:
    """Factory for PendingImage objects backed by real encoded images."""

    def _make(index: int = 0, size=(200, 100), fmt="PNG", name=None, **kwargs) -> PendingImage:
        ext = "jpg" if fmt == "JPEG" else fmt.lower()
        return PendingImage(
            data=make_image_bytes(size=size, fmt=fmt, **kwargs),
            index=index,
            name=name or f"card-{index + 1}.{ext}",
        )

    return _make


# =============================================================================
# OCR
# =============================================================================


class FakeEngine:
    """OCR engine that returns canned text per image index."""

    def __init__(self, capability: "FakeCapability"):
        self.capability = capability

    async def recognize(self, image: PendingImage) -> str:
        self.capability.recognized.append(image.index)
        if image.index in self.capability.fail_on:
            raise RuntimeError(f"cannot read image {image.index}")
        return self.capability.texts.get(image.index, f"text {image.index}")

    async def release(self) -> None:
        self.capability.release_count += 1


class FakeCapability:
    """OCR capability that counts engine starts and releases."""

    def __init__(self, texts: dict[int, str] | None = None, fail_on=(), fail_init: bool = False):
        self.texts = texts or {}
        self.fail_on = set(fail_on)
        self.fail_init = fail_init
        self.init_count = 0
        self.release_count = 0
        self.recognized: list[int] = []

    async def initialize(self) -> FakeEngine:
        self.init_count += 1
        if self.fail_init:
            raise RuntimeError("engine unavailable")
        return FakeEngine(self)


@pytest.fixture
def fake_ocr() -> FakeCapability:
    return FakeCapability()


# =============================================================================
# Providers
# =============================================================================


class ProviderStub:
    """Records requests and answers them with a fixed response."""

    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=self.body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


def google_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def chat_reply(text: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def anthropic_reply(text: str) -> dict:
    return {"content": [{"type": "text", "text": text}]}


# =============================================================================
# Storage / settings
# =============================================================================


@pytest.fixture
def store():
    """Fresh in-memory recipe store."""
    recipe_store = RecipeStore("sqlite://")
    yield recipe_store
    recipe_store.close()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(data_dir=tmp_path, _env_file=None)


@pytest.fixture
def sample_recipe() -> dict:
    return {
        "title": "Grandma's Pancakes",
        "ingredients": ["1 cup flour", "1 egg", "1 cup milk"],
        "instructions": "Mix everything.\nFry in butter.",
    }
