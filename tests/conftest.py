"""Shared pytest fixtures for stylestudio tests."""

from __future__ import annotations

import json
from io import BytesIO
from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from stylestudio.api.app import create_app
from stylestudio.config import Settings

GEMINI_BASE = "https://gemini.test/v1beta"
BLOB_API = "https://blob.test"

STYLES = [
    {
        "id": "ukiyo-e",
        "name": "Ukiyo-e Woodblock",
        "category": "Art Styles",
        "promptTemplate": "{subject} as a woodblock print",
        "exampleImages": ["https://examples.test/ukiyo-e-1.jpg", "https://examples.test/ukiyo-e-2.jpg"],
        "tags": ["japanese", "print"],
        "recommendedModel": "nano-banana",
    },
    {
        "id": "noir",
        "name": "Film Noir Portrait",
        "category": "Photography",
        "promptTemplate": "Black and white portrait of {subject}",
        "exampleImages": ["https://examples.test/noir.jpg"],
        "tags": ["portrait", "cinematic"],
        "recommendedModel": "openai",
    },
    {
        "id": "brutalist",
        "name": "Brutalist Architecture",
        "category": "Architecture",
        "promptTemplate": "{subject} as a concrete building",
        "exampleImages": [],
        "tags": ["concrete"],
        "recommendedModel": "nano-banana-pro",
    },
]


def make_png(size: tuple[int, int] = (4, 3), color: tuple[int, int, int] = (200, 40, 40), fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def styles_file(tmp_path: Path) -> Path:
    path = tmp_path / "styles.json"
    path.write_text(json.dumps({"styles": STYLES}), encoding="utf-8")
    return path


@pytest.fixture
def make_settings(styles_file: Path) -> Callable[..., Settings]:
    """Settings factory that never reads the developer's environment or .env."""

    def _make(**overrides) -> Settings:
        values = {
            "openai_api_key": "sk-test",
            "gemini_api_key": "gemini-test",
            "blob_read_write_token": None,
            "gemini_api_base": GEMINI_BASE,
            "blob_api_url": BLOB_API,
            "project_storage": "auto",
            "styles_path": str(styles_file),
            "provider_timeout_seconds": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def make_client(make_settings) -> Callable[..., TestClient]:
    def _make(**overrides) -> TestClient:
        return TestClient(create_app(make_settings(**overrides)))

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
