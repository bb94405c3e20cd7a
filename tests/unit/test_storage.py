"""Tests for stylestudio.storage — project stores in memory and blob mode."""

from __future__ import annotations

import json

import httpx
import pytest

from stylestudio.blob import BlobClient
from stylestudio.errors import ConfigurationError, ProjectNotFoundError
from stylestudio.storage import (
    UNTITLED_PROJECT,
    BlobProjectStore,
    GeneratedImage,
    MemoryProjectStore,
    Project,
    build_project_store,
)


def _item(item_id: str = "gen-1") -> GeneratedImage:
    return GeneratedImage(
        id=item_id,
        image_url=f"https://img.test/{item_id}.png",
        prompt="a cat",
        model="openai",
        created_at="2026-01-01T00:00:00+00:00",
        style_id="noir",
    )


class TestModels:
    def test_item_round_trip_uses_camel_case(self):
        data = _item().to_dict()
        assert data["imageUrl"] == "https://img.test/gen-1.png"
        assert data["styleId"] == "noir"
        assert "styleName" not in data
        assert GeneratedImage.from_dict(data) == _item()

    def test_project_touch_strictly_advances(self):
        proj = Project(id="p", name="n", created_at="2999-01-01T00:00:00+00:00", updated_at="2999-01-01T00:00:00+00:00")
        proj.touch()
        first = proj.updated_at
        proj.touch()
        assert first > "2999-01-01T00:00:00+00:00"
        assert proj.updated_at > first


class TestMemoryProjectStore:
    @pytest.mark.asyncio
    async def test_create_and_read(self):
        store = MemoryProjectStore()
        proj = await store.create_project("Cats")
        assert proj.id.startswith("proj-")
        assert proj.items == []
        assert (await store.read_project(proj.id)).name == "Cats"

    @pytest.mark.asyncio
    async def test_read_missing(self):
        with pytest.raises(ProjectNotFoundError):
            await MemoryProjectStore().read_project("proj-missing")

    @pytest.mark.asyncio
    async def test_add_item_keeps_insertion_order_and_advances_updated_at(self):
        store = MemoryProjectStore()
        proj = await store.create_project("Cats")
        before = proj.updated_at

        await store.add_item(_item("gen-1"), project_id=proj.id)
        proj = await store.add_item(_item("gen-2"), project_id=proj.id)

        assert [i.id for i in proj.items] == ["gen-1", "gen-2"]
        assert proj.updated_at > before

    @pytest.mark.asyncio
    async def test_add_item_to_unknown_project_creates_it(self):
        store = MemoryProjectStore()
        proj = await store.add_item(_item(), project_id="proj-custom")
        assert proj.id == "proj-custom"
        assert proj.name == UNTITLED_PROJECT
        assert len(proj.items) == 1

    @pytest.mark.asyncio
    async def test_add_item_without_project_id_uses_name(self):
        proj = await MemoryProjectStore().add_item(_item(), name="Fresh")
        assert proj.name == "Fresh"

    @pytest.mark.asyncio
    async def test_list_is_most_recently_updated_first(self):
        store = MemoryProjectStore()
        a = await store.create_project("A")
        b = await store.create_project("B")
        await store.add_item(_item(), project_id=a.id)
        assert [p.id for p in await store.list_projects()] == [a.id, b.id]

    @pytest.mark.asyncio
    async def test_delete_item_and_project(self):
        store = MemoryProjectStore()
        proj = await store.add_item(_item("gen-1"), name="A")
        await store.add_item(_item("gen-2"), project_id=proj.id)

        proj = await store.delete_item(proj.id, "gen-1")
        assert [i.id for i in proj.items] == ["gen-2"]

        await store.delete_project(proj.id)
        assert await store.list_projects() == []
        with pytest.raises(ProjectNotFoundError):
            await store.delete_project(proj.id)


class TestBlobProjectStore:
    @pytest.fixture
    def store(self) -> BlobProjectStore:
        return BlobProjectStore(BlobClient("tok", api_url="https://blob.test"))

    @pytest.mark.asyncio
    async def test_create_writes_json_document(self, respx_mock, store):
        route = respx_mock.put(url__regex=r"https://blob\.test/projects/proj-[0-9a-f]+\.json").mock(
            return_value=httpx.Response(200, json={"url": "https://store.test/projects/p.json"})
        )

        proj = await store.create_project("Cats")

        request = route.calls.last.request
        assert request.headers["x-allow-overwrite"] == "1"
        assert request.headers["x-add-random-suffix"] == "0"
        assert json.loads(request.content)["name"] == "Cats"
        assert json.loads(request.content)["id"] == proj.id

    @pytest.mark.asyncio
    async def test_read_finds_document_by_pathname(self, respx_mock, store):
        doc = Project(id="proj-1", name="Cats", created_at="2026-01-01T00:00:00+00:00", updated_at="2026-01-01T00:00:00+00:00")
        respx_mock.get("https://blob.test/").mock(
            return_value=httpx.Response(
                200,
                json={"blobs": [{"url": "https://store.test/projects/proj-1.json", "pathname": "projects/proj-1.json"}], "hasMore": False},
            )
        )
        respx_mock.get("https://store.test/projects/proj-1.json").mock(
            return_value=httpx.Response(200, json=doc.to_dict())
        )

        assert await store.read_project("proj-1") == doc

    @pytest.mark.asyncio
    async def test_read_missing(self, respx_mock, store):
        respx_mock.get("https://blob.test/").mock(return_value=httpx.Response(200, json={"blobs": [], "hasMore": False}))
        with pytest.raises(ProjectNotFoundError):
            await store.read_project("proj-nope")

    @pytest.mark.asyncio
    async def test_list_skips_corrupt_documents(self, respx_mock, store):
        good = Project(id="proj-1", name="Good", created_at="2026-01-01T00:00:00+00:00", updated_at="2026-01-01T00:00:00+00:00")
        respx_mock.get("https://blob.test/").mock(
            return_value=httpx.Response(
                200,
                json={
                    "blobs": [
                        {"url": "https://store.test/projects/proj-1.json", "pathname": "projects/proj-1.json"},
                        {"url": "https://store.test/projects/bad.json", "pathname": "projects/bad.json"},
                    ],
                    "hasMore": False,
                },
            )
        )
        respx_mock.get("https://store.test/projects/proj-1.json").mock(return_value=httpx.Response(200, json=good.to_dict()))
        respx_mock.get("https://store.test/projects/bad.json").mock(return_value=httpx.Response(200, text="{nope"))

        assert [p.id for p in await store.list_projects()] == ["proj-1"]

    @pytest.mark.asyncio
    async def test_delete_removes_blob(self, respx_mock, store):
        doc = Project(id="proj-1", name="Cats", created_at="2026-01-01T00:00:00+00:00", updated_at="2026-01-01T00:00:00+00:00")
        respx_mock.get("https://blob.test/").mock(
            return_value=httpx.Response(
                200,
                json={"blobs": [{"url": "https://store.test/projects/proj-1.json", "pathname": "projects/proj-1.json"}]},
            )
        )
        respx_mock.get("https://store.test/projects/proj-1.json").mock(return_value=httpx.Response(200, json=doc.to_dict()))
        delete = respx_mock.post("https://blob.test/delete").mock(return_value=httpx.Response(200))

        await store.delete_project("proj-1")

        assert json.loads(delete.calls.last.request.content) == {"urls": ["https://store.test/projects/proj-1.json"]}


class TestBuildProjectStore:
    def test_auto_without_token_is_memory(self, make_settings):
        assert isinstance(build_project_store(make_settings()), MemoryProjectStore)

    def test_auto_with_token_is_blob(self, make_settings):
        assert isinstance(build_project_store(make_settings(blob_read_write_token="tok")), BlobProjectStore)

    def test_explicit_memory_with_token(self, make_settings):
        store = build_project_store(make_settings(blob_read_write_token="tok", project_storage="memory"))
        assert store.mode == "memory"

    def test_blob_without_token_is_a_configuration_error(self, make_settings):
        with pytest.raises(ConfigurationError):
            build_project_store(make_settings(project_storage="blob"))
