from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from stylestudio.blob import BlobClient
from stylestudio.config import Settings
from stylestudio.errors import ConfigurationError, PersistenceError, ProjectNotFoundError

logger = logging.getLogger(__name__)

UNTITLED_PROJECT = "Untitled Project"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _parse_ts(value: str) -> datetime:
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _advance(previous: str) -> str:
    # updatedAt must move forward on every mutation, even within one clock tick.
    now = datetime.now(timezone.utc)
    prev = _parse_ts(previous)
    if now <= prev:
        now = prev + timedelta(microseconds=1)
    return now.isoformat()


@dataclass
class GeneratedImage:
    id: str
    image_url: str
    prompt: str
    model: str
    created_at: str
    style_id: str | None = None
    style_name: str | None = None
    aspect_ratio: str | None = None
    resolution: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "imageUrl": self.image_url,
            "prompt": self.prompt,
            "model": self.model,
            "createdAt": self.created_at,
        }
        for key, value in (
            ("styleId", self.style_id),
            ("styleName", self.style_name),
            ("aspectRatio", self.aspect_ratio),
            ("resolution", self.resolution),
        ):
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratedImage:
        return cls(
            id=data["id"],
            image_url=data["imageUrl"],
            prompt=data["prompt"],
            model=data["model"],
            created_at=data["createdAt"],
            style_id=data.get("styleId"),
            style_name=data.get("styleName"),
            aspect_ratio=data.get("aspectRatio"),
            resolution=data.get("resolution"),
        )


@dataclass
class Project:
    id: str
    name: str
    created_at: str
    updated_at: str
    items: list[GeneratedImage] = field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = _advance(self.updated_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "items": [i.to_dict() for i in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            items=[GeneratedImage.from_dict(i) for i in data.get("items", [])],
        )


class ProjectStore:
    """
    CRUD over projects. Subclasses provide the raw load/save/remove of one project.
    """

    mode = "abstract"

    async def _load(self, project_id: str) -> Project | None:
        raise NotImplementedError

    async def _load_all(self) -> list[Project]:
        raise NotImplementedError

    async def _save(self, project: Project) -> None:
        raise NotImplementedError

    async def _remove(self, project_id: str) -> None:
        raise NotImplementedError

    async def list_projects(self) -> list[Project]:
        projects = await self._load_all()
        return sorted(projects, key=lambda p: _parse_ts(p.updated_at), reverse=True)

    async def read_project(self, project_id: str) -> Project:
        proj = await self._load(project_id)
        if proj is None:
            raise ProjectNotFoundError(project_id)
        return proj

    async def create_project(self, name: str, project_id: str | None = None) -> Project:
        now = now_iso()
        proj = Project(id=project_id or new_id("proj"), name=name, created_at=now, updated_at=now, items=[])
        await self._save(proj)
        return proj

    async def add_item(self, item: GeneratedImage, project_id: str | None = None, name: str | None = None) -> Project:
        proj = await self._load(project_id) if project_id else None
        if proj is None:
            now = now_iso()
            proj = Project(
                id=project_id or new_id("proj"),
                name=name or UNTITLED_PROJECT,
                created_at=now,
                updated_at=now,
                items=[],
            )
        proj.items.append(item)
        proj.touch()
        await self._save(proj)
        return proj

    async def delete_item(self, project_id: str, item_id: str) -> Project:
        proj = await self.read_project(project_id)
        proj.items = [i for i in proj.items if i.id != item_id]
        proj.touch()
        await self._save(proj)
        return proj

    async def delete_project(self, project_id: str) -> None:
        await self.read_project(project_id)
        await self._remove(project_id)


class MemoryProjectStore(ProjectStore):
    """
    Process-lifetime store. Nothing survives a restart, and concurrent writers
    to the same project are not serialised: the last save wins.
    """

    mode = "memory"

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    async def _load(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    async def _load_all(self) -> list[Project]:
        return list(self._projects.values())

    async def _save(self, project: Project) -> None:
        self._projects[project.id] = project

    async def _remove(self, project_id: str) -> None:
        self._projects.pop(project_id, None)


class BlobProjectStore(ProjectStore):
    """One JSON document per project under projects/<id>.json."""

    mode = "blob"
    prefix = "projects/"

    def __init__(self, blob: BlobClient) -> None:
        self.blob = blob

    def _pathname(self, project_id: str) -> str:
        return f"{self.prefix}{project_id}.json"

    async def _find_url(self, project_id: str) -> str | None:
        pathname = self._pathname(project_id)
        for b in await self.blob.list(pathname):
            if b.pathname == pathname:
                return b.url
        return None

    async def _read_url(self, url: str) -> Project:
        raw = await self.blob.read(url)
        try:
            return Project.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"corrupt project document at {url}: {exc}") from exc

    async def _load(self, project_id: str) -> Project | None:
        url = await self._find_url(project_id)
        if url is None:
            return None
        return await self._read_url(url)

    async def _load_all(self) -> list[Project]:
        out: list[Project] = []
        for b in await self.blob.list(self.prefix):
            if not b.pathname.endswith(".json"):
                continue
            try:
                out.append(await self._read_url(b.url))
            except PersistenceError as exc:
                # Ignore corrupted projects.
                logger.warning("Skipping project blob %s: %s", b.pathname, exc)
        return out

    async def _save(self, project: Project) -> None:
        body = json.dumps(project.to_dict(), indent=2).encode("utf-8")
        await self.blob.put(self._pathname(project.id), body, "application/json", overwrite=True)

    async def _remove(self, project_id: str) -> None:
        url = await self._find_url(project_id)
        if url:
            await self.blob.delete([url])


def build_project_store(settings: Settings) -> ProjectStore:
    mode = settings.resolved_project_storage()
    if mode == "blob":
        if not settings.blob_read_write_token:
            raise ConfigurationError("PROJECT_STORAGE=blob requires BLOB_READ_WRITE_TOKEN")
        logger.info("Project storage: blob (%s)", settings.blob_api_url)
        return BlobProjectStore(BlobClient(settings.blob_read_write_token, api_url=settings.blob_api_url))
    logger.warning("Project storage: memory. Projects live only as long as this process.")
    return MemoryProjectStore()
